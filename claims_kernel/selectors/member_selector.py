"""
Module: claims_kernel.selectors.member_selector
Responsibility: Database-backed implementation of the OrgDirectory protocol.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from claims_kernel.domain.directory import MemberProfile
from claims_kernel.exceptions import MemberNotFoundError
from claims_kernel.models.member import MemberModel
from claims_kernel.selectors.base import BaseSelector


class MemberSelector(BaseSelector[MemberModel]):
    """Read organization members.  Satisfies ``OrgDirectory``."""

    def get_member(self, user_id: UUID) -> MemberProfile | None:
        model = self.session.execute(
            select(MemberModel).where(MemberModel.user_id == user_id)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def require_member(self, user_id: UUID) -> MemberProfile:
        """Return the member or raise MemberNotFoundError."""
        member = self.get_member(user_id)
        if member is None:
            raise MemberNotFoundError(str(user_id))
        return member
