"""
Module: claims_kernel.models.member
Responsibility: ORM persistence for organization members -- the local
    directory backing the OrgDirectory protocol.

Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from claims_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from claims_kernel.domain.directory import MemberProfile


class MemberModel(Base):
    """Persistent organization member."""

    __tablename__ = "members"

    __table_args__ = (
        Index("ix_members_organization", "organization_id"),
        Index("ix_members_manager", "manager_id"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    manager_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    display_name: Mapped[str] = mapped_column(
        String(200), default="", nullable=False,
    )
    capabilities: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Member {self.user_id} org={self.organization_id}>"

    def to_dto(self) -> MemberProfile:
        """Convert ORM model to frozen domain DTO."""
        from claims_kernel.domain.directory import MemberProfile as MemberDTO

        return MemberDTO(
            user_id=self.user_id,
            organization_id=self.organization_id,
            manager_id=self.manager_id,
            capabilities=frozenset(self.capabilities or ()),
            email=self.email,
            display_name=self.display_name,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: MemberProfile) -> MemberModel:
        """Create ORM model from domain DTO."""
        return cls(
            user_id=dto.user_id,
            organization_id=dto.organization_id,
            manager_id=dto.manager_id,
            capabilities=sorted(dto.capabilities),
            email=dto.email,
            display_name=dto.display_name,
            is_active=dto.is_active,
        )
