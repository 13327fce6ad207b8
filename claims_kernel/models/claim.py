"""
Module: claims_kernel.models.claim
Responsibility: ORM persistence for expense claims and their workflow
    position (current_step, status).

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - DB check constraints limit status values and keep current_step >= 0.
    - ``version`` is the mapper's version_id_col: every UPDATE carries
      ``WHERE version = :read_version``, so two writers that loaded the same
      claim cannot both commit a transition.
    - Every recorded action stamps last_action_at, so each transition
      (including a hold at the same step) is an UPDATE that bumps version.
    - Terminal claims are frozen: once status is APPROVED or REJECTED the
      before_update guard rejects any further change to status or
      current_step.

Failure modes:
    - StaleDataError on flush when another transaction bumped ``version``
      (translated to OptimisticLockError by the processor).
    - ImmutabilityViolationError when a terminal claim is modified.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, attributes, mapped_column

from claims_kernel.db.base import Base, UTCDateTime, UUIDString
from claims_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from claims_kernel.domain.workflow import ClaimRecord


_TERMINAL_STATUSES = ("APPROVED", "REJECTED")


class ClaimModel(Base):
    """Persistent expense claim.

    Contract:
        Status moves only PENDING -> APPROVED or PENDING -> REJECTED.
        current_step is advanced by the approval processor only.
    """

    __tablename__ = "claims"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_claims_valid_status",
        ),
        CheckConstraint(
            "current_step >= 0",
            name="ck_claims_current_step_non_negative",
        ),
        CheckConstraint("amount > 0", name="ck_claims_amount_positive"),
        # Pending-work scans by organization
        Index(
            "ix_claims_org_status_created",
            "organization_id", "status", "created_at",
        ),
        Index("ix_claims_rule_id", "rule_id"),
    )

    claim_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    submitter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    expense_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    rule_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("approval_rules.rule_id"),
        nullable=True,
    )
    current_step: Mapped[int] = mapped_column(default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING",
    )
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    initiated_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    last_action_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Claim {self.claim_id} step={self.current_step} "
            f"status={self.status} v{self.version}>"
        )

    def to_dto(self) -> ClaimRecord:
        """Convert ORM model to frozen domain DTO."""
        from claims_kernel.domain.workflow import ClaimRecord as ClaimDTO
        from claims_kernel.domain.workflow import ClaimStatus

        return ClaimDTO(
            claim_id=self.claim_id,
            organization_id=self.organization_id,
            submitter_id=self.submitter_id,
            amount=self.amount,
            currency=self.currency,
            description=self.description,
            category=self.category,
            expense_date=self.expense_date,
            rule_id=self.rule_id,
            current_step=self.current_step,
            status=ClaimStatus(self.status),
            version=self.version,
            initiated_at=self.initiated_at,
            last_action_at=self.last_action_at,
            resolved_at=self.resolved_at,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: ClaimRecord) -> ClaimModel:
        """Create ORM model from domain DTO."""
        return cls(
            claim_id=dto.claim_id,
            organization_id=dto.organization_id,
            submitter_id=dto.submitter_id,
            amount=dto.amount,
            currency=dto.currency,
            description=dto.description,
            category=dto.category,
            expense_date=dto.expense_date,
            rule_id=dto.rule_id,
            current_step=dto.current_step,
            status=dto.status.value,
            initiated_at=dto.initiated_at,
            last_action_at=dto.last_action_at,
            resolved_at=dto.resolved_at,
            created_at=dto.created_at,
        )


# =============================================================================
# ORM-Level Immutability for Terminal Claims
# =============================================================================


@event.listens_for(ClaimModel, "before_update")
def prevent_terminal_claim_update(mapper, connection, target):
    """Reject workflow changes to a claim that was already terminal."""
    status_history = attributes.get_history(target, "status")
    previous_status = (
        status_history.deleted[0] if status_history.deleted else target.status
    )
    if previous_status not in _TERMINAL_STATUSES:
        return

    for attr in ("status", "current_step", "rule_id", "amount"):
        if attributes.get_history(target, attr).has_changes():
            raise ImmutabilityViolationError(
                entity_type="Claim",
                entity_id=str(target.claim_id),
                reason=f"Claim is {previous_status} -- cannot modify {attr}",
            )
