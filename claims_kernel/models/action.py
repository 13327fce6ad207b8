"""
Module: claims_kernel.models.action
Responsibility: ORM persistence for approval actions -- the append-only
    ledger of approver decisions on claims.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - UNIQUE(claim_id, actor_id, step_number): one action per approver per
      step.  A concurrent duplicate fails at the database.
    - Actions are immutable -- no UPDATE, no DELETE (ORM listeners).
    - decision is APPROVED or REJECTED.

Failure modes:
    - IntegrityError on a duplicate (claim, actor, step) insert.
    - ImmutabilityViolationError on UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from claims_kernel.db.base import Base, UTCDateTime, UUIDString
from claims_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from claims_kernel.domain.workflow import ActionRecord


class ApprovalActionModel(Base):
    """Persistent approver decision. Append-only."""

    __tablename__ = "approval_actions"

    __table_args__ = (
        UniqueConstraint(
            "claim_id", "actor_id", "step_number",
            name="uq_approval_actions_actor_step",
        ),
        CheckConstraint(
            "decision IN ('APPROVED', 'REJECTED')",
            name="ck_approval_actions_valid_decision",
        ),
        Index("ix_approval_actions_claim_step", "claim_id", "step_number"),
        Index("ix_approval_actions_actor", "actor_id"),
    )

    action_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    claim_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("claims.claim_id"),
        nullable=False,
    )
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    step_number: Mapped[int] = mapped_column(nullable=False)
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_override: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    acted_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalAction {self.action_id} claim={self.claim_id} "
            f"step={self.step_number} decision={self.decision}>"
        )

    def to_dto(self) -> ActionRecord:
        """Convert ORM model to frozen domain DTO."""
        from claims_kernel.domain.workflow import ActionDecision
        from claims_kernel.domain.workflow import ActionRecord as ActionDTO

        return ActionDTO(
            action_id=self.action_id,
            claim_id=self.claim_id,
            actor_id=self.actor_id,
            step_number=self.step_number,
            decision=ActionDecision(self.decision),
            comment=self.comment,
            is_override=self.is_override,
            acted_at=self.acted_at,
        )

    @classmethod
    def from_dto(cls, dto: ActionRecord) -> ApprovalActionModel:
        """Create ORM model from domain DTO."""
        return cls(
            action_id=dto.action_id,
            claim_id=dto.claim_id,
            actor_id=dto.actor_id,
            step_number=dto.step_number,
            decision=dto.decision.value,
            comment=dto.comment,
            is_override=dto.is_override,
            acted_at=dto.acted_at,
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(ApprovalActionModel, "before_update")
def prevent_action_update(mapper, connection, target):
    """Prevent updates to approval action records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalAction",
        entity_id=str(target.action_id),
        reason="Approval actions are immutable -- cannot modify",
    )


@event.listens_for(ApprovalActionModel, "before_delete")
def prevent_action_delete(mapper, connection, target):
    """Prevent deletion of approval action records."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalAction",
        entity_id=str(target.action_id),
        reason="Approval actions are immutable -- cannot delete",
    )
