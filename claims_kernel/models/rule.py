"""
Module: claims_kernel.models.rule
Responsibility: ORM persistence for organization approval rules, their
    ordered steps and the approvers named on each step.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - UNIQUE(rule_id, sequence_order): step order is unambiguous.
    - UNIQUE(step_id, user_id): an approver appears once per step.
    - percentage_threshold, when set, lies within 0..100.

Steps are stored with their 1-based sequence_order.  The 0-based index the
engine works with is assigned by RuleSelector at load time.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from claims_kernel.db.base import Base, UTCDateTime, UUIDString


class ApprovalRuleModel(Base):
    """Persistent approval rule owned by an organization."""

    __tablename__ = "approval_rules"

    __table_args__ = (
        CheckConstraint(
            "rule_type IN ('SEQUENTIAL', 'CONDITIONAL', 'COMBINED')",
            name="ck_approval_rules_valid_type",
        ),
        CheckConstraint(
            "percentage_threshold IS NULL OR "
            "(percentage_threshold >= 0 AND percentage_threshold <= 100)",
            name="ck_approval_rules_threshold_range",
        ),
        Index("ix_approval_rules_organization", "organization_id"),
    )

    rule_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rule_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="SEQUENTIAL",
    )
    percentage_threshold: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9), nullable=True,
    )
    is_manager_approver: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False,
    )

    steps: Mapped[list["ApprovalStepModel"]] = relationship(
        "ApprovalStepModel",
        back_populates="rule",
        primaryjoin="ApprovalRuleModel.rule_id == ApprovalStepModel.rule_id",
        order_by="ApprovalStepModel.sequence_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ApprovalRule {self.rule_id} {self.name!r} type={self.rule_type}>"


class ApprovalStepModel(Base):
    """One ordered step of an approval rule."""

    __tablename__ = "approval_steps"

    __table_args__ = (
        UniqueConstraint(
            "rule_id", "sequence_order",
            name="uq_approval_steps_rule_sequence",
        ),
        CheckConstraint(
            "sequence_order >= 1",
            name="ck_approval_steps_sequence_positive",
        ),
    )

    step_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    rule_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_rules.rule_id"),
        nullable=False,
    )
    sequence_order: Mapped[int] = mapped_column(nullable=False)

    rule: Mapped["ApprovalRuleModel"] = relationship(
        "ApprovalRuleModel",
        back_populates="steps",
        foreign_keys=[rule_id],
        primaryjoin="ApprovalStepModel.rule_id == ApprovalRuleModel.rule_id",
    )
    approvers: Mapped[list["StepApproverModel"]] = relationship(
        "StepApproverModel",
        back_populates="step",
        primaryjoin="ApprovalStepModel.step_id == StepApproverModel.step_id",
        order_by="StepApproverModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ApprovalStep rule={self.rule_id} #{self.sequence_order}>"


class StepApproverModel(Base):
    """An approver named on a rule step."""

    __tablename__ = "approval_step_approvers"

    __table_args__ = (
        UniqueConstraint(
            "step_id", "user_id",
            name="uq_approval_step_approvers_user",
        ),
        Index("ix_approval_step_approvers_user", "user_id"),
    )

    step_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_steps.step_id"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    is_key_approver: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    step: Mapped["ApprovalStepModel"] = relationship(
        "ApprovalStepModel",
        back_populates="approvers",
        foreign_keys=[step_id],
        primaryjoin="StepApproverModel.step_id == ApprovalStepModel.step_id",
    )

    def __repr__(self) -> str:
        flag = " key" if self.is_key_approver else ""
        return f"<StepApprover {self.user_id}{flag}>"
