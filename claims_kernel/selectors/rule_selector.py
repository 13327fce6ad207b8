"""
Module: claims_kernel.selectors.rule_selector
Responsibility: Read-only access to approval rules, returned as normalized
    ``ApprovalRule`` records.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Steps are sorted by sequence_order and given their 0-based ``index``
      here, once.  Nothing downstream re-derives step positions.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from claims_kernel.domain.workflow import (
    ApprovalRule,
    RuleStep,
    RuleType,
    StepApprover,
)
from claims_kernel.exceptions import RuleNotFoundError
from claims_kernel.models.claim import ClaimModel
from claims_kernel.models.rule import ApprovalRuleModel
from claims_kernel.selectors.base import BaseSelector


def rule_to_dto(model: ApprovalRuleModel) -> ApprovalRule:
    """Build a normalized rule record from its ORM rows."""
    ordered = sorted(model.steps, key=lambda s: s.sequence_order)
    steps = tuple(
        RuleStep(
            index=index,
            sequence_order=step.sequence_order,
            approvers=tuple(
                StepApprover(
                    user_id=a.user_id,
                    is_key_approver=a.is_key_approver,
                )
                for a in step.approvers
            ),
        )
        for index, step in enumerate(ordered)
    )
    threshold = model.percentage_threshold
    return ApprovalRule(
        rule_id=model.rule_id,
        organization_id=model.organization_id,
        name=model.name,
        rule_type=RuleType(model.rule_type),
        steps=steps,
        percentage_threshold=Decimal(threshold) if threshold is not None else None,
        is_manager_approver=model.is_manager_approver,
    )


class RuleSelector(BaseSelector[ApprovalRuleModel]):
    """Read approval rules."""

    def find_rule(self, rule_id: UUID) -> ApprovalRule | None:
        model = self._load(rule_id)
        return rule_to_dto(model) if model is not None else None

    def get_rule(self, rule_id: UUID) -> ApprovalRule:
        """Return the rule or raise RuleNotFoundError."""
        model = self._load(rule_id)
        if model is None:
            raise RuleNotFoundError(str(rule_id))
        return rule_to_dto(model)

    def rules_for_organization(self, organization_id: UUID) -> list[ApprovalRule]:
        models = self.session.execute(
            select(ApprovalRuleModel)
            .where(ApprovalRuleModel.organization_id == organization_id)
            .order_by(ApprovalRuleModel.created_at, ApprovalRuleModel.name)
        ).scalars().all()
        return [rule_to_dto(m) for m in models]

    def claims_using_rule(self, rule_id: UUID) -> int:
        """Number of claims that reference the rule."""
        return self.session.execute(
            select(func.count(ClaimModel.id)).where(ClaimModel.rule_id == rule_id)
        ).scalar_one()

    def _load(self, rule_id: UUID) -> ApprovalRuleModel | None:
        return self.session.execute(
            select(ApprovalRuleModel).where(ApprovalRuleModel.rule_id == rule_id)
        ).scalar_one_or_none()
