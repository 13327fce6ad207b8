"""
claims_engines.conditional -- Conditional auto-approval evaluation.

Responsibility:
    Decide, for a CONDITIONAL or COMBINED rule, whether the approvals
    collected at the current step short-circuit the rest of the workflow
    (percentage quorum or key approver), and whether the step is still
    waiting on approvers who could satisfy a condition.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import claims_kernel/domain types.

Invariants enforced:
    - Percentage arithmetic is Decimal-only.
    - Either condition is sufficient (logical OR).
    - A rule with no steps, or a step index outside the rule, never
      auto-approves.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from claims_engines.tracer import traced_engine
from claims_kernel.domain.workflow import ApprovalRule

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ConditionalEvaluation:
    """Outcome of checking a step's auto-approval conditions."""

    auto_approve: bool
    percentage_met: bool = False
    key_approver_met: bool = False
    approved_count: int = 0
    total_approvers: int = 0
    approval_percentage: Decimal | None = None
    reason: str = ""


def approval_percentage(approved_count: int, total_approvers: int) -> Decimal:
    """approved_count as a percentage of total_approvers."""
    if total_approvers <= 0:
        return Decimal("0")
    return Decimal(approved_count) * _HUNDRED / Decimal(total_approvers)


@traced_engine(
    "conditional",
    "1.0",
    fingerprint_fields=("rule", "step_index", "acting_approver_id", "approvals"),
)
def evaluate_conditions(
    *,
    rule: ApprovalRule,
    step_index: int,
    acting_approver_id: UUID,
    approvals: frozenset[UUID],
) -> ConditionalEvaluation:
    """Evaluate auto-approval for ``rule`` at ``step_index``.

    Args:
        rule: A normalized rule.
        step_index: The claim's current (0-based) step.
        acting_approver_id: The approver whose action was just recorded.
        approvals: Distinct actors with an APPROVED action at this step,
            including the acting approver.
    """
    if not rule.is_conditional:
        return ConditionalEvaluation(
            auto_approve=False,
            reason=f"{rule.rule_type.value} rules have no conditions",
        )

    step = rule.step_at(step_index)
    if step is None:
        return ConditionalEvaluation(
            auto_approve=False,
            reason=f"Rule has no step {step_index}",
        )

    approved_count = len(approvals)
    total = len(step.approvers)

    percentage: Decimal | None = None
    percentage_met = False
    if rule.percentage_threshold is not None and total > 0:
        percentage = approval_percentage(approved_count, total)
        percentage_met = percentage >= rule.percentage_threshold

    key_approver_met = (
        acting_approver_id in step.key_approver_ids
        and acting_approver_id in approvals
    )

    if percentage_met and key_approver_met:
        reason = "Percentage threshold met and key approver approved"
    elif percentage_met:
        reason = (
            f"{approved_count}/{total} approvals meet "
            f"{rule.percentage_threshold}% threshold"
        )
    elif key_approver_met:
        reason = f"Key approver {acting_approver_id} approved"
    else:
        reason = f"{approved_count}/{total} approvals, no condition met"

    return ConditionalEvaluation(
        auto_approve=percentage_met or key_approver_met,
        percentage_met=percentage_met,
        key_approver_met=key_approver_met,
        approved_count=approved_count,
        total_approvers=total,
        approval_percentage=percentage,
        reason=reason,
    )


def should_auto_approve(
    *,
    rule: ApprovalRule,
    step_index: int,
    acting_approver_id: UUID,
    approvals: frozenset[UUID],
) -> bool:
    return evaluate_conditions(
        rule=rule,
        step_index=step_index,
        acting_approver_id=acting_approver_id,
        approvals=approvals,
    ).auto_approve


def is_condition_pending(
    *,
    rule: ApprovalRule,
    step_index: int,
    approvals: frozenset[UUID],
) -> bool:
    """True while the step should keep collecting approvals.

    Only a percentage threshold holds a step: while some named approver
    has not approved yet, the quorum can still be reached here.  A key
    approver is a shortcut, not a required sign-off, so a step without a
    threshold advances on any approval.
    """
    if not rule.is_conditional:
        return False
    step = rule.step_at(step_index)
    if step is None:
        return False
    if rule.percentage_threshold is None:
        return False
    return bool(step.approver_ids - approvals)
