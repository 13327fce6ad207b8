"""Tests for the conditional auto-approval engine (claims_engines.conditional)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from claims_engines.conditional import (
    approval_percentage,
    evaluate_conditions,
    is_condition_pending,
    should_auto_approve,
)
from claims_kernel.domain.workflow import ApprovalRule, RuleStep, RuleType, StepApprover


def _rule(approvers, rule_type=RuleType.CONDITIONAL, threshold=None, keys=()):
    return ApprovalRule(
        rule_id=uuid4(),
        organization_id=uuid4(),
        name="Conditional",
        rule_type=rule_type,
        steps=(
            RuleStep(
                index=0,
                sequence_order=1,
                approvers=tuple(
                    StepApprover(a, is_key_approver=a in keys) for a in approvers
                ),
            ),
        ),
        percentage_threshold=threshold,
    )


@pytest.fixture
def four():
    return [uuid4() for _ in range(4)]


class TestApprovalPercentage:

    def test_exact_decimal(self):
        assert approval_percentage(2, 4) == Decimal("50")
        assert approval_percentage(3, 4) == Decimal("75")
        assert approval_percentage(2, 3) < Decimal("66.67")
        assert approval_percentage(2, 3) > Decimal("66.66")

    def test_zero_total(self):
        assert approval_percentage(0, 0) == Decimal("0")


class TestPercentageCondition:

    def test_quorum_not_met(self, four):
        rule = _rule(four, threshold=Decimal("50"))
        result = evaluate_conditions(
            rule=rule, step_index=0,
            acting_approver_id=four[0], approvals=frozenset(four[:1]),
        )
        assert not result.auto_approve
        assert result.approval_percentage == Decimal("25")
        assert result.approved_count == 1
        assert result.total_approvers == 4

    def test_quorum_met_at_threshold(self, four):
        rule = _rule(four, threshold=Decimal("50"))
        result = evaluate_conditions(
            rule=rule, step_index=0,
            acting_approver_id=four[1], approvals=frozenset(four[:2]),
        )
        assert result.auto_approve
        assert result.percentage_met
        assert not result.key_approver_met

    def test_zero_threshold_fires_on_first_approval(self, four):
        rule = _rule(four, threshold=Decimal("0"))
        assert should_auto_approve(
            rule=rule, step_index=0,
            acting_approver_id=four[0], approvals=frozenset(four[:1]),
        )

    def test_full_threshold_needs_everyone(self, four):
        rule = _rule(four, threshold=Decimal("100"))
        assert not should_auto_approve(
            rule=rule, step_index=0,
            acting_approver_id=four[2], approvals=frozenset(four[:3]),
        )
        assert should_auto_approve(
            rule=rule, step_index=0,
            acting_approver_id=four[3], approvals=frozenset(four),
        )


class TestKeyApproverCondition:

    def test_key_approver_fires(self, four):
        rule = _rule(four, keys=(four[2],))
        result = evaluate_conditions(
            rule=rule, step_index=0,
            acting_approver_id=four[2], approvals=frozenset({four[2]}),
        )
        assert result.auto_approve
        assert result.key_approver_met

    def test_non_key_approver_does_not_fire(self, four):
        rule = _rule(four, keys=(four[2],))
        assert not should_auto_approve(
            rule=rule, step_index=0,
            acting_approver_id=four[0], approvals=frozenset({four[0]}),
        )

    def test_key_approver_must_have_approved(self, four):
        rule = _rule(four, keys=(four[2],))
        assert not should_auto_approve(
            rule=rule, step_index=0,
            acting_approver_id=four[2], approvals=frozenset({four[0]}),
        )

    def test_either_condition_suffices(self, four):
        rule = _rule(four, rule_type=RuleType.COMBINED, threshold=Decimal("75"), keys=(four[3],))
        result = evaluate_conditions(
            rule=rule, step_index=0,
            acting_approver_id=four[3], approvals=frozenset({four[3]}),
        )
        assert result.auto_approve
        assert result.key_approver_met
        assert not result.percentage_met


class TestNoConditions:

    def test_sequential_rule_never_auto_approves(self, four):
        rule = _rule(four, rule_type=RuleType.SEQUENTIAL, threshold=Decimal("0"), keys=tuple(four))
        result = evaluate_conditions(
            rule=rule, step_index=0,
            acting_approver_id=four[0], approvals=frozenset(four),
        )
        assert not result.auto_approve

    def test_step_out_of_range(self, four):
        rule = _rule(four, threshold=Decimal("0"))
        assert not should_auto_approve(
            rule=rule, step_index=5,
            acting_approver_id=four[0], approvals=frozenset(four),
        )

    def test_no_threshold_no_key_approver(self, four):
        rule = _rule(four)
        assert not should_auto_approve(
            rule=rule, step_index=0,
            acting_approver_id=four[0], approvals=frozenset(four),
        )


class TestConditionPending:

    def test_threshold_keeps_step_open(self, four):
        rule = _rule(four, threshold=Decimal("75"))
        assert is_condition_pending(rule=rule, step_index=0, approvals=frozenset(four[:1]))

    def test_everyone_approved_closes_step(self, four):
        rule = _rule(four, threshold=Decimal("100"))
        assert not is_condition_pending(rule=rule, step_index=0, approvals=frozenset(four))

    def test_remaining_key_approver_does_not_hold_step(self, four):
        rule = _rule(four, keys=(four[3],))
        assert not is_condition_pending(rule=rule, step_index=0, approvals=frozenset(four[:1]))

    def test_threshold_with_key_approver_holds_until_everyone_acted(self, four):
        rule = _rule(four, rule_type=RuleType.COMBINED, threshold=Decimal("100"), keys=(four[0],))
        assert is_condition_pending(rule=rule, step_index=0, approvals=frozenset(four[1:3]))
        assert not is_condition_pending(rule=rule, step_index=0, approvals=frozenset(four))

    def test_sequential_never_pending(self, four):
        rule = _rule(four, rule_type=RuleType.SEQUENTIAL, threshold=Decimal("50"))
        assert not is_condition_pending(rule=rule, step_index=0, approvals=frozenset())


class TestTracing:

    def test_engine_trace_emitted(self, four, captured_logs):
        rule = _rule(four, threshold=Decimal("50"))
        evaluate_conditions(
            rule=rule, step_index=0,
            acting_approver_id=four[0], approvals=frozenset(four[:1]),
        )
        traces = [r for r in captured_logs() if r["message"] == "CLAIMS_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "conditional"

    def test_fingerprint_ignores_set_order(self, four):
        from claims_engines.tracer import compute_input_fingerprint

        fields = ("approvals",)
        a = compute_input_fingerprint(fields, {"approvals": frozenset(four)})
        b = compute_input_fingerprint(fields, {"approvals": frozenset(reversed(four))})
        assert a == b
