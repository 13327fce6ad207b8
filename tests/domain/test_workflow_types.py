"""Tests for the claim workflow value objects and status state machine."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from claims_kernel.domain.clock import DeterministicClock
from claims_kernel.domain.directory import MemberProfile
from claims_kernel.domain.workflow import (
    CLAIM_TRANSITIONS,
    TERMINAL_CLAIM_STATUSES,
    ApprovalRule,
    ClaimRecord,
    ClaimStatus,
    DefaultPathState,
    FormalRuleState,
    RuleStep,
    RuleType,
    StepApprover,
    TerminalState,
    is_valid_claim_transition,
)


def _rule(rule_type=RuleType.SEQUENTIAL, steps=2):
    return ApprovalRule(
        rule_id=uuid4(),
        organization_id=uuid4(),
        name="Two step",
        rule_type=rule_type,
        steps=tuple(
            RuleStep(index=i, sequence_order=i + 1, approvers=(StepApprover(uuid4()),))
            for i in range(steps)
        ),
    )


class TestClaimTransitions:

    def test_pending_can_reach_both_terminal_statuses(self):
        assert is_valid_claim_transition(ClaimStatus.PENDING, ClaimStatus.APPROVED)
        assert is_valid_claim_transition(ClaimStatus.PENDING, ClaimStatus.REJECTED)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_CLAIM_STATUSES))
    def test_terminal_statuses_have_no_exits(self, terminal):
        assert CLAIM_TRANSITIONS[terminal] == frozenset()
        for target in ClaimStatus:
            assert not is_valid_claim_transition(terminal, target)

    def test_pending_to_pending_is_not_an_edge(self):
        assert not is_valid_claim_transition(ClaimStatus.PENDING, ClaimStatus.PENDING)

    def test_every_status_has_an_entry(self):
        assert set(CLAIM_TRANSITIONS) == set(ClaimStatus)


class TestRuleDefinitions:

    def test_step_at_bounds(self):
        rule = _rule(steps=2)
        assert rule.step_at(0).sequence_order == 1
        assert rule.step_at(1).sequence_order == 2
        assert rule.step_at(2) is None
        assert rule.step_at(-1) is None
        assert rule.last_index == 1

    def test_key_approver_ids(self):
        key, plain = uuid4(), uuid4()
        step = RuleStep(
            index=0,
            sequence_order=1,
            approvers=(StepApprover(key, is_key_approver=True), StepApprover(plain)),
        )
        assert step.approver_ids == frozenset({key, plain})
        assert step.key_approver_ids == frozenset({key})
        assert step.has_approver(plain)
        assert not step.has_approver(uuid4())

    @pytest.mark.parametrize(
        "rule_type,expected",
        [
            (RuleType.SEQUENTIAL, False),
            (RuleType.CONDITIONAL, True),
            (RuleType.COMBINED, True),
        ],
    )
    def test_is_conditional(self, rule_type, expected):
        assert _rule(rule_type).is_conditional is expected


class TestWorkflowStates:

    def test_describe(self):
        rule = _rule(RuleType.COMBINED)
        assert TerminalState(ClaimStatus.APPROVED).describe() == "terminal:APPROVED"
        assert DefaultPathState(0).describe() == "default:manager"
        assert DefaultPathState(2).describe() == "default:director"
        assert DefaultPathState(7).describe() == "default:7"
        assert FormalRuleState(rule, 1).describe() == "rule:combined:1"

    def test_formal_state_step_lookup(self):
        rule = _rule(steps=1)
        assert FormalRuleState(rule, 0).step is rule.steps[0]
        assert FormalRuleState(rule, 3).step is None


class TestRecords:

    def test_claim_terminal_and_initiated_flags(self):
        claim = ClaimRecord(
            claim_id=uuid4(),
            organization_id=uuid4(),
            submitter_id=uuid4(),
            amount=Decimal("10.00"),
            currency="USD",
        )
        assert not claim.is_terminal
        assert not claim.is_initiated

    def test_member_capabilities(self):
        member = MemberProfile(
            user_id=uuid4(),
            organization_id=uuid4(),
            capabilities=frozenset({"FINANCE"}),
        )
        assert member.has_capability("FINANCE")
        assert not member.has_capability("DIRECTOR")
        assert member.has_any_capability(frozenset({"DIRECTOR", "FINANCE"}))
        assert not member.has_any_capability(frozenset())


class TestDeterministicClock:

    def test_fixed_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        start = clock.now()
        clock.advance(5)
        assert clock.now() - start == timedelta(seconds=5)
        assert clock.tick() - start == timedelta(seconds=6)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(10)
        pinned = datetime(2025, 6, 1, tzinfo=timezone.utc)
        clock.set_time(pinned)
        assert clock.now() == pinned
        assert clock.now().tzinfo is not None
