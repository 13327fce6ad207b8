"""Tests for approver eligibility (claims_engines.eligibility)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from claims_engines.eligibility import evaluate_eligibility
from claims_kernel.domain.directory import MemberProfile, WorkflowPolicy
from claims_kernel.domain.workflow import (
    ApprovalRule,
    ClaimRecord,
    ClaimStatus,
    DefaultPathState,
    FormalRuleState,
    RuleStep,
    RuleType,
    StepApprover,
    TerminalState,
)

ORG = uuid4()


def _member(capabilities=(), manager_id=None, org=ORG, active=True):
    return MemberProfile(
        user_id=uuid4(),
        organization_id=org,
        manager_id=manager_id,
        capabilities=frozenset(capabilities),
        is_active=active,
    )


def _claim(submitter, step=0):
    return ClaimRecord(
        claim_id=uuid4(),
        organization_id=ORG,
        submitter_id=submitter.user_id,
        amount=Decimal("50.00"),
        currency="USD",
        current_step=step,
    )


def _check(state, actor, submitter, approved=frozenset(), policy=None, actor_steps=frozenset()):
    return evaluate_eligibility(
        state=state,
        actor=actor,
        claim=_claim(submitter),
        submitter=submitter,
        approved_at_step=approved,
        policy=policy or WorkflowPolicy(),
        actor_approved_steps=actor_steps,
    )


@pytest.fixture
def manager():
    return _member(("MANAGER",))


@pytest.fixture
def submitter(manager):
    return _member(manager_id=manager.user_id)


class TestDefaultPath:

    def test_manager_step_accepts_submitters_manager(self, manager, submitter):
        result = _check(DefaultPathState(0), manager, submitter)
        assert result.eligible
        assert bool(result)

    def test_manager_step_refuses_other_manager(self, submitter):
        other = _member(("MANAGER",))
        result = _check(DefaultPathState(0), other, submitter)
        assert not result
        assert "manager" in result.reason

    def test_finance_step_needs_capability(self, manager, submitter):
        finance = _member(("FINANCE",))
        assert _check(DefaultPathState(1), finance, submitter)
        assert not _check(DefaultPathState(1), manager, submitter)

    def test_director_step_needs_capability(self, submitter):
        director = _member(("DIRECTOR",))
        finance = _member(("FINANCE",))
        assert _check(DefaultPathState(2), director, submitter)
        assert not _check(DefaultPathState(2), finance, submitter)

    def test_unknown_default_step(self, submitter):
        assert not _check(DefaultPathState(3), _member(("DIRECTOR",)), submitter)

    def test_custom_capability_names(self, submitter):
        policy = WorkflowPolicy(finance_capability="AP_CLERK")
        clerk = _member(("AP_CLERK",))
        finance = _member(("FINANCE",))
        assert _check(DefaultPathState(1), clerk, submitter, policy=policy)
        assert not _check(DefaultPathState(1), finance, submitter, policy=policy)


class TestFormalRule:

    def _state(self, approvers, step_index=0):
        rule = ApprovalRule(
            rule_id=uuid4(),
            organization_id=ORG,
            name="Formal",
            rule_type=RuleType.SEQUENTIAL,
            steps=(
                RuleStep(0, 1, tuple(StepApprover(a.user_id) for a in approvers)),
            ),
        )
        return FormalRuleState(rule, step_index)

    def test_named_approver_eligible(self, submitter):
        approver = _member()
        assert _check(self._state([approver]), approver, submitter)

    def test_capabilities_do_not_matter_on_formal_rule(self, submitter):
        director = _member(("DIRECTOR", "FINANCE"))
        assert not _check(self._state([_member()]), director, submitter)

    def test_step_out_of_range(self, submitter):
        approver = _member()
        result = _check(self._state([approver], step_index=4), approver, submitter)
        assert not result


class TestCommonRefusals:

    def test_other_organization(self, submitter):
        outsider = _member(("FINANCE",), org=uuid4())
        result = _check(DefaultPathState(1), outsider, submitter)
        assert not result
        assert "organization" in result.reason

    def test_inactive_member(self, submitter):
        finance = _member(("FINANCE",), active=False)
        assert not _check(DefaultPathState(1), finance, submitter)

    def test_terminal_claim(self, manager, submitter):
        result = _check(TerminalState(ClaimStatus.APPROVED), manager, submitter)
        assert not result
        assert "APPROVED" in result.reason

    def test_already_approved_this_step(self, submitter):
        finance = _member(("FINANCE",))
        result = _check(
            DefaultPathState(1), finance, submitter,
            approved=frozenset({finance.user_id}),
        )
        assert not result


class TestLegacyManagerFallback:

    def test_disabled_by_default(self, manager, submitter):
        assert not _check(DefaultPathState(2), manager, submitter)

    def test_enabled_lets_elevated_manager_act_anywhere(self, manager, submitter):
        policy = WorkflowPolicy(legacy_manager_fallback=True)
        assert _check(DefaultPathState(2), manager, submitter, policy=policy)

        rule_state = TestFormalRule()._state([_member()])
        assert _check(rule_state, manager, submitter, policy=policy)

    def test_manager_without_elevated_capability(self, submitter):
        plain_manager = _member(())
        employee = _member(manager_id=plain_manager.user_id)
        policy = WorkflowPolicy(legacy_manager_fallback=True)
        assert not _check(DefaultPathState(1), plain_manager, employee, policy=policy)

    def test_fallback_respects_duplicate_refusal(self, manager, submitter):
        policy = WorkflowPolicy(legacy_manager_fallback=True)
        assert not _check(
            DefaultPathState(1), manager, submitter,
            approved=frozenset({manager.user_id}), policy=policy,
        )

    def test_fallback_ends_after_first_approval(self, manager, submitter):
        policy = WorkflowPolicy(legacy_manager_fallback=True)
        result = _check(
            DefaultPathState(1), manager, submitter,
            policy=policy, actor_steps=frozenset({0}),
        )
        assert not result
        assert "finance" in result.reason

    def test_fallback_ends_on_formal_rules_too(self, manager, submitter):
        policy = WorkflowPolicy(legacy_manager_fallback=True)
        rule_state = TestFormalRule()._state([_member()])
        assert not _check(
            rule_state, manager, submitter, policy=policy, actor_steps=frozenset({0}),
        )
