"""
claims_engines.eligibility -- Who may act on a claim right now.

Responsibility:
    One eligibility rule shared by the approval processor (to refuse an
    actor) and the pending-work resolver (to list a claim).  Keeping both
    on the same function is what guarantees that every listed claim can
    actually be acted on.

Architecture position:
    Engines -- pure decision layer, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from claims_engines.tracer import traced_engine
from claims_kernel.domain.directory import MemberProfile, WorkflowPolicy
from claims_kernel.domain.workflow import (
    ClaimRecord,
    DefaultPathState,
    DefaultStep,
    FormalRuleState,
    TerminalState,
    WorkflowState,
)


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: str

    def __bool__(self) -> bool:
        return self.eligible


@traced_engine(
    "eligibility",
    "1.0",
    fingerprint_fields=("state", "actor", "approved_at_step", "actor_approved_steps"),
)
def evaluate_eligibility(
    *,
    state: WorkflowState,
    actor: MemberProfile,
    claim: ClaimRecord,
    submitter: MemberProfile | None,
    approved_at_step: frozenset[UUID],
    policy: WorkflowPolicy,
    actor_approved_steps: frozenset[int] = frozenset(),
) -> Eligibility:
    """Decide whether ``actor`` may approve or reject ``claim`` in ``state``.

    Args:
        state: The claim's resolved workflow state.
        actor: The member attempting to act.
        claim: The claim being acted on.
        submitter: The claim's submitter, or None when unknown.
        approved_at_step: Actors with an APPROVED action at the claim's
            current step.
        policy: Capability names and the legacy fallback switch.
        actor_approved_steps: Steps at which ``actor`` already has an
            APPROVED action on this claim.  The legacy fallback never
            applies to an actor who approved an earlier step, so one
            manager cannot carry a claim through every step alone.
    """
    if actor.organization_id != claim.organization_id:
        return Eligibility(False, "actor belongs to another organization")
    if not actor.is_active:
        return Eligibility(False, "actor is inactive")
    if isinstance(state, TerminalState):
        return Eligibility(False, f"claim is {state.status.value}")
    if actor.user_id in approved_at_step:
        return Eligibility(False, "actor already approved this step")

    if (
        policy.legacy_manager_fallback
        and not actor_approved_steps
        and _is_elevated_manager(actor, submitter, policy)
    ):
        return Eligibility(True, "submitter's manager (legacy fallback)")

    if isinstance(state, DefaultPathState):
        return _default_path_eligibility(state, actor, submitter, policy)
    if isinstance(state, FormalRuleState):
        return _formal_rule_eligibility(state, actor)
    raise TypeError(f"Unknown workflow state: {state!r}")


def _is_elevated_manager(
    actor: MemberProfile,
    submitter: MemberProfile | None,
    policy: WorkflowPolicy,
) -> bool:
    return (
        submitter is not None
        and submitter.manager_id == actor.user_id
        and actor.has_any_capability(policy.elevated_capabilities)
    )


def _default_path_eligibility(
    state: DefaultPathState,
    actor: MemberProfile,
    submitter: MemberProfile | None,
    policy: WorkflowPolicy,
) -> Eligibility:
    if state.step == DefaultStep.MANAGER:
        if submitter is not None and submitter.manager_id == actor.user_id:
            return Eligibility(True, "submitter's manager")
        return Eligibility(False, "manager step requires the submitter's manager")
    if state.step == DefaultStep.FINANCE:
        if actor.has_capability(policy.finance_capability):
            return Eligibility(True, f"holds {policy.finance_capability}")
        return Eligibility(
            False, f"finance step requires {policy.finance_capability}",
        )
    if state.step == DefaultStep.DIRECTOR:
        if actor.has_capability(policy.director_capability):
            return Eligibility(True, f"holds {policy.director_capability}")
        return Eligibility(
            False, f"director step requires {policy.director_capability}",
        )
    return Eligibility(False, f"default path has no step {state.step}")


def _formal_rule_eligibility(
    state: FormalRuleState,
    actor: MemberProfile,
) -> Eligibility:
    step = state.step
    if step is None:
        return Eligibility(False, f"rule has no step {state.step_index}")
    if step.has_approver(actor.user_id):
        return Eligibility(True, f"named approver of step {step.sequence_order}")
    return Eligibility(
        False, f"not an approver of step {step.sequence_order}",
    )
