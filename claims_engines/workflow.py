"""
claims_engines.workflow -- The claim approval state machine.

Responsibility:
    Resolve which workflow a claim is in, choose its starting step, and
    compute the next (status, step) after an approver's decision.

Architecture position:
    Engines -- pure decision layer, zero I/O.  The approval processor
    loads the inputs, calls ``next_transition`` and persists the result.

Transitions:
    REJECTED                      -> REJECTED at the current step
    default path, APPROVED        -> 0 -> 1 -> 2 -> APPROVED
    SEQUENTIAL, APPROVED          -> next index, APPROVED after the last
    CONDITIONAL/COMBINED, APPROVED -> APPROVED when a condition fires,
                                     otherwise hold while a condition is
                                     pending, otherwise as SEQUENTIAL

There is no edge to a lower step and no edge out of a terminal state.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from claims_engines.conditional import (
    ConditionalEvaluation,
    evaluate_conditions,
    is_condition_pending,
)
from claims_engines.tracer import traced_engine
from claims_kernel.domain.directory import MemberProfile
from claims_kernel.domain.workflow import (
    ActionDecision,
    ApprovalRule,
    ClaimRecord,
    ClaimStatus,
    DefaultPathState,
    DefaultStep,
    FormalRuleState,
    TerminalState,
    WorkflowEventKind,
    WorkflowState,
)


@dataclass(frozen=True)
class TransitionOutcome:
    """Where a claim goes after one decision."""

    status: ClaimStatus
    current_step: int
    kind: WorkflowEventKind
    reason: str
    evaluation: ConditionalEvaluation | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ClaimStatus.PENDING


def uses_default_path(rule: ApprovalRule | None) -> bool:
    """No rule, or a rule that defers to the manager chain."""
    return rule is None or rule.is_manager_approver


def resolve_workflow_state(
    *,
    claim: ClaimRecord,
    rule: ApprovalRule | None,
) -> WorkflowState:
    if claim.is_terminal:
        return TerminalState(claim.status)
    if uses_default_path(rule):
        return DefaultPathState(claim.current_step)
    return FormalRuleState(rule=rule, step_index=claim.current_step)


def initial_step(
    *,
    rule: ApprovalRule | None,
    submitter: MemberProfile | None,
) -> int:
    """Starting step for a newly created claim.

    The default path starts with the submitter's manager and skips to
    finance when there is none.  Formal rules start at their first step.
    """
    if uses_default_path(rule):
        if submitter is not None and submitter.manager_id is not None:
            return int(DefaultStep.MANAGER)
        return int(DefaultStep.FINANCE)
    return 0


@traced_engine(
    "claim_workflow",
    "1.0",
    fingerprint_fields=("state", "decision", "actor_id", "approvals"),
)
def next_transition(
    *,
    state: WorkflowState,
    decision: ActionDecision,
    actor_id: UUID,
    approvals: frozenset[UUID],
) -> TransitionOutcome:
    """Compute the claim's next position.

    Args:
        state: The claim's workflow state before the decision.
        decision: The decision just recorded.
        actor_id: Who made it.
        approvals: Distinct actors with an APPROVED action at the current
            step, including this one when ``decision`` is APPROVED.

    Raises:
        ValueError: If ``state`` is terminal.
    """
    if isinstance(state, TerminalState):
        raise ValueError(f"Claim is already {state.status.value}")

    current = (
        state.step if isinstance(state, DefaultPathState) else state.step_index
    )

    if decision == ActionDecision.REJECTED:
        return TransitionOutcome(
            status=ClaimStatus.REJECTED,
            current_step=current,
            kind=WorkflowEventKind.REJECTED,
            reason=f"Rejected by {actor_id}",
        )

    if isinstance(state, DefaultPathState):
        return _advance_default_path(state.step)

    return _advance_formal_rule(state, actor_id, approvals)


def _advance_default_path(step: int) -> TransitionOutcome:
    if step == DefaultStep.MANAGER:
        nxt = DefaultStep.FINANCE
    elif step == DefaultStep.FINANCE:
        nxt = DefaultStep.DIRECTOR
    else:
        return TransitionOutcome(
            status=ClaimStatus.APPROVED,
            current_step=step,
            kind=WorkflowEventKind.APPROVED,
            reason="Default approval chain complete",
        )
    return TransitionOutcome(
        status=ClaimStatus.PENDING,
        current_step=int(nxt),
        kind=WorkflowEventKind.ADVANCED,
        reason=f"Advanced to {nxt.name.lower()} step",
    )


def _advance_formal_rule(
    state: FormalRuleState,
    actor_id: UUID,
    approvals: frozenset[UUID],
) -> TransitionOutcome:
    rule = state.rule
    index = state.step_index
    evaluation = None

    if rule.is_conditional:
        evaluation = evaluate_conditions(
            rule=rule,
            step_index=index,
            acting_approver_id=actor_id,
            approvals=approvals,
        )
        if evaluation.auto_approve:
            return TransitionOutcome(
                status=ClaimStatus.APPROVED,
                current_step=index,
                kind=WorkflowEventKind.AUTO_APPROVED,
                reason=evaluation.reason,
                evaluation=evaluation,
            )
        if is_condition_pending(rule=rule, step_index=index, approvals=approvals):
            return TransitionOutcome(
                status=ClaimStatus.PENDING,
                current_step=index,
                kind=WorkflowEventKind.HELD,
                reason=evaluation.reason,
                evaluation=evaluation,
            )

    if index >= rule.last_index:
        return TransitionOutcome(
            status=ClaimStatus.APPROVED,
            current_step=index,
            kind=WorkflowEventKind.APPROVED,
            reason="Final step approved",
            evaluation=evaluation,
        )
    return TransitionOutcome(
        status=ClaimStatus.PENDING,
        current_step=index + 1,
        kind=WorkflowEventKind.ADVANCED,
        reason=f"Advanced to step index {index + 1}",
        evaluation=evaluation,
    )
