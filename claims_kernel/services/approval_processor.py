"""
claims_kernel.services.approval_processor -- Apply approver decisions.

Responsibility:
    Validate an approve/reject decision, append it to the action ledger,
    compute the claim's next position with the pure workflow engine and
    persist it.  ``override`` is the administrative path that skips the
    eligibility check.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/,
    db/ and claims_engines.

Invariants enforced:
    - Validation completes before anything is written.
    - One action per (claim, actor, step): checked against the ledger and
      backed by the UNIQUE constraint.
    - Status moves only along CLAIM_TRANSITIONS; steps never move back.
    - Per-claim serialization: the claim row is locked FOR UPDATE and
      carries a version counter; a stale writer fails with
      OptimisticLockError and its transaction, action included, rolls
      back.

Failure modes:
    - ClaimNotFoundError, InvalidClaimStateError, InvalidDecisionError,
      RejectionCommentRequiredError, StaleClaimStateError,
      RuleNotFoundError, MemberNotFoundError, DuplicateActionError,
      UnauthorizedApproverError, OptimisticLockError.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from claims_engines.eligibility import evaluate_eligibility
from claims_engines.workflow import next_transition, resolve_workflow_state
from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.directory import OrgDirectory, WorkflowPolicy
from claims_kernel.domain.workflow import (
    ActionDecision,
    ClaimRecord,
    ClaimStatus,
    WorkflowEvent,
    is_valid_claim_transition,
)
from claims_kernel.exceptions import (
    DuplicateActionError,
    InvalidClaimStateError,
    InvalidClaimTransitionError,
    InvalidDecisionError,
    MemberNotFoundError,
    OptimisticLockError,
    RejectionCommentRequiredError,
    StaleClaimStateError,
    UnauthorizedApproverError,
)
from claims_kernel.logging_config import LogContext, get_logger
from claims_kernel.models.action import ApprovalActionModel
from claims_kernel.models.claim import ClaimModel
from claims_kernel.selectors.action_selector import ActionSelector
from claims_kernel.selectors.member_selector import MemberSelector
from claims_kernel.selectors.rule_selector import RuleSelector
from claims_kernel.services.base import BaseService
from claims_kernel.services.workflow_observer import (
    LoggingWorkflowObserver,
    WorkflowObserver,
)

logger = get_logger("services.approval_processor")


def coerce_decision(decision: ActionDecision | str) -> ActionDecision:
    """Accept an ActionDecision or its string value (case-insensitive)."""
    if isinstance(decision, ActionDecision):
        return decision
    if isinstance(decision, str):
        try:
            return ActionDecision(decision.strip().upper())
        except ValueError:
            pass
    raise InvalidDecisionError(str(decision))


class ApprovalProcessor(BaseService[ClaimModel]):
    """The claim approval state machine's write path."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        directory: OrgDirectory | None = None,
        policy: WorkflowPolicy | None = None,
        observer: WorkflowObserver | None = None,
    ) -> None:
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._directory = directory or MemberSelector(session)
        self._policy = policy or WorkflowPolicy()
        self._observer = observer or LoggingWorkflowObserver()
        self._rules = RuleSelector(session)
        self._actions = ActionSelector(session)

    def process(
        self,
        claim_id: UUID,
        actor_id: UUID,
        decision: ActionDecision | str,
        comment: str | None = None,
        *,
        expected_step: int | None = None,
    ) -> ClaimRecord:
        """Record an approver's decision and move the claim along.

        Args:
            claim_id: The claim being decided.
            actor_id: The approver.
            decision: APPROVED or REJECTED.
            comment: Required (non-blank) when rejecting.
            expected_step: The step the approver was shown.  When given and
                the claim has moved on, StaleClaimStateError is raised.

        Returns:
            The claim after the transition.
        """
        return self._transition(
            claim_id, actor_id, decision, comment,
            expected_step=expected_step, is_override=False,
        )

    def override(
        self,
        claim_id: UUID,
        admin_id: UUID,
        decision: ActionDecision | str,
        comment: str | None = None,
        *,
        expected_step: int | None = None,
    ) -> ClaimRecord:
        """Administrative decision that bypasses step eligibility.

        The actor must hold the admin capability in the claim's
        organization.  The action is recorded with ``is_override`` set.
        """
        return self._transition(
            claim_id, admin_id, decision, comment,
            expected_step=expected_step, is_override=True,
        )

    def _transition(
        self,
        claim_id: UUID,
        actor_id: UUID,
        decision: ActionDecision | str,
        comment: str | None,
        *,
        expected_step: int | None,
        is_override: bool,
    ) -> ClaimRecord:
        with LogContext.bind(claim_id=str(claim_id), actor_id=str(actor_id)):
            model = self._load_claim_model(claim_id, for_update=True)
            claim = model.to_dto()

            if claim.status != ClaimStatus.PENDING:
                raise InvalidClaimStateError(str(claim_id), claim.status.value)

            decision_value = coerce_decision(decision)
            if decision_value == ActionDecision.REJECTED and not (
                comment and comment.strip()
            ):
                raise RejectionCommentRequiredError(str(claim_id))

            if expected_step is not None and expected_step != claim.current_step:
                raise StaleClaimStateError(
                    str(claim_id), expected_step, claim.current_step,
                )

            rule = (
                self._rules.get_rule(claim.rule_id)
                if claim.rule_id is not None
                else None
            )
            actor = self._directory.get_member(actor_id)
            if actor is None:
                raise MemberNotFoundError(str(actor_id))

            approved = self._actions.approved_actor_ids(
                claim_id, claim.current_step,
            )
            state = resolve_workflow_state(claim=claim, rule=rule)

            if actor_id in approved:
                raise DuplicateActionError(
                    str(claim_id), str(actor_id), claim.current_step,
                )

            if is_override:
                self._check_override_authority(claim, actor)
            else:
                submitter = self._directory.get_member(claim.submitter_id)
                actor_steps = frozenset(
                    step for _, step in self._actions.approved_steps_by_actor(
                        actor_id, [claim_id],
                    )
                )
                eligibility = evaluate_eligibility(
                    state=state,
                    actor=actor,
                    claim=claim,
                    submitter=submitter,
                    approved_at_step=approved,
                    policy=self._policy,
                    actor_approved_steps=actor_steps,
                )
                if not eligibility.eligible:
                    logger.warning(
                        "approver_refused",
                        extra={
                            "workflow": state.describe(),
                            "reason": eligibility.reason,
                        },
                    )
                    raise UnauthorizedApproverError(
                        str(claim_id), str(actor_id), eligibility.reason,
                    )

            now = self._clock.now()
            self.session.add(
                ApprovalActionModel(
                    action_id=uuid4(),
                    claim_id=claim_id,
                    actor_id=actor_id,
                    step_number=claim.current_step,
                    decision=decision_value.value,
                    comment=comment,
                    is_override=is_override,
                    acted_at=now,
                )
            )

            if decision_value == ActionDecision.APPROVED:
                approved = approved | {actor_id}

            outcome = next_transition(
                state=state,
                decision=decision_value,
                actor_id=actor_id,
                approvals=frozenset(approved),
            )

            if outcome.status != claim.status and not is_valid_claim_transition(
                claim.status, outcome.status,
            ):
                raise InvalidClaimTransitionError(
                    claim.status.value, outcome.status.value,
                )

            model.current_step = outcome.current_step
            model.status = outcome.status.value
            model.last_action_at = now
            if outcome.is_terminal:
                model.resolved_at = now

            try:
                self.session.flush()
            except StaleDataError as exc:
                logger.warning(
                    "claim_version_conflict",
                    extra={"version": claim.version},
                )
                raise OptimisticLockError("Claim", str(claim_id)) from exc
            except IntegrityError as exc:
                raise DuplicateActionError(
                    str(claim_id), str(actor_id), claim.current_step,
                ) from exc

            updated = model.to_dto()
            to_state = resolve_workflow_state(claim=updated, rule=rule)
            self._observer.record(
                WorkflowEvent(
                    kind=outcome.kind,
                    claim_id=claim_id,
                    from_state=state.describe(),
                    to_state=to_state.describe(),
                    from_step=claim.current_step,
                    to_step=updated.current_step,
                    from_status=claim.status,
                    to_status=updated.status,
                    actor_id=actor_id,
                    decision=decision_value,
                    is_override=is_override,
                    occurred_at=now,
                    reason=outcome.reason,
                )
            )

            logger.info(
                "claim_transition",
                extra={
                    "decision": decision_value.value,
                    "transition": outcome.kind.value,
                    "from_step": claim.current_step,
                    "to_step": updated.current_step,
                    "new_status": updated.status.value,
                    "is_override": is_override,
                },
            )
            return updated

    def _check_override_authority(self, claim: ClaimRecord, actor) -> None:
        admin_capability = self._policy.admin_capability
        if actor.organization_id != claim.organization_id:
            raise UnauthorizedApproverError(
                str(claim.claim_id), str(actor.user_id),
                "administrator belongs to another organization",
            )
        if not actor.has_capability(admin_capability):
            raise UnauthorizedApproverError(
                str(claim.claim_id), str(actor.user_id),
                f"override requires {admin_capability}",
            )
