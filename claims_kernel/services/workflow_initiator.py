"""
claims_kernel.services.workflow_initiator -- Start a claim's approval workflow.

Responsibility:
    Place a newly created claim on its first approval step.  The default
    path starts with the submitter's manager (or finance when there is no
    manager); a formal rule starts at its first step after its structure
    has been checked against the directory.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/,
    db/ and claims_engines.

Failure modes:
    - ClaimNotFoundError if the claim does not exist.
    - InvalidClaimStateError if the claim is not pending.
    - WorkflowAlreadyInitiatedError on a second initiate().
    - RuleNotFoundError if the referenced rule is missing.
    - RuleHasNoStepsError / InvalidRuleError / ApproverNotFoundError if
      the formal rule is not usable.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from claims_engines.workflow import (
    initial_step,
    resolve_workflow_state,
    uses_default_path,
)
from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.directory import OrgDirectory
from claims_kernel.domain.workflow import (
    ApprovalRule,
    ClaimRecord,
    ClaimStatus,
    WorkflowEvent,
    WorkflowEventKind,
)
from claims_kernel.exceptions import (
    ApproverNotFoundError,
    InvalidClaimStateError,
    InvalidRuleError,
    RuleHasNoStepsError,
    WorkflowAlreadyInitiatedError,
)
from claims_kernel.logging_config import LogContext, get_logger
from claims_kernel.models.claim import ClaimModel
from claims_kernel.selectors.member_selector import MemberSelector
from claims_kernel.selectors.rule_selector import RuleSelector
from claims_kernel.services.base import BaseService
from claims_kernel.services.workflow_observer import (
    LoggingWorkflowObserver,
    WorkflowObserver,
)

logger = get_logger("services.workflow_initiator")


class WorkflowInitiator(BaseService[ClaimModel]):
    """Sets a claim's initial step.  Called exactly once per claim."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        directory: OrgDirectory | None = None,
        observer: WorkflowObserver | None = None,
    ) -> None:
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._directory = directory or MemberSelector(session)
        self._rules = RuleSelector(session)
        self._observer = observer or LoggingWorkflowObserver()

    def initiate(self, claim_id: UUID) -> ClaimRecord:
        with LogContext.bind(claim_id=str(claim_id)):
            model = self._load_claim_model(claim_id, for_update=True)

            if model.status != ClaimStatus.PENDING.value:
                raise InvalidClaimStateError(str(claim_id), model.status)
            if model.initiated_at is not None:
                raise WorkflowAlreadyInitiatedError(str(claim_id))

            rule = (
                self._rules.get_rule(model.rule_id)
                if model.rule_id is not None
                else None
            )
            if not uses_default_path(rule):
                check_rule_usable(rule, self._directory)

            submitter = self._directory.get_member(model.submitter_id)
            step = initial_step(rule=rule, submitter=submitter)

            now = self._clock.now()
            model.current_step = step
            model.initiated_at = now
            self.session.flush()

            claim = model.to_dto()
            state = resolve_workflow_state(claim=claim, rule=rule)
            self._observer.record(
                WorkflowEvent(
                    kind=WorkflowEventKind.INITIATED,
                    claim_id=claim.claim_id,
                    from_state="created",
                    to_state=state.describe(),
                    from_step=None,
                    to_step=step,
                    from_status=ClaimStatus.PENDING,
                    to_status=ClaimStatus.PENDING,
                    actor_id=claim.submitter_id,
                    occurred_at=now,
                )
            )

            logger.info(
                "workflow_initiated",
                extra={
                    "rule_id": str(rule.rule_id) if rule else None,
                    "workflow": state.describe(),
                    "initial_step": step,
                },
            )
            return claim


def check_rule_usable(rule: ApprovalRule, directory: OrgDirectory) -> None:
    """A formal rule needs steps with approvers who belong to its organization.

    Rules are validated when created, but members can leave or change
    organization afterwards, so the check is repeated whenever a claim is
    put on the rule.
    """
    if not rule.steps:
        raise RuleHasNoStepsError(str(rule.rule_id))

    for step in rule.steps:
        if not step.approvers:
            raise InvalidRuleError(
                "steps",
                f"step {step.sequence_order} of rule {rule.rule_id} "
                "has no approvers",
            )
        for approver in step.approvers:
            member = directory.get_member(approver.user_id)
            if member is None or member.organization_id != rule.organization_id:
                raise ApproverNotFoundError(
                    str(rule.rule_id),
                    str(approver.user_id),
                    step.sequence_order,
                )
