"""
claims_kernel.services.rule_service -- Approval rule administration.

Responsibility:
    Create, assign and delete an organization's approval rules.  Rules
    are validated completely before anything is written.

Architecture position:
    Kernel > Services.

Failure modes:
    - InvalidRuleError for malformed names, types, thresholds or steps.
    - ApproverNotFoundError when an approver is not a member of the
      rule's organization.
    - RuleOrganizationMismatchError when assigning across organizations.
    - ApproverNotFoundError / InvalidRuleError when a rule being assigned
      is no longer usable (an approver left the organization).
    - InvalidClaimStateError when assigning to a claim that is no longer
      pending or already has actions.
    - RuleInUseError when deleting a rule that claims reference.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from sqlalchemy import select
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
    RuleType,
    StepApprover,
    WorkflowEvent,
    WorkflowEventKind,
)
from claims_kernel.exceptions import (
    ApproverNotFoundError,
    InvalidClaimStateError,
    InvalidRuleError,
    RuleInUseError,
    RuleNotFoundError,
    RuleOrganizationMismatchError,
)
from claims_kernel.logging_config import LogContext, get_logger
from claims_kernel.models.claim import ClaimModel
from claims_kernel.models.rule import (
    ApprovalRuleModel,
    ApprovalStepModel,
    StepApproverModel,
)
from claims_kernel.selectors.action_selector import ActionSelector
from claims_kernel.selectors.member_selector import MemberSelector
from claims_kernel.selectors.rule_selector import RuleSelector, rule_to_dto
from claims_kernel.services.base import BaseService
from claims_kernel.services.workflow_initiator import check_rule_usable
from claims_kernel.services.workflow_observer import (
    LoggingWorkflowObserver,
    WorkflowObserver,
)

logger = get_logger("services.rule_service")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100


@dataclass(frozen=True)
class StepSpec:
    """Input for one rule step."""

    sequence_order: int
    approvers: tuple[StepApprover, ...]


class RuleService(BaseService[ApprovalRuleModel]):
    """Writes approval rules."""

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
        self._observer = observer or LoggingWorkflowObserver()
        self._rules = RuleSelector(session)
        self._actions = ActionSelector(session)

    def create_rule(
        self,
        organization_id: UUID,
        name: str,
        rule_type: RuleType | str,
        steps: list[StepSpec],
        percentage_threshold: Decimal | int | str | None = None,
        is_manager_approver: bool = False,
    ) -> ApprovalRule:
        rule_id = uuid4()
        clean_name = self._validate_name(name)
        kind = self._validate_rule_type(rule_type)
        threshold = self._validate_threshold(percentage_threshold)
        self._validate_steps(rule_id, organization_id, steps)

        model = ApprovalRuleModel(
            rule_id=rule_id,
            organization_id=organization_id,
            name=clean_name,
            rule_type=kind.value,
            percentage_threshold=threshold,
            is_manager_approver=is_manager_approver,
            created_at=self._clock.now(),
        )
        for spec in sorted(steps, key=lambda s: s.sequence_order):
            step = ApprovalStepModel(
                step_id=uuid4(),
                rule_id=rule_id,
                sequence_order=spec.sequence_order,
            )
            step.approvers = [
                StepApproverModel(
                    step_id=step.step_id,
                    user_id=approver.user_id,
                    is_key_approver=approver.is_key_approver,
                    position=position,
                )
                for position, approver in enumerate(spec.approvers)
            ]
            model.steps.append(step)

        self.session.add(model)
        self.session.flush()

        logger.info(
            "approval_rule_created",
            extra={
                "rule_id": str(rule_id),
                "organization_id": str(organization_id),
                "rule_type": kind.value,
                "step_count": len(steps),
                "percentage_threshold": (
                    str(threshold) if threshold is not None else None
                ),
            },
        )
        return rule_to_dto(model)

    def assign_rule(self, claim_id: UUID, rule_id: UUID) -> ClaimRecord:
        """Point a pending, untouched claim at a rule.

        A claim whose workflow already started is moved to the new rule's
        starting step and a ``rerouted`` workflow event is recorded.
        """
        with LogContext.bind(claim_id=claim_id, rule_id=rule_id):
            claim = self._load_claim_model(claim_id, for_update=True)
            rule = self._rules.get_rule(rule_id)

            if rule.organization_id != claim.organization_id:
                raise RuleOrganizationMismatchError(
                    str(rule_id), str(claim.organization_id),
                )
            if claim.status != ClaimStatus.PENDING.value:
                raise InvalidClaimStateError(str(claim_id), claim.status)
            if self._actions.count_for_claim(claim_id) > 0:
                raise InvalidClaimStateError(
                    str(claim_id),
                    claim.status,
                    f"Claim {claim_id} already has approval actions; "
                    "its rule cannot change",
                )
            if not uses_default_path(rule):
                check_rule_usable(rule, self._directory)

            before = claim.to_dto()
            claim.rule_id = rule_id
            if before.is_initiated:
                claim.current_step = initial_step(
                    rule=rule,
                    submitter=self._directory.get_member(claim.submitter_id),
                )
            self.session.flush()
            after = claim.to_dto()

            if before.is_initiated:
                previous_rule = (
                    self._rules.find_rule(before.rule_id)
                    if before.rule_id is not None
                    else None
                )
                self._observer.record(
                    WorkflowEvent(
                        kind=WorkflowEventKind.REROUTED,
                        claim_id=claim_id,
                        from_state=resolve_workflow_state(
                            claim=before, rule=previous_rule,
                        ).describe(),
                        to_state=resolve_workflow_state(
                            claim=after, rule=rule,
                        ).describe(),
                        from_step=before.current_step,
                        to_step=after.current_step,
                        from_status=ClaimStatus.PENDING,
                        to_status=ClaimStatus.PENDING,
                        occurred_at=self._clock.now(),
                        reason=f"Assigned rule {rule.name}",
                    )
                )

            logger.info(
                "approval_rule_assigned",
                extra={"to_step": after.current_step},
            )
            return after

    def delete_rule(self, rule_id: UUID) -> None:
        model = self.session.execute(
            select(ApprovalRuleModel).where(ApprovalRuleModel.rule_id == rule_id)
        ).scalar_one_or_none()
        if model is None:
            raise RuleNotFoundError(str(rule_id))

        in_use = self._rules.claims_using_rule(rule_id)
        if in_use:
            raise RuleInUseError(str(rule_id), in_use)

        self.session.delete(model)
        self.session.flush()
        logger.info("approval_rule_deleted", extra={"rule_id": str(rule_id)})

    def rules_for_organization(self, organization_id: UUID) -> list[ApprovalRule]:
        return self._rules.rules_for_organization(organization_id)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_name(name: str) -> str:
        clean = (name or "").strip()
        if not NAME_MIN_LENGTH <= len(clean) <= NAME_MAX_LENGTH:
            raise InvalidRuleError(
                "name",
                f"must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters",
            )
        return clean

    @staticmethod
    def _validate_rule_type(rule_type: RuleType | str) -> RuleType:
        if isinstance(rule_type, RuleType):
            return rule_type
        try:
            return RuleType(str(rule_type).strip().upper())
        except ValueError:
            raise InvalidRuleError(
                "rule_type", "must be SEQUENTIAL, CONDITIONAL, or COMBINED",
            ) from None

    @staticmethod
    def _validate_threshold(
        threshold: Decimal | int | str | None,
    ) -> Decimal | None:
        if threshold is None:
            return None
        if isinstance(threshold, float):
            raise InvalidRuleError("percentage_threshold", "must not be a float")
        try:
            value = Decimal(str(threshold))
        except (InvalidOperation, ValueError):
            raise InvalidRuleError(
                "percentage_threshold", f"not a number: {threshold!r}",
            ) from None
        if not value.is_finite() or value < 0 or value > 100:
            raise InvalidRuleError("percentage_threshold", "must be between 0 and 100")
        return value

    def _validate_steps(
        self,
        rule_id: UUID,
        organization_id: UUID,
        steps: list[StepSpec],
    ) -> None:
        if not steps:
            raise InvalidRuleError("steps", "at least one approval step is required")

        seen_orders: set[int] = set()
        for spec in steps:
            if spec.sequence_order < 1:
                raise InvalidRuleError(
                    "steps", f"sequence_order must be positive, got {spec.sequence_order}",
                )
            if spec.sequence_order in seen_orders:
                raise InvalidRuleError(
                    "steps", f"duplicate sequence_order {spec.sequence_order}",
                )
            seen_orders.add(spec.sequence_order)

            if not spec.approvers:
                raise InvalidRuleError(
                    "steps", f"step {spec.sequence_order} has no approvers",
                )
            user_ids = [a.user_id for a in spec.approvers]
            if len(set(user_ids)) != len(user_ids):
                raise InvalidRuleError(
                    "steps",
                    f"step {spec.sequence_order} lists an approver twice",
                )
            for user_id in user_ids:
                member = self._directory.get_member(user_id)
                if member is None or member.organization_id != organization_id:
                    raise ApproverNotFoundError(
                        str(rule_id), str(user_id), spec.sequence_order,
                    )
