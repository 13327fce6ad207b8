"""
claims_kernel.services.pending_work_resolver -- "What can I act on?"

Responsibility:
    List the pending claims a user may approve or reject right now.
    Uses the same ``evaluate_eligibility`` the approval processor uses, so
    every listed claim is one the processor will accept from this user.

Architecture position:
    Kernel > Services (read-only; it never flushes).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from claims_engines.eligibility import evaluate_eligibility
from claims_engines.workflow import resolve_workflow_state
from claims_kernel.domain.directory import (
    MemberProfile,
    OrgDirectory,
    WorkflowPolicy,
)
from claims_kernel.domain.workflow import ApprovalRule, ClaimRecord, ClaimStatus
from claims_kernel.exceptions import MemberNotFoundError
from claims_kernel.logging_config import get_logger
from claims_kernel.models.claim import ClaimModel
from claims_kernel.selectors.action_selector import ActionSelector
from claims_kernel.selectors.member_selector import MemberSelector
from claims_kernel.selectors.rule_selector import RuleSelector
from claims_kernel.services.base import BaseService

logger = get_logger("services.pending_work_resolver")


class PendingWorkResolver(BaseService[ClaimModel]):
    """Finds claims awaiting a given approver."""

    def __init__(
        self,
        session: Session,
        directory: OrgDirectory | None = None,
        policy: WorkflowPolicy | None = None,
    ) -> None:
        super().__init__(session)
        self._directory = directory or MemberSelector(session)
        self._policy = policy or WorkflowPolicy()
        self._rules = RuleSelector(session)
        self._actions = ActionSelector(session)

    def pending_for(self, user_id: UUID) -> list[ClaimRecord]:
        """Pending, initiated claims in the user's organization that the
        user is eligible to act on, oldest first.

        Raises:
            MemberNotFoundError: If the user is unknown to the directory.
        """
        actor = self._directory.get_member(user_id)
        if actor is None:
            raise MemberNotFoundError(str(user_id))

        claims = [
            m.to_dto()
            for m in self.session.execute(
                select(ClaimModel)
                .where(
                    ClaimModel.organization_id == actor.organization_id,
                    ClaimModel.status == ClaimStatus.PENDING.value,
                    ClaimModel.initiated_at.is_not(None),
                )
                .order_by(ClaimModel.created_at, ClaimModel.claim_id)
            ).scalars()
        ]
        if not claims:
            return []

        approved_steps = self._actions.approved_steps_by_actor(
            user_id, [c.claim_id for c in claims],
        )
        rules: dict[UUID, ApprovalRule | None] = {}
        submitters: dict[UUID, MemberProfile | None] = {}

        result: list[ClaimRecord] = []
        for claim in claims:
            rule = None
            if claim.rule_id is not None:
                if claim.rule_id not in rules:
                    rules[claim.rule_id] = self._rules.find_rule(claim.rule_id)
                rule = rules[claim.rule_id]
                if rule is None:
                    logger.warning(
                        "claim_rule_missing",
                        extra={
                            "claim_id": str(claim.claim_id),
                            "rule_id": str(claim.rule_id),
                        },
                    )
                    continue

            if claim.submitter_id not in submitters:
                submitters[claim.submitter_id] = self._directory.get_member(
                    claim.submitter_id,
                )

            actor_steps = frozenset(
                step for cid, step in approved_steps if cid == claim.claim_id
            )
            approved_at_step = (
                frozenset({user_id})
                if claim.current_step in actor_steps
                else frozenset()
            )
            eligibility = evaluate_eligibility(
                state=resolve_workflow_state(claim=claim, rule=rule),
                actor=actor,
                claim=claim,
                submitter=submitters[claim.submitter_id],
                approved_at_step=approved_at_step,
                policy=self._policy,
                actor_approved_steps=actor_steps,
            )
            if eligibility.eligible:
                result.append(claim)

        logger.info(
            "pending_work_resolved",
            extra={
                "user_id": str(user_id),
                "scanned": len(claims),
                "pending": len(result),
            },
        )
        return result
