"""
ClaimWorkflow -- transaction-scoped entry point to the approval workflow.

Responsibility:
    Wire kernel services to a session factory, clock, policy and observer,
    and run each collaborator operation in its own transaction: commit on
    success, rollback on any exception.  A decision's ledger entry and the
    claim update it causes are therefore applied together or not at all.

Architecture position:
    Services -- the outermost layer.  May import claims_kernel,
    claims_engines and claims_config.

Usage:
    workflow = ClaimWorkflow.from_config(get_active_config())
    claim = workflow.submit_claim(org_id, alice_id, Decimal("120.00"), "USD")
    workflow.process(claim.claim_id, bob_id, "APPROVED")
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from claims_config.bridges import build_workflow_policy
from claims_config.schema import ClaimsConfig
from claims_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.directory import WorkflowPolicy
from claims_kernel.domain.workflow import (
    ActionDecision,
    ActionRecord,
    ApprovalRule,
    ClaimRecord,
    RuleType,
)
from claims_kernel.logging_config import configure_logging, get_logger
from claims_kernel.services.approval_processor import ApprovalProcessor
from claims_kernel.services.claim_service import ClaimService
from claims_kernel.services.pending_work_resolver import PendingWorkResolver
from claims_kernel.services.rule_service import RuleService, StepSpec
from claims_kernel.services.workflow_initiator import WorkflowInitiator
from claims_kernel.services.workflow_observer import (
    LoggingWorkflowObserver,
    WorkflowObserver,
)

logger = get_logger("services.claim_workflow")


class ClaimWorkflow:
    """One transaction per operation over the claims kernel."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        observer: WorkflowObserver | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._policy = policy or WorkflowPolicy()
        self._observer = observer or LoggingWorkflowObserver()

    @classmethod
    def from_config(
        cls,
        config: ClaimsConfig,
        *,
        clock: Clock | None = None,
        observer: WorkflowObserver | None = None,
        create_schema: bool = False,
    ) -> ClaimWorkflow:
        """Initialize logging and the engine from configuration."""
        configure_logging(level=logging.getLevelName(config.logging.level))
        db = config.database
        init_engine_from_url(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
            sqlite_busy_timeout=db.sqlite_busy_timeout,
        )
        if create_schema:
            create_tables()
        logger.info(
            "claim_workflow_configured",
            extra={
                "config_id": config.config_id,
                "checksum": config.checksum,
                "legacy_manager_fallback": config.workflow.legacy_manager_fallback,
            },
        )
        return cls(
            get_session_factory(),
            clock=clock,
            policy=build_workflow_policy(config),
            observer=observer,
        )

    # ------------------------------------------------------------------
    # Workflow operations
    # ------------------------------------------------------------------

    def initiate(self, claim_id: UUID) -> ClaimRecord:
        with session_scope(self._session_factory) as session:
            return WorkflowInitiator(
                session,
                clock=self._clock,
                observer=self._observer,
            ).initiate(claim_id)

    def process(
        self,
        claim_id: UUID,
        actor_id: UUID,
        decision: ActionDecision | str,
        comment: str | None = None,
        *,
        expected_step: int | None = None,
    ) -> ClaimRecord:
        with session_scope(self._session_factory) as session:
            return self._processor(session).process(
                claim_id, actor_id, decision, comment,
                expected_step=expected_step,
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
        with session_scope(self._session_factory) as session:
            return self._processor(session).override(
                claim_id, admin_id, decision, comment,
                expected_step=expected_step,
            )

    def pending_for(self, user_id: UUID) -> list[ClaimRecord]:
        with session_scope(self._session_factory) as session:
            return PendingWorkResolver(
                session, policy=self._policy,
            ).pending_for(user_id)

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def submit_claim(
        self,
        organization_id: UUID,
        submitter_id: UUID,
        amount: Decimal | int | str,
        currency: str,
        description: str = "",
        category: str = "",
        rule_id: UUID | None = None,
        expense_date: date | None = None,
    ) -> ClaimRecord:
        with session_scope(self._session_factory) as session:
            return self._claims(session).submit_claim(
                organization_id,
                submitter_id,
                amount,
                currency,
                description=description,
                category=category,
                rule_id=rule_id,
                expense_date=expense_date,
            )

    def get_claim(self, claim_id: UUID) -> ClaimRecord:
        with session_scope(self._session_factory) as session:
            return self._claims(session).get_claim(claim_id)

    def get_history(self, claim_id: UUID) -> list[ActionRecord]:
        with session_scope(self._session_factory) as session:
            return self._claims(session).get_history(claim_id)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def create_rule(
        self,
        organization_id: UUID,
        name: str,
        rule_type: RuleType | str,
        steps: list[StepSpec],
        percentage_threshold: Decimal | int | str | None = None,
        is_manager_approver: bool = False,
    ) -> ApprovalRule:
        with session_scope(self._session_factory) as session:
            return self._rule_service(session).create_rule(
                organization_id,
                name,
                rule_type,
                steps,
                percentage_threshold=percentage_threshold,
                is_manager_approver=is_manager_approver,
            )

    def assign_rule(self, claim_id: UUID, rule_id: UUID) -> ClaimRecord:
        with session_scope(self._session_factory) as session:
            return self._rule_service(session).assign_rule(
                claim_id, rule_id,
            )

    def delete_rule(self, rule_id: UUID) -> None:
        with session_scope(self._session_factory) as session:
            self._rule_service(session).delete_rule(rule_id)

    def rules_for_organization(self, organization_id: UUID) -> list[ApprovalRule]:
        with session_scope(self._session_factory) as session:
            return self._rule_service(session).rules_for_organization(
                organization_id,
            )

    def _processor(self, session: Session) -> ApprovalProcessor:
        return ApprovalProcessor(
            session,
            clock=self._clock,
            policy=self._policy,
            observer=self._observer,
        )

    def _rule_service(self, session: Session) -> RuleService:
        return RuleService(session, clock=self._clock, observer=self._observer)

    def _claims(self, session: Session) -> ClaimService:
        return ClaimService(session, clock=self._clock, observer=self._observer)
