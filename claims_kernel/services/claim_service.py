"""
claims_kernel.services.claim_service -- Claim submission and reads.

Responsibility:
    Create expense claims and start their workflow in the same unit of
    work; read claims and their action history.

Architecture position:
    Kernel > Services.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.directory import OrgDirectory
from claims_kernel.domain.workflow import ActionRecord, ClaimRecord, ClaimStatus
from claims_kernel.exceptions import (
    InvalidClaimError,
    MemberNotFoundError,
    RuleOrganizationMismatchError,
)
from claims_kernel.logging_config import get_logger
from claims_kernel.models.claim import ClaimModel
from claims_kernel.selectors.action_selector import ActionSelector
from claims_kernel.selectors.member_selector import MemberSelector
from claims_kernel.selectors.rule_selector import RuleSelector
from claims_kernel.services.base import BaseService
from claims_kernel.services.workflow_initiator import WorkflowInitiator
from claims_kernel.services.workflow_observer import WorkflowObserver

logger = get_logger("services.claim_service")


def _normalize_amount(amount: Decimal | int | str) -> Decimal:
    if isinstance(amount, float):
        raise InvalidClaimError("amount", "must be a Decimal, not float")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidClaimError("amount", f"not a number: {amount!r}") from None
    if not value.is_finite() or value <= 0:
        raise InvalidClaimError("amount", "must be greater than zero")
    return value


def _normalize_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise InvalidClaimError("currency", f"not a 3-letter code: {currency!r}")
    return code


class ClaimService(BaseService[ClaimModel]):
    """Submit and read expense claims."""

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
        self._actions = ActionSelector(session)
        self._initiator = WorkflowInitiator(
            session,
            clock=self._clock,
            directory=self._directory,
            observer=observer,
        )

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
        """Create a claim and initiate its approval workflow.

        Raises:
            InvalidClaimError: Bad amount or currency.
            MemberNotFoundError: Submitter unknown in this organization.
            RuleNotFoundError: rule_id does not exist.
            RuleOrganizationMismatchError: Rule belongs to another organization.
        """
        value = _normalize_amount(amount)
        code = _normalize_currency(currency)

        submitter = self._directory.get_member(submitter_id)
        if submitter is None or submitter.organization_id != organization_id:
            raise MemberNotFoundError(str(submitter_id))

        if rule_id is not None:
            rule = self._rules.get_rule(rule_id)
            if rule.organization_id != organization_id:
                raise RuleOrganizationMismatchError(
                    str(rule_id), str(organization_id),
                )

        claim_id = uuid4()
        model = ClaimModel(
            claim_id=claim_id,
            organization_id=organization_id,
            submitter_id=submitter_id,
            amount=value,
            currency=code,
            description=description,
            category=category,
            expense_date=expense_date,
            rule_id=rule_id,
            current_step=0,
            status=ClaimStatus.PENDING.value,
            created_at=self._clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "claim_submitted",
            extra={
                "claim_id": str(claim_id),
                "submitter_id": str(submitter_id),
                "amount": str(value),
                "currency": code,
                "rule_id": str(rule_id) if rule_id else None,
            },
        )
        return self._initiator.initiate(claim_id)

    def get_claim(self, claim_id: UUID) -> ClaimRecord:
        return self._load_claim_model(claim_id).to_dto()

    def get_history(self, claim_id: UUID) -> list[ActionRecord]:
        """Ledger actions for the claim, oldest first."""
        self._load_claim_model(claim_id)
        return self._actions.history(claim_id)
