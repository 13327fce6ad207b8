"""
Module: claims_kernel.selectors.action_selector
Responsibility: Read-only access to the approval action ledger.
Architecture position: Kernel > Selectors.

The ledger is the only source of truth for "who already acted on this
step".  Results are ordered by acted_at then step so history is stable.
"""

from uuid import UUID

from sqlalchemy import func, select

from claims_kernel.domain.workflow import ActionDecision, ActionRecord
from claims_kernel.models.action import ApprovalActionModel
from claims_kernel.selectors.base import BaseSelector


class ActionSelector(BaseSelector[ApprovalActionModel]):
    """Read approval actions."""

    def history(self, claim_id: UUID) -> list[ActionRecord]:
        """All actions on a claim in the order they were recorded."""
        models = self.session.execute(
            select(ApprovalActionModel)
            .where(ApprovalActionModel.claim_id == claim_id)
            .order_by(
                ApprovalActionModel.acted_at,
                ApprovalActionModel.step_number,
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def approved_actor_ids(self, claim_id: UUID, step_number: int) -> frozenset[UUID]:
        """Distinct actors with an APPROVED action at the given step."""
        rows = self.session.execute(
            select(ApprovalActionModel.actor_id)
            .where(
                ApprovalActionModel.claim_id == claim_id,
                ApprovalActionModel.step_number == step_number,
                ApprovalActionModel.decision == ActionDecision.APPROVED.value,
            )
            .distinct()
        ).scalars().all()
        return frozenset(rows)

    def approved_steps_by_actor(
        self, actor_id: UUID, claim_ids: list[UUID],
    ) -> set[tuple[UUID, int]]:
        """(claim_id, step_number) pairs the actor approved among claim_ids."""
        if not claim_ids:
            return set()
        rows = self.session.execute(
            select(ApprovalActionModel.claim_id, ApprovalActionModel.step_number)
            .where(
                ApprovalActionModel.actor_id == actor_id,
                ApprovalActionModel.claim_id.in_(claim_ids),
                ApprovalActionModel.decision == ActionDecision.APPROVED.value,
            )
        ).all()
        return {(row[0], row[1]) for row in rows}

    def count_for_claim(self, claim_id: UUID) -> int:
        return self.session.execute(
            select(func.count(ApprovalActionModel.id))
            .where(ApprovalActionModel.claim_id == claim_id)
        ).scalar_one()
