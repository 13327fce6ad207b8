"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write
    service.  Services use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (``claims_services.ClaimWorkflow`` or a test harness) owns
      commit/rollback, so an approval action and the claim update it
      causes land together or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from claims_kernel.db.base import Base
from claims_kernel.exceptions import ClaimNotFoundError
from claims_kernel.models.claim import ClaimModel

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def _load_claim_model(
        self, claim_id: UUID, *, for_update: bool = False,
    ) -> ClaimModel:
        """Load a claim row, optionally taking its row lock.

        The lock (``SELECT ... FOR UPDATE``) is what serializes workflow
        transitions on one claim under PostgreSQL.  ``populate_existing``
        refreshes a row already in the identity map with the locked state.

        Raises:
            ClaimNotFoundError: If no claim has this ID.
        """
        stmt = select(ClaimModel).where(ClaimModel.claim_id == claim_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True,
            )
        model = self.session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise ClaimNotFoundError(str(claim_id))
        return model
