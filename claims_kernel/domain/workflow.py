"""
Claim workflow domain types (``claims_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the expense-claim approval workflow: the claim
status state machine, approval rule definitions, claim and action
records, the explicit workflow state a claim is in, and the structured
transition events emitted to observers.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``CLAIM_TRANSITIONS`` defines the only valid status transitions.
  Terminal statuses have no outgoing edges.
* ``RuleStep.index`` is the 0-based position of the step after sorting by
  ``sequence_order``.  It is assigned once when a rule is loaded; engine
  code compares ``ClaimRecord.current_step`` against it directly.
* A claim is in exactly one ``WorkflowState`` at any time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Union
from uuid import UUID


# =========================================================================
# Claim Status Lifecycle
# =========================================================================


class ClaimStatus(str, Enum):
    """Claim approval lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


CLAIM_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.PENDING: frozenset({
        ClaimStatus.APPROVED,
        ClaimStatus.REJECTED,
    }),
    ClaimStatus.APPROVED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
}

TERMINAL_CLAIM_STATUSES: frozenset[ClaimStatus] = frozenset({
    ClaimStatus.APPROVED,
    ClaimStatus.REJECTED,
})


def is_valid_claim_transition(
    from_status: ClaimStatus, to_status: ClaimStatus,
) -> bool:
    return to_status in CLAIM_TRANSITIONS.get(from_status, frozenset())


class ActionDecision(str, Enum):
    """Decisions an approver can record."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RuleType(str, Enum):
    """How a formal rule moves a claim through its steps.

    SEQUENTIAL walks every step in order.  CONDITIONAL and COMBINED also
    consult the percentage quorum and key approvers after each approval.
    """

    SEQUENTIAL = "SEQUENTIAL"
    CONDITIONAL = "CONDITIONAL"
    COMBINED = "COMBINED"


CONDITIONAL_RULE_TYPES: frozenset[RuleType] = frozenset({
    RuleType.CONDITIONAL,
    RuleType.COMBINED,
})


class DefaultStep(IntEnum):
    """Steps of the built-in manager -> finance -> director chain."""

    MANAGER = 0
    FINANCE = 1
    DIRECTOR = 2


# =========================================================================
# Rule Definition
# =========================================================================


@dataclass(frozen=True)
class StepApprover:
    """A named approver on a rule step."""

    user_id: UUID
    is_key_approver: bool = False


@dataclass(frozen=True)
class RuleStep:
    """One step of a formal rule.

    ``sequence_order`` is the stored 1-based ordering; ``index`` is the
    0-based position used for comparisons against ``current_step``.
    """

    index: int
    sequence_order: int
    approvers: tuple[StepApprover, ...]

    @property
    def approver_ids(self) -> frozenset[UUID]:
        return frozenset(a.user_id for a in self.approvers)

    @property
    def key_approver_ids(self) -> frozenset[UUID]:
        return frozenset(a.user_id for a in self.approvers if a.is_key_approver)

    def has_approver(self, user_id: UUID) -> bool:
        return any(a.user_id == user_id for a in self.approvers)


@dataclass(frozen=True)
class ApprovalRule:
    """An organization's approval rule, with steps normalized by index."""

    rule_id: UUID
    organization_id: UUID
    name: str
    rule_type: RuleType
    steps: tuple[RuleStep, ...] = ()
    percentage_threshold: Decimal | None = None
    is_manager_approver: bool = False

    def step_at(self, index: int) -> RuleStep | None:
        """Return the step with the given 0-based index, or None."""
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    @property
    def is_conditional(self) -> bool:
        return self.rule_type in CONDITIONAL_RULE_TYPES

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1


# =========================================================================
# Claim and Action Records
# =========================================================================


@dataclass(frozen=True)
class ClaimRecord:
    """Immutable snapshot of an expense claim and its workflow position."""

    claim_id: UUID
    organization_id: UUID
    submitter_id: UUID
    amount: Decimal
    currency: str
    description: str = ""
    category: str = ""
    expense_date: date | None = None
    rule_id: UUID | None = None
    current_step: int = 0
    status: ClaimStatus = ClaimStatus.PENDING
    version: int = 1
    initiated_at: datetime | None = None
    last_action_at: datetime | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CLAIM_STATUSES

    @property
    def is_initiated(self) -> bool:
        return self.initiated_at is not None


@dataclass(frozen=True)
class ActionRecord:
    """One recorded approver decision. Immutable."""

    action_id: UUID
    claim_id: UUID
    actor_id: UUID
    step_number: int
    decision: ActionDecision
    comment: str | None = None
    is_override: bool = False
    acted_at: datetime | None = None


# =========================================================================
# Explicit Workflow State
# =========================================================================


@dataclass(frozen=True)
class TerminalState:
    """Claim has been approved or rejected; no actor may act."""

    status: ClaimStatus

    def describe(self) -> str:
        return f"terminal:{self.status.value}"


@dataclass(frozen=True)
class DefaultPathState:
    """Claim follows the manager -> finance -> director chain."""

    step: int

    def describe(self) -> str:
        try:
            return f"default:{DefaultStep(self.step).name.lower()}"
        except ValueError:
            return f"default:{self.step}"


@dataclass(frozen=True)
class FormalRuleState:
    """Claim is at ``step_index`` of a formal approval rule."""

    rule: ApprovalRule
    step_index: int

    @property
    def step(self) -> RuleStep | None:
        return self.rule.step_at(self.step_index)

    def describe(self) -> str:
        return f"rule:{self.rule.rule_type.value.lower()}:{self.step_index}"


WorkflowState = Union[TerminalState, DefaultPathState, FormalRuleState]


# =========================================================================
# Transition Events
# =========================================================================


class WorkflowEventKind(str, Enum):
    """What happened to a claim's workflow."""

    INITIATED = "initiated"
    REROUTED = "rerouted"
    ADVANCED = "advanced"
    HELD = "held"
    APPROVED = "approved"
    AUTO_APPROVED = "auto_approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class WorkflowEvent:
    """Structured record of one workflow transition."""

    kind: WorkflowEventKind
    claim_id: UUID
    from_state: str
    to_state: str
    from_step: int | None
    to_step: int
    from_status: ClaimStatus
    to_status: ClaimStatus
    actor_id: UUID | None = None
    decision: ActionDecision | None = None
    is_override: bool = False
    occurred_at: datetime | None = None
    reason: str | None = None
