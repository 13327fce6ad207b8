"""
Pure domain layer.

Value objects for the claim approval workflow with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable.
"""

from claims_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from claims_kernel.domain.directory import (
    MemberProfile,
    OrgDirectory,
    WorkflowPolicy,
)
from claims_kernel.domain.workflow import (
    CLAIM_TRANSITIONS,
    CONDITIONAL_RULE_TYPES,
    TERMINAL_CLAIM_STATUSES,
    ActionDecision,
    ActionRecord,
    ApprovalRule,
    ClaimRecord,
    ClaimStatus,
    DefaultPathState,
    DefaultStep,
    FormalRuleState,
    RuleStep,
    RuleType,
    StepApprover,
    TerminalState,
    WorkflowEvent,
    WorkflowEventKind,
    WorkflowState,
    is_valid_claim_transition,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "MemberProfile",
    "OrgDirectory",
    "WorkflowPolicy",
    "CLAIM_TRANSITIONS",
    "CONDITIONAL_RULE_TYPES",
    "TERMINAL_CLAIM_STATUSES",
    "ActionDecision",
    "ActionRecord",
    "ApprovalRule",
    "ClaimRecord",
    "ClaimStatus",
    "DefaultPathState",
    "DefaultStep",
    "FormalRuleState",
    "RuleStep",
    "RuleType",
    "StepApprover",
    "TerminalState",
    "WorkflowEvent",
    "WorkflowEventKind",
    "WorkflowState",
    "is_valid_claim_transition",
]
