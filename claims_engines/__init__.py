"""
Module: claims_engines
Responsibility:
    Re-exports the pure decision engines of the claim approval workflow.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import claims_kernel/domain (and sibling engine modules).
    MUST NOT import claims_services or claims_config.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only percentage arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Every public engine entrypoint is traced via ``@traced_engine``
(``claims_engines.tracer``), emitting CLAIMS_ENGINE_TRACE records.
"""

from claims_engines.conditional import (
    ConditionalEvaluation,
    approval_percentage,
    evaluate_conditions,
    is_condition_pending,
    should_auto_approve,
)
from claims_engines.eligibility import Eligibility, evaluate_eligibility
from claims_engines.tracer import compute_input_fingerprint, traced_engine
from claims_engines.workflow import (
    TransitionOutcome,
    initial_step,
    next_transition,
    resolve_workflow_state,
    uses_default_path,
)

__all__ = [
    "ConditionalEvaluation",
    "Eligibility",
    "TransitionOutcome",
    "approval_percentage",
    "compute_input_fingerprint",
    "evaluate_conditions",
    "evaluate_eligibility",
    "initial_step",
    "is_condition_pending",
    "next_transition",
    "resolve_workflow_state",
    "should_auto_approve",
    "traced_engine",
    "uses_default_path",
]
