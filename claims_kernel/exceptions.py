"""
Typed Exception Hierarchy for the Claims Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the workflow (an HTTP layer, a CLI, a batch job) must map each
failure to a precise response.  Parsing message strings for "not found" or
"not pending" is fragile, so:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        processor.process(claim_id, actor_id, "REJECTED", "")
    except RejectionCommentRequiredError as e:
        api_response(status=400, code=e.code, claim=e.claim_id)
    except InvalidClaimStateError as e:
        api_response(status=409, code=e.code, status_value=e.status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ClaimsKernelError:

    ClaimsKernelError (base)
    |
    +-- NotFoundError
    |   +-- ClaimNotFoundError
    |   +-- RuleNotFoundError
    |   +-- MemberNotFoundError
    |
    +-- InvalidStateError
    |   +-- InvalidClaimStateError
    |   +-- WorkflowAlreadyInitiatedError
    |   +-- InvalidClaimTransitionError
    |   +-- RuleInUseError
    |
    +-- ValidationError
    |   +-- InvalidDecisionError
    |   +-- RejectionCommentRequiredError
    |   +-- DuplicateActionError
    |   +-- InvalidClaimError
    |   +-- InvalidRuleError
    |   +-- RuleOrganizationMismatchError
    |
    +-- ConfigurationError
    |   +-- RuleHasNoStepsError
    |   +-- ApproverNotFoundError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedApproverError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |   +-- StaleClaimStateError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Not found       | CLAIM_NOT_FOUND               | Claim ID doesn't exist
                | RULE_NOT_FOUND                | Rule ID doesn't exist
                | MEMBER_NOT_FOUND              | User unknown to the directory
----------------|-------------------------------|---------------------------------------
State           | INVALID_CLAIM_STATE           | Action on a non-pending claim
                | WORKFLOW_ALREADY_INITIATED    | initiate() called twice
                | INVALID_CLAIM_TRANSITION      | Status edge not in CLAIM_TRANSITIONS
                | RULE_IN_USE                   | Deleting a rule claims reference
----------------|-------------------------------|---------------------------------------
Validation      | INVALID_DECISION              | Decision not APPROVED/REJECTED
                | REJECTION_COMMENT_REQUIRED    | Rejection with blank comment
                | DUPLICATE_ACTION              | Approver already approved this step
                | INVALID_CLAIM                 | Bad amount/currency on submission
                | INVALID_RULE                  | Malformed rule definition
                | RULE_ORGANIZATION_MISMATCH    | Rule and claim in different orgs
----------------|-------------------------------|---------------------------------------
Configuration   | RULE_HAS_NO_STEPS             | Formal rule without steps
                | APPROVER_NOT_FOUND            | Step references unknown approver
----------------|-------------------------------|---------------------------------------
Authorization   | UNAUTHORIZED_APPROVER         | Actor not eligible for current step
----------------|-------------------------------|---------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT      | Claim row modified concurrently
                | STALE_CLAIM_STATE             | expected_step no longer current
----------------|-------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Modifying ledger or terminal claim

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Domain exceptions inherit from Exception, not ValueError/KeyError, so
   they can be caught as a group without catching programming errors.

2. ``code`` is a class attribute: static per type, usable without an
   instance (API docs, static analysis).

3. Categories map to caller behaviour:
   - NotFoundError       -> 404
   - InvalidStateError   -> 409
   - ValidationError     -> 400
   - ConfigurationError  -> fix the rule definition
   - AuthorizationError  -> 403
   - ConcurrencyError    -> caller may reload and retry

No exception here is retried inside the kernel.
"""


class ClaimsKernelError(Exception):
    """
    Base exception for all claims kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CLAIMS_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(ClaimsKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ClaimNotFoundError(NotFoundError):
    """Claim ID does not exist."""

    code: str = "CLAIM_NOT_FOUND"

    def __init__(self, claim_id: str):
        self.claim_id = claim_id
        super().__init__(f"Claim not found: {claim_id}")


class RuleNotFoundError(NotFoundError):
    """Approval rule ID does not exist."""

    code: str = "RULE_NOT_FOUND"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Approval rule not found: {rule_id}")


class MemberNotFoundError(NotFoundError):
    """User is unknown to the organization directory."""

    code: str = "MEMBER_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Member not found: {user_id}")


# State exceptions


class InvalidStateError(ClaimsKernelError):
    """Base exception for operations attempted in the wrong state."""

    code: str = "INVALID_STATE"


class InvalidClaimStateError(InvalidStateError):
    """Action attempted on a claim that is not pending approval."""

    code: str = "INVALID_CLAIM_STATE"

    def __init__(self, claim_id: str, status: str, message: str | None = None):
        self.claim_id = claim_id
        self.status = status
        super().__init__(
            message or f"Claim {claim_id} is not pending approval (status={status})"
        )


class WorkflowAlreadyInitiatedError(InvalidStateError):
    """initiate() was called on a claim whose workflow already started."""

    code: str = "WORKFLOW_ALREADY_INITIATED"

    def __init__(self, claim_id: str):
        self.claim_id = claim_id
        super().__init__(f"Approval workflow already initiated for claim {claim_id}")


class InvalidClaimTransitionError(InvalidStateError):
    """Status change not permitted by CLAIM_TRANSITIONS."""

    code: str = "INVALID_CLAIM_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid claim transition: {from_status} -> {to_status}"
        )


class RuleInUseError(InvalidStateError):
    """Rule cannot be deleted while claims reference it."""

    code: str = "RULE_IN_USE"

    def __init__(self, rule_id: str, claim_count: int):
        self.rule_id = rule_id
        self.claim_count = claim_count
        super().__init__(
            f"Cannot delete approval rule {rule_id}: "
            f"{claim_count} claim(s) are using this rule"
        )


# Validation exceptions


class ValidationError(ClaimsKernelError):
    """Base exception for invalid caller input."""

    code: str = "VALIDATION_ERROR"


class InvalidDecisionError(ValidationError):
    """Decision value is not APPROVED or REJECTED."""

    code: str = "INVALID_DECISION"

    def __init__(self, decision: str):
        self.decision = decision
        super().__init__(
            f"Invalid decision {decision!r}. Must be APPROVED or REJECTED"
        )


class RejectionCommentRequiredError(ValidationError):
    """A rejection was submitted without a comment."""

    code: str = "REJECTION_COMMENT_REQUIRED"

    def __init__(self, claim_id: str):
        self.claim_id = claim_id
        super().__init__(f"Comment required for rejection of claim {claim_id}")


class DuplicateActionError(ValidationError):
    """The approver already approved the claim at its current step."""

    code: str = "DUPLICATE_ACTION"

    def __init__(self, claim_id: str, actor_id: str, step_number: int):
        self.claim_id = claim_id
        self.actor_id = actor_id
        self.step_number = step_number
        super().__init__(
            f"Approver {actor_id} already acted on claim {claim_id} "
            f"at step {step_number}"
        )


class InvalidClaimError(ValidationError):
    """Claim submission failed validation."""

    code: str = "INVALID_CLAIM"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid claim {field}: {reason}")


class InvalidRuleError(ValidationError):
    """Approval rule definition failed validation."""

    code: str = "INVALID_RULE"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid approval rule {field}: {reason}")


class RuleOrganizationMismatchError(ValidationError):
    """Rule and claim belong to different organizations."""

    code: str = "RULE_ORGANIZATION_MISMATCH"

    def __init__(self, rule_id: str, claim_organization_id: str):
        self.rule_id = rule_id
        self.claim_organization_id = claim_organization_id
        super().__init__(
            f"Approval rule {rule_id} does not belong to organization "
            f"{claim_organization_id}"
        )


# Configuration exceptions


class ConfigurationError(ClaimsKernelError):
    """Base exception for malformed approval rule configuration."""

    code: str = "CONFIGURATION_ERROR"


class RuleHasNoStepsError(ConfigurationError):
    """A formal rule has no approval steps configured."""

    code: str = "RULE_HAS_NO_STEPS"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Approval rule {rule_id} has no approval steps configured")


class ApproverNotFoundError(ConfigurationError):
    """A rule step references an approver absent from the organization."""

    code: str = "APPROVER_NOT_FOUND"

    def __init__(self, rule_id: str, user_id: str, sequence_order: int):
        self.rule_id = rule_id
        self.user_id = user_id
        self.sequence_order = sequence_order
        super().__init__(
            f"Approver {user_id} in step {sequence_order} of rule {rule_id} "
            "is not a member of the rule's organization"
        )


# Authorization exceptions


class AuthorizationError(ClaimsKernelError):
    """Base exception for actors acting outside their authority."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedApproverError(AuthorizationError):
    """Actor may not act on the claim in its current workflow state."""

    code: str = "UNAUTHORIZED_APPROVER"

    def __init__(self, claim_id: str, actor_id: str, reason: str):
        self.claim_id = claim_id
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} is not authorized to act on claim {claim_id}: {reason}"
        )


# Concurrency exceptions


class ConcurrencyError(ClaimsKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


class StaleClaimStateError(ConcurrencyError):
    """The caller acted on a step the claim has already left."""

    code: str = "STALE_CLAIM_STATE"

    def __init__(self, claim_id: str, expected_step: int, current_step: int):
        self.claim_id = claim_id
        self.expected_step = expected_step
        self.current_step = current_step
        super().__init__(
            f"Claim {claim_id} is at step {current_step}, "
            f"caller expected step {expected_step}"
        )


# Immutability exceptions


class ImmutabilityError(ClaimsKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Approval actions are immutable from creation; claims are immutable
    once they reach a terminal status.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
