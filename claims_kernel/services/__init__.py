"""Kernel services: write paths of the claim approval workflow."""

from claims_kernel.services.approval_processor import (
    ApprovalProcessor,
    coerce_decision,
)
from claims_kernel.services.base import BaseService
from claims_kernel.services.claim_service import ClaimService
from claims_kernel.services.pending_work_resolver import PendingWorkResolver
from claims_kernel.services.rule_service import RuleService, StepSpec
from claims_kernel.services.workflow_initiator import WorkflowInitiator
from claims_kernel.services.workflow_observer import (
    CompositeWorkflowObserver,
    LoggingWorkflowObserver,
    RecordingWorkflowObserver,
    WorkflowObserver,
)

__all__ = [
    "ApprovalProcessor",
    "BaseService",
    "ClaimService",
    "CompositeWorkflowObserver",
    "LoggingWorkflowObserver",
    "PendingWorkResolver",
    "RecordingWorkflowObserver",
    "RuleService",
    "StepSpec",
    "WorkflowInitiator",
    "WorkflowObserver",
    "coerce_decision",
]
