"""
claims_services -- top-level wiring for the claim approval workflow.

``ClaimWorkflow`` runs each kernel operation in its own transaction.
"""

from claims_services.workflow import ClaimWorkflow

__all__ = ["ClaimWorkflow"]
