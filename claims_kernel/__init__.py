"""
Claims Kernel - Expense Claim Approval Workflow

A persisted, append-only approval workflow for expense claims with:
- Explicit workflow state (default path vs. formal rule)
- Conditional auto-approval (percentage quorum, key approvers)
- Immutable action ledger
- Per-claim serialized transitions
"""

__version__ = "0.1.0"
