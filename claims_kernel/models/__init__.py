"""SQLAlchemy ORM models for the claims kernel."""

from claims_kernel.models.action import ApprovalActionModel
from claims_kernel.models.claim import ClaimModel
from claims_kernel.models.member import MemberModel
from claims_kernel.models.rule import (
    ApprovalRuleModel,
    ApprovalStepModel,
    StepApproverModel,
)

__all__ = [
    "ApprovalActionModel",
    "ApprovalRuleModel",
    "ApprovalStepModel",
    "ClaimModel",
    "MemberModel",
    "StepApproverModel",
]
