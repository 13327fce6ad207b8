"""Read-only query selectors."""

from claims_kernel.selectors.action_selector import ActionSelector
from claims_kernel.selectors.base import BaseSelector
from claims_kernel.selectors.member_selector import MemberSelector
from claims_kernel.selectors.rule_selector import RuleSelector, rule_to_dto

__all__ = [
    "ActionSelector",
    "BaseSelector",
    "MemberSelector",
    "RuleSelector",
    "rule_to_dto",
]
