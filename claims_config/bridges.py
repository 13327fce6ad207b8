"""
Config -> Kernel Bridges.

Convert loaded configuration into kernel inputs.  These live in
claims_config because the kernel must never import claims_config.

Usage:
    from claims_config.bridges import build_workflow_policy

    config = get_active_config()
    policy = build_workflow_policy(config)
"""

from __future__ import annotations

from claims_config.schema import ClaimsConfig
from claims_kernel.domain.directory import WorkflowPolicy


def build_workflow_policy(config: ClaimsConfig) -> WorkflowPolicy:
    settings = config.workflow
    return WorkflowPolicy(
        finance_capability=settings.finance_capability,
        director_capability=settings.director_capability,
        admin_capability=settings.admin_capability,
        elevated_capabilities=frozenset(settings.elevated_capabilities),
        legacy_manager_fallback=settings.legacy_manager_fallback,
    )
