"""
Organization directory types (``claims_kernel.domain.directory``).

Responsibility
--------------
Who a user is, who their manager is, and which capabilities they hold.
Identity and roster management are external; the kernel consumes them
through the ``OrgDirectory`` protocol.  ``WorkflowPolicy`` names the
capabilities the default approval path looks for.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class MemberProfile:
    """A user as seen by the approval workflow."""

    user_id: UUID
    organization_id: UUID
    manager_id: UUID | None = None
    capabilities: frozenset[str] = frozenset()
    email: str = ""
    display_name: str = ""
    is_active: bool = True

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    def has_any_capability(self, capabilities: frozenset[str]) -> bool:
        return bool(self.capabilities & capabilities)


class OrgDirectory(Protocol):
    """Pluggable interface for member lookups."""

    def get_member(self, user_id: UUID) -> MemberProfile | None:
        """Return the member, or None when the user is unknown."""
        ...


@dataclass(frozen=True)
class WorkflowPolicy:
    """Capability names and switches consulted by the workflow engines.

    ``legacy_manager_fallback`` re-enables the historical rule that lets a
    submitter's direct manager with an elevated capability act at any
    step.  It is off unless configuration turns it on.
    """

    finance_capability: str = "FINANCE"
    director_capability: str = "DIRECTOR"
    admin_capability: str = "ADMIN"
    elevated_capabilities: frozenset[str] = frozenset(
        {"MANAGER", "FINANCE", "DIRECTOR"}
    )
    legacy_manager_fallback: bool = False
