"""
Claims configuration schema.

The human-authored YAML configuration set is parsed by the loader into
these frozen dataclasses.  ``ClaimsConfig`` is the runtime artifact handed
out by ``claims_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Where claims are stored and how the pool behaves."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: float = 30.0


@dataclass(frozen=True)
class WorkflowSettings:
    """Capability names and switches for the approval workflow."""

    finance_capability: str = "FINANCE"
    director_capability: str = "DIRECTOR"
    admin_capability: str = "ADMIN"
    elevated_capabilities: tuple[str, ...] = ("MANAGER", "FINANCE", "DIRECTOR")
    legacy_manager_fallback: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class ClaimsConfig:
    """A loaded configuration set."""

    config_id: str
    version: int
    database: DatabaseConfig
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
