"""
Configuration Loader (``claims_config.loader``).

Responsibility
--------------
Load a YAML configuration file and parse it into the typed
``claims_config.schema`` dataclasses.  Runtime callers use
``claims_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from claims_config.schema import (
    ClaimsConfig,
    DatabaseConfig,
    LoggingSettings,
    WorkflowSettings,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{key} must be true or false, got {value!r}")


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data["url"],
        echo=_as_bool(data.get("echo", False), "database.echo"),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        pool_recycle=int(data.get("pool_recycle", 1800)),
        sqlite_busy_timeout=float(data.get("sqlite_busy_timeout", 30.0)),
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowSettings:
    defaults = WorkflowSettings()
    elevated = data.get("elevated_capabilities", defaults.elevated_capabilities)
    if isinstance(elevated, str) or not all(isinstance(c, str) for c in elevated):
        raise ValueError("workflow.elevated_capabilities must be a list of names")
    return WorkflowSettings(
        finance_capability=data.get("finance_capability", defaults.finance_capability),
        director_capability=data.get(
            "director_capability", defaults.director_capability,
        ),
        admin_capability=data.get("admin_capability", defaults.admin_capability),
        elevated_capabilities=tuple(elevated),
        legacy_manager_fallback=_as_bool(
            data.get("legacy_manager_fallback", False),
            "workflow.legacy_manager_fallback",
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any]) -> ClaimsConfig:
    """Parse a whole configuration document.

    Raises:
        KeyError: if ``config_id`` or ``database.url`` is missing.
    """
    return ClaimsConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        database=parse_database(data["database"]),
        workflow=parse_workflow(data.get("workflow") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> ClaimsConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
