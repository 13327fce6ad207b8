"""
claims_config -- single public entrypoint for workflow configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  No other component reads configuration files or
    environment variables.

Architecture position:
    Configuration.  Sits above ``claims_kernel`` and below
    ``claims_services``.  The kernel MUST NEVER import from
    ``claims_config``; ``claims_config.bridges`` translates loaded
    settings into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- malformed configuration.

Every successful call emits a ``CLAIMS_CONFIG_TRACE`` log entry with the
config_id, version and checksum.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from claims_config.loader import load_config
from claims_config.schema import ClaimsConfig

_logger = logging.getLogger("claims_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

DATABASE_URL_ENV = "CLAIMS_DATABASE_URL"
CONFIG_PATH_ENV = "CLAIMS_CONFIG"


def get_active_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ClaimsConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Configuration file.  Defaults to ``$CLAIMS_CONFIG`` or the
            bundled ``sets/default.yaml``.
        environ: Environment mapping (defaults to ``os.environ``).
            ``CLAIMS_DATABASE_URL`` overrides ``database.url``.

    Returns:
        The loaded ``ClaimsConfig``.
    """
    env = os.environ if environ is None else environ
    config_path = path or Path(env.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)

    config = load_config(config_path)

    url_override = env.get(DATABASE_URL_ENV)
    if url_override:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=url_override),
        )

    _logger.info(
        "CLAIMS_CONFIG_TRACE",
        extra={
            "trace_type": "CLAIMS_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
            "database_url_overridden": bool(url_override),
            "legacy_manager_fallback": config.workflow.legacy_manager_fallback,
        },
    )
    return config


__all__ = ["ClaimsConfig", "get_active_config"]
