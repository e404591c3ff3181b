"""
multisend_config -- single public entrypoint for pipeline settings.

Responsibility:
    Provides the runtime way to obtain ``EngineSettings`` through
    ``get_active_settings()`` and exposes scenario loading for the command
    line and test fixtures.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``multisend_kernel`` and
    below ``multisend_services``.  Kernel and engines MUST NEVER import
    from ``multisend_config``.

Failure modes:
    - ``FileNotFoundError`` -- settings file does not exist.
    - ``ValueError`` / ``KeyError`` -- malformed settings.

Audit relevance:
    Every ``get_active_settings()`` call emits a ``MULTISEND_CONFIG_TRACE``
    log entry with the settings checksum, tying each evaluation back to the
    configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from multisend_config.loader import (
    compute_checksum,
    load_scenario,
    load_yaml_file,
    parse_scenario,
    parse_settings,
)
from multisend_config.schema import EngineSettings, Scenario, ScenarioExpectation

_logger = logging.getLogger("multisend.config")

# Default settings file
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "settings.yaml"


def get_active_settings(path: Path | None = None) -> EngineSettings:
    """Load and validate the pipeline settings.

    Args:
        path: Settings YAML file. Defaults to ``sets/settings.yaml``.
    """
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    data = load_yaml_file(settings_path)
    settings = parse_settings(data)

    _logger.info(
        "MULTISEND_CONFIG_TRACE",
        extra={
            "trace_type": "MULTISEND_CONFIG_TRACE",
            "settings_path": str(settings_path),
            "checksum": compute_checksum(data),
            "solvency_mode": settings.solvency_mode,
            "fee_workers": settings.fee_workers,
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "Scenario",
    "ScenarioExpectation",
    "compute_checksum",
    "get_active_settings",
    "load_scenario",
    "load_yaml_file",
    "parse_scenario",
    "parse_settings",
]
