"""
Configuration Loader (``multisend_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``multisend_config.schema``
instances and kernel value objects.  Runtime callers use
``multisend_config.get_active_settings()``; scenario loading serves the
command line and the test fixtures.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel's value
objects only; never on engines or services.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Coin amounts must be YAML integers; rates may be strings or numbers and
  are converted to Decimal by ``DenomDefinition``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  identifying a scenario or settings file.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong shapes or values  -> ``ValueError`` / ``TypeError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from multisend_config.schema import (
    EngineSettings,
    Scenario,
    ScenarioExpectation,
)
from multisend_kernel.domain.values import Balance, Coin, DenomDefinition, MultiSendTx


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed YAML document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """Parse ``EngineSettings`` from the ``engine`` / ``logging`` sections."""
    engine = data.get("engine", {}) or {}
    logging_section = data.get("logging", {}) or {}
    return EngineSettings(
        solvency_mode=engine.get("solvency_mode", "individual"),
        fee_workers=engine.get("fee_workers", 1),
        log_level=logging_section.get("level", "INFO"),
    )


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


def parse_coins(data: dict[str, Any], owner: str) -> tuple[Coin, ...]:
    """Parse a ``{denom: amount}`` mapping into coins."""
    if not isinstance(data, dict):
        raise ValueError(f"coins of {owner} must be a mapping of denom to amount")
    coins = []
    for denom, amount in data.items():
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise ValueError(f"amount of {denom} for {owner} must be an integer, got {amount!r}")
        coins.append(Coin(denom=str(denom), amount=amount))
    return tuple(coins)


def parse_balance(data: dict[str, Any]) -> Balance:
    """Parse ``{address: ..., coins: {denom: amount}}``."""
    address = data["address"]
    return Balance(address=address, coins=parse_coins(data.get("coins", {}) or {}, address))


def parse_denom(data: dict[str, Any]) -> DenomDefinition:
    """Parse a denom definition; both rates default to 0 when omitted."""
    return DenomDefinition(
        denom=data["denom"],
        issuer=data["issuer"],
        burn_rate=data.get("burn_rate", "0"),
        commission_rate=data.get("commission_rate", "0"),
    )


def parse_tx(data: dict[str, Any]) -> MultiSendTx:
    return MultiSendTx(
        inputs=tuple(parse_balance(b) for b in data.get("inputs", []) or []),
        outputs=tuple(parse_balance(b) for b in data.get("outputs", []) or []),
    )


def parse_expectation(data: dict[str, Any]) -> ScenarioExpectation:
    changes = data.get("changes")
    if changes is not None:
        changes = {
            address: {coin.denom: coin.amount for coin in parse_coins(coins, address)}
            for address, coins in changes.items()
        }
    return ScenarioExpectation(changes=changes, error_code=data.get("error"))


def parse_scenario(data: dict[str, Any], default_name: str = "scenario") -> Scenario:
    """
    Parse a complete ``Scenario``.

    Preconditions:
        - ``data`` has ``denoms``, ``balances`` and ``tx`` sections.
    Raises:
        KeyError: if a required section or field is missing.
        ValueError: if a value is malformed.
    """
    for section in ("denoms", "balances", "tx"):
        if section not in data:
            raise KeyError(f"scenario is missing required section '{section}'")

    settings = None
    if "settings" in data:
        settings = parse_settings(data["settings"] or {})
    expect = None
    if "expect" in data:
        expect = parse_expectation(data["expect"] or {})

    return Scenario(
        name=data.get("name", default_name),
        description=data.get("description", ""),
        balances=tuple(parse_balance(b) for b in data["balances"] or []),
        denoms=tuple(parse_denom(d) for d in data["denoms"] or []),
        tx=parse_tx(data["tx"] or {}),
        settings=settings,
        expect=expect,
        checksum=compute_checksum(data),
    )


def load_scenario(path: Path) -> Scenario:
    path = Path(path)
    return parse_scenario(load_yaml_file(path), default_name=path.stem)
