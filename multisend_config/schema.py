"""
Configuration schema.

Frozen dataclasses the YAML loader produces. Two artifacts exist:

  EngineSettings = how the pipeline runs (solvency rule, fee workers, logging)
  Scenario       = a complete, self-describing evaluation input: original
                   balances, denom definitions, the transaction and, for
                   fixtures, the expected outcome
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from multisend_kernel.domain.values import Balance, DenomDefinition, MultiSendTx

SOLVENCY_MODES: tuple[str, ...] = ("individual", "aggregate")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Engine settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettings:
    """Runtime knobs of the balance change pipeline."""

    solvency_mode: str = "individual"
    fee_workers: int = 1
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.solvency_mode not in SOLVENCY_MODES:
            raise ValueError(
                f"solvency_mode must be one of {SOLVENCY_MODES}, got {self.solvency_mode!r}"
            )
        if (
            not isinstance(self.fee_workers, int)
            or isinstance(self.fee_workers, bool)
            or self.fee_workers < 1
        ):
            raise ValueError(f"fee_workers must be an int >= 1, got {self.fee_workers!r}")
        level = str(self.log_level).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        object.__setattr__(self, "log_level", level)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScenarioExpectation:
    """Expected outcome: either balance changes or an error code, never both."""

    changes: Any = None  # Mapping[str, Mapping[str, int]] | None
    error_code: str | None = None

    def __post_init__(self) -> None:
        if (self.changes is None) == (self.error_code is None):
            raise ValueError("expectation needs exactly one of 'changes' or 'error'")
        if self.changes is not None:
            object.__setattr__(
                self,
                "changes",
                MappingProxyType({a: MappingProxyType(dict(c)) for a, c in self.changes.items()}),
            )


@dataclass(frozen=True)
class Scenario:
    """Inputs of one balance change evaluation."""

    name: str
    balances: tuple[Balance, ...]
    denoms: tuple[DenomDefinition, ...]
    tx: MultiSendTx
    description: str = ""
    settings: EngineSettings | None = None
    expect: ScenarioExpectation | None = None
    checksum: str = field(default="", compare=False)
