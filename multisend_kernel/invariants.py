"""
Ledger Invariants Contract.

These invariants hold for every accepted multi-send transaction. They are
hardcoded in the engines; no settings value may switch them off.

This module exists solely to declare the invariants explicitly. The
enforcement is distributed across TransactionValidator, FeeCalculator and
BalanceProjector.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the engines.

    Each value names one guarantee that an accepted transaction satisfies.
    Settings may influence *how* solvency is measured, never *whether*
    these rules apply.
    """

    STRUCTURAL_BALANCE = "structural_balance"
    """Per denom, the sum of input amounts equals the sum of output
    amounts. Enforced by TransactionValidator.validate_structure."""

    KNOWN_DENOM = "known_denom"
    """Every denom on either side of the transaction has a definition.
    Rates are never defaulted to zero."""

    KNOWN_SENDER = "known_sender"
    """Every sending address has a pre-transaction balance record."""

    SOLVENCY = "solvency"
    """No sender is debited beyond its pre-transaction balance for the
    denom. Enforced by TransactionValidator.validate_solvency."""

    ISSUER_EXEMPTION = "issuer_exemption"
    """The issuer of a denom never pays burn or commission on it.
    Enforced by FeeCalculator."""

    CEILING_ROUNDING = "ceiling_rounding"
    """Every fee share is the ceiling of its exact proportional value.
    Enforced by FeeCalculator with exact integer arithmetic."""

    DELTA_RANGE = "delta_range"
    """Every net balance change of an accepted transaction fits a signed
    128-bit coin amount. Enforced by TransactionValidator.validate_delta_range."""

    CONSERVATION = "conservation"
    """Per denom, the net of all deltas equals minus the burned amount.
    Asserted by BalanceProjector before returning."""


# All invariants as a frozenset for programmatic checks.
ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_layer_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "multisend_engines",
    "multisend_config",
    "multisend_services",
)

# Engines are pure; they may only depend on the kernel.
FORBIDDEN_ENGINE_IMPORTS: tuple[str, ...] = (
    "multisend_config",
    "multisend_services",
)
