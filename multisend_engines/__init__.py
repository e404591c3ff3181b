"""
Module: multisend_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    service layer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import multisend_kernel (and sibling engine modules).
    MUST NOT import multisend_config or multisend_services.

Invariants enforced:
    - Integer-only settlement: amounts are ints, rates are exact Decimals
      turned into integer ratios; floats never enter the arithmetic.
    - Determinism: identical inputs always produce identical outputs,
      including the order in which rejections are detected.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``multisend_engines.tracer``), emitting MULTISEND_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.

Usage:
    from multisend_engines import (
        BalanceProjector, FeeCalculator, TransactionValidator, summarize_flows,
    )
"""

from multisend_engines.fees import (
    ZERO_SHARE,
    DenomFees,
    FeeCalculator,
    FeeSchedule,
    FeeShare,
    distribute,
)
from multisend_engines.flows import (
    DenomFlow,
    TransactionFlows,
    index_balances,
    index_definitions,
    summarize_flows,
)
from multisend_engines.projection import BalanceProjector
from multisend_engines.tracer import compute_input_fingerprint, traced_engine
from multisend_engines.validation import SolvencyMode, TransactionValidator

__all__ = [
    "BalanceProjector",
    "DenomFees",
    "DenomFlow",
    "FeeCalculator",
    "FeeSchedule",
    "FeeShare",
    "SolvencyMode",
    "TransactionFlows",
    "TransactionValidator",
    "ZERO_SHARE",
    "compute_input_fingerprint",
    "distribute",
    "index_balances",
    "index_definitions",
    "summarize_flows",
    "traced_engine",
]
