"""
Pure domain layer for the multi-send kernel.

Value objects only; no I/O, no clock, no logging.
"""

from multisend_kernel.domain.values import (
    Balance,
    BalanceChangeSet,
    Coin,
    DenomDefinition,
    MultiSendTx,
    ceil_div,
    rate_ceil,
)

__all__ = [
    "Balance",
    "BalanceChangeSet",
    "Coin",
    "DenomDefinition",
    "MultiSendTx",
    "ceil_div",
    "rate_ceil",
]
