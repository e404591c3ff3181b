"""
multisend_services -- orchestration layer.

Exposes the single in-process call contract of the system,
``compute_balance_changes``, and the richer ``BalanceChangeService``.
"""

from multisend_services.balance_change_service import (
    BalanceChangeReport,
    BalanceChangeService,
    compute_balance_changes,
)

__all__ = [
    "BalanceChangeReport",
    "BalanceChangeService",
    "compute_balance_changes",
]
