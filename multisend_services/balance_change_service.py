"""
BalanceChangeService -- evaluate a multi-send transaction end to end.

Responsibility:
    Wire the three engines into the one pipeline the outside world calls:

        TransactionValidator -> FeeCalculator -> BalanceProjector

    strictly in that order.  A rejection stops the pipeline; fee
    calculation and projection never run for a rejected transaction.

Architecture position:
    Services -- orchestration over the pure engines.  Reads settings from
    ``multisend_config``; performs no I/O of its own beyond logging.

Invariants enforced:
    - Atomic rejection: on error nothing is returned but the typed
      exception; there is no partial result.
    - Input immutability: caller-supplied balances, definitions and
      transaction are only read.
    - Flows are aggregated once and shared by all three stages.

Failure modes:
    - AmountMismatchError, UnknownDenomError, AddressNotFoundError,
      InsufficientBalanceError from validation.
    - DuplicateAddressError / DuplicateDenomError when call preconditions
      (unique addresses, unique denoms) are broken.

Usage:
    from multisend_services import compute_balance_changes

    changes = compute_balance_changes(original_balances, definitions, tx)
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass

from multisend_config.schema import EngineSettings
from multisend_engines.fees import FeeCalculator, FeeSchedule
from multisend_engines.flows import index_balances, index_definitions, summarize_flows
from multisend_engines.projection import BalanceProjector
from multisend_engines.tracer import compute_input_fingerprint
from multisend_engines.validation import SolvencyMode, TransactionValidator
from multisend_kernel.domain.values import (
    Balance,
    BalanceChangeSet,
    DenomDefinition,
    MultiSendTx,
)
from multisend_kernel.exceptions import MultiSendError
from multisend_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.balance_changes")


@dataclass(frozen=True)
class BalanceChangeReport:
    """
    Outcome of one accepted evaluation.

    ``changes`` is the net ledger; ``fees`` explains how much of it is
    burn and commission.  ``input_fingerprint`` identifies the inputs for
    replay.
    """

    changes: BalanceChangeSet
    fees: FeeSchedule
    input_fingerprint: str

    @property
    def balances(self) -> tuple[Balance, ...]:
        return self.changes.to_balances()

    def total_burned(self, denom: str) -> int:
        denom_fees = self.fees.by_denom.get(denom)
        return denom_fees.total_burn if denom_fees else 0

    def total_commission(self, denom: str) -> int:
        denom_fees = self.fees.by_denom.get(denom)
        return denom_fees.total_commission if denom_fees else 0


class BalanceChangeService:
    """
    Evaluate multi-send transactions against original balances.

    Contract:
        Stateless between calls; one instance may serve any number of
        evaluations, including concurrently.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        *,
        validator: TransactionValidator | None = None,
        fee_calculator: FeeCalculator | None = None,
        projector: BalanceProjector | None = None,
    ):
        self.settings = settings or EngineSettings()
        self._fee_calculator = fee_calculator or FeeCalculator(
            max_workers=self.settings.fee_workers
        )
        self._validator = validator or TransactionValidator(
            solvency_mode=SolvencyMode(self.settings.solvency_mode),
            fee_calculator=self._fee_calculator,
        )
        self._projector = projector or BalanceProjector()

    def evaluate(
        self,
        original_balances: Sequence[Balance],
        denom_definitions: Sequence[DenomDefinition],
        tx: MultiSendTx,
        *,
        tx_id: str | None = None,
    ) -> BalanceChangeReport:
        """Validate, compute fees and project; raise on the first violation."""
        fingerprint = compute_input_fingerprint(
            ("original_balances", "denom_definitions", "tx"),
            {
                "original_balances": tuple(original_balances),
                "denom_definitions": tuple(denom_definitions),
                "tx": tx,
            },
        )
        with LogContext.bind(tx_id=tx_id or fingerprint):
            t0 = time.monotonic()
            logger.info("balance_changes_started", extra={
                "input_count": len(tx.inputs),
                "output_count": len(tx.outputs),
                "solvency_mode": self._validator.solvency_mode.value,
            })

            try:
                balance_index = index_balances(original_balances)
                definition_index = index_definitions(denom_definitions)
                flows = summarize_flows(tx)
                fees = self._validator.validate_flows(flows, balance_index, definition_index)
            except MultiSendError as exc:
                logger.warning("balance_changes_rejected", extra={
                    "error_code": exc.code,
                    "reason": str(exc),
                    "input_fingerprint": fingerprint,
                })
                raise

            if fees is None:
                fees = self._fee_calculator.compute_from_flows(flows, definition_index)
            changes = self._projector.project(tx, fees)

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info("balance_changes_computed", extra={
                "address_count": len(changes),
                "input_fingerprint": fingerprint,
                "duration_ms": duration_ms,
            })

        return BalanceChangeReport(
            changes=changes,
            fees=fees,
            input_fingerprint=fingerprint,
        )

    def compute(
        self,
        original_balances: Sequence[Balance],
        denom_definitions: Sequence[DenomDefinition],
        tx: MultiSendTx,
    ) -> tuple[Balance, ...]:
        """Non-zero net balance changes, sorted by address then denom."""
        return self.evaluate(original_balances, denom_definitions, tx).balances


def compute_balance_changes(
    original_balances: Sequence[Balance],
    denom_definitions: Sequence[DenomDefinition],
    tx: MultiSendTx,
    *,
    settings: EngineSettings | None = None,
) -> tuple[Balance, ...]:
    """Balance changes of ``tx``, or raise the first violated invariant.

    Negative coin amounts are deductions, positive amounts are credits.
    Addresses and denoms with a zero net change are omitted.
    """
    return BalanceChangeService(settings).compute(original_balances, denom_definitions, tx)
