"""
Module: multisend_engines.projection
Responsibility:
    Fold a validated transaction and its fee schedule into the net signed
    balance change of every (address, denom).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Last stage of the pipeline; assumes TransactionValidator has passed.

Invariants enforced:
    - Recipients receive exactly their output amounts; fees only ever
      reduce the sending side.
    - Commission is credited to the issuer additively, so an issuer that
      also sends or receives keeps every contribution.
    - Burn has no counterpart credit anywhere.
    - CONSERVATION: per denom, the sum of all deltas equals minus the
      burned amount. Checked before the result is returned.
    - Zero deltas and addresses left without deltas are pruned.

Failure modes:
    - None for validated input. AssertionError if conservation is broken,
      which indicates a defect rather than a bad transaction.

Usage:
    from multisend_engines.projection import BalanceProjector

    changes = BalanceProjector().project(tx, fee_schedule)
    changes.delta("alice", "usd")
"""

from __future__ import annotations

from multisend_engines.fees import FeeSchedule
from multisend_engines.tracer import traced_engine
from multisend_kernel.domain.values import BalanceChangeSet, MultiSendTx
from multisend_kernel.logging_config import get_logger

logger = get_logger("engines.projection")


class _DeltaLedger:
    """Accumulator of signed amounts keyed by (address, denom)."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, int]] = {}

    def post(self, address: str, denom: str, amount: int) -> None:
        row = self._rows.setdefault(address, {})
        row[denom] = row.get(denom, 0) + amount

    def snapshot(self) -> BalanceChangeSet:
        return BalanceChangeSet(self._rows)


class BalanceProjector:
    """
    Project balance changes from inputs, outputs and fee shares.

    Contract:
        Each input line debits its amount. Each sender is additionally
        debited its burn and commission share once per denom (shares are
        computed over the sender's aggregate input, so a sender split over
        several input lines is not charged twice). Each commission share is
        credited to the denom's issuer. Each output line credits its amount.
    """

    @traced_engine("projection", "1.0", fingerprint_fields=("tx",))
    def project(self, tx: MultiSendTx, fees: FeeSchedule) -> BalanceChangeSet:
        ledger = _DeltaLedger()

        for address, coin in tx.input_entries():
            ledger.post(address, coin.denom, -coin.amount)

        for denom_fees in fees:
            for address, share in denom_fees.shares.items():
                if share.is_zero:
                    continue
                ledger.post(address, denom_fees.denom, -share.total)
                if share.commission > 0:
                    ledger.post(denom_fees.issuer, denom_fees.denom, share.commission)

        for address, coin in tx.output_entries():
            ledger.post(address, coin.denom, coin.amount)

        changes = ledger.snapshot()
        self._check_conservation(tx, changes, fees)

        logger.info("projection_completed", extra={
            "address_count": len(changes),
            "net_by_denom": changes.net_by_denom(),
        })
        return changes

    @staticmethod
    def _check_conservation(
        tx: MultiSendTx, changes: BalanceChangeSet, fees: FeeSchedule
    ) -> None:
        expected: dict[str, int] = {}
        for _, coin in tx.output_entries():
            expected[coin.denom] = expected.get(coin.denom, 0) + coin.amount
        for _, coin in tx.input_entries():
            expected[coin.denom] = expected.get(coin.denom, 0) - coin.amount
        for denom_fees in fees:
            expected[denom_fees.denom] = expected.get(denom_fees.denom, 0) - denom_fees.total_burn

        net = changes.net_by_denom()
        for denom in set(net) | set(expected):
            # INVARIANT: CONSERVATION -- only burn leaves circulation
            assert net.get(denom, 0) == expected.get(denom, 0), (
                f"Conservation violated for {denom}: "
                f"net={net.get(denom, 0)}, expected={expected.get(denom, 0)}"
            )
