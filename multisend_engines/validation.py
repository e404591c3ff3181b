"""
Module: multisend_engines.validation
Responsibility:
    Decide whether a multi-send transaction may be applied: structural
    balance per denom, known denoms, known senders and sender solvency.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    First stage of the pipeline; fees and projection only run after it
    passes.

Invariants enforced:
    - STRUCTURAL_BALANCE: input total == output total for every denom on
      either side (a missing side counts as 0).
    - KNOWN_DENOM: every denom has a definition; rates never default to 0.
    - KNOWN_SENDER / SOLVENCY: every sender has a balance record that
      covers its aggregate input plus fees.
    - DELTA_RANGE: every net credit fits a signed 128-bit coin amount.

Solvency modes:
    INDIVIDUAL  required = gross_debit(aggregate input of the address),
                i.e. the per-amount fee formula applied to the address's
                total for the denom. The issuer pays no fee on its own
                denom. This is the conservative rule and the default.
    AGGREGATE   required = aggregate input + the proportional burn and
                commission shares the fee calculator will actually charge.

Failure modes (first one wins, in this order):
    - AmountMismatchError
    - UnknownDenomError
    - AddressNotFoundError / InsufficientBalanceError, senders visited in
      order of first appearance in the inputs, denoms likewise.
    - BalanceOverflowError when a net credit would not fit a 128-bit amount.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum

from multisend_engines.fees import FeeCalculator, FeeSchedule
from multisend_engines.flows import (
    DenomFlow,
    TransactionFlows,
    index_balances,
    index_definitions,
    summarize_flows,
)
from multisend_engines.tracer import traced_engine
from multisend_kernel.domain.values import INT128_MAX, Balance, DenomDefinition, MultiSendTx
from multisend_kernel.exceptions import (
    AddressNotFoundError,
    AmountMismatchError,
    BalanceOverflowError,
    InsufficientBalanceError,
    MultiSendError,
    UnknownDenomError,
)
from multisend_kernel.logging_config import get_logger

logger = get_logger("engines.validation")


class SolvencyMode(str, Enum):
    """How the sender's required balance is measured."""

    INDIVIDUAL = "individual"  # Per-amount fee on the address total
    AGGREGATE = "aggregate"  # Proportional share actually charged


class TransactionValidator:
    """
    Validate a transaction against original balances and definitions.

    Contract:
        Pure and idempotent: the same inputs always produce the same
        outcome, and nothing is mutated.
    """

    def __init__(
        self,
        solvency_mode: SolvencyMode | str = SolvencyMode.INDIVIDUAL,
        fee_calculator: FeeCalculator | None = None,
    ):
        self.solvency_mode = SolvencyMode(solvency_mode)
        self._fee_calculator = fee_calculator or FeeCalculator()

    def validate(
        self,
        tx: MultiSendTx,
        balances: Sequence[Balance],
        definitions: Sequence[DenomDefinition],
    ) -> None:
        """Raise the first violated rule, or return None when ``tx`` is acceptable."""
        self.validate_flows(
            summarize_flows(tx),
            index_balances(balances),
            index_definitions(definitions),
        )

    @traced_engine("validation", "1.0", fingerprint_fields=("flows", "balances"))
    def validate_flows(
        self,
        flows: TransactionFlows,
        balances: Mapping[str, Balance],
        definitions: Mapping[str, DenomDefinition],
    ) -> FeeSchedule | None:
        """Run every check on pre-aggregated flows.

        Returns the fee schedule when the solvency mode had to compute one
        (AGGREGATE), so callers need not compute it again; None otherwise.
        """
        logger.info("validation_started", extra={
            "denom_count": len(flows.denoms),
            "sender_count": len(flows.sender_totals),
            "solvency_mode": self.solvency_mode.value,
        })
        try:
            self.validate_structure(flows)
            self.validate_denoms(flows, definitions)
            fees = None
            if self.solvency_mode is SolvencyMode.AGGREGATE:
                fees = self._fee_calculator.compute_from_flows(flows, definitions)
            self.validate_solvency(flows, balances, definitions, fees)
            self.validate_delta_range(flows, definitions, fees)
        except MultiSendError as exc:
            logger.warning("validation_rejected", extra={
                "error_code": exc.code,
                "reason": str(exc),
            })
            raise

        logger.info("validation_passed", extra={"denom_count": len(flows.denoms)})
        return fees

    def validate_structure(self, flows: TransactionFlows) -> None:
        """Input total must equal output total for every denom."""
        for flow in flows:
            if not flow.is_balanced:
                raise AmountMismatchError(flow.denom, flow.input_total, flow.output_total)

    def validate_denoms(
        self,
        flows: TransactionFlows,
        definitions: Mapping[str, DenomDefinition],
    ) -> None:
        for denom in flows.denoms:
            if denom not in definitions:
                raise UnknownDenomError(denom)

    def validate_solvency(
        self,
        flows: TransactionFlows,
        balances: Mapping[str, Balance],
        definitions: Mapping[str, DenomDefinition],
        fees: FeeSchedule | None = None,
    ) -> None:
        """Every sender must cover its aggregate input plus fees.

        Preconditions:
            - ``fees`` is given when the mode is AGGREGATE.
        """
        if self.solvency_mode is SolvencyMode.AGGREGATE and fees is None:
            raise ValueError("AGGREGATE solvency requires a fee schedule")

        for address, totals in flows.sender_totals.items():
            balance = balances.get(address)
            if balance is None:
                raise AddressNotFoundError(address)
            for denom, amount in totals.items():
                required = self.required_amount(
                    address, amount, definitions[denom], fees
                )
                available = balance.amount_of(denom)
                if available < required:
                    raise InsufficientBalanceError(address, denom, available, required)

    def validate_delta_range(
        self,
        flows: TransactionFlows,
        definitions: Mapping[str, DenomDefinition],
        fees: FeeSchedule | None = None,
    ) -> None:
        """No net credit may exceed the 128-bit coin range.

        Debits are bounded by solvency. The issuer's credit includes its
        commission: the charged total when ``fees`` is given, otherwise the
        per-amount commission of every non-issuer sender, which is never
        smaller.
        """
        for flow in flows:
            definition = definitions[flow.denom]
            credits = {
                address: received - flow.inputs_by_address.get(address, 0)
                for address, received in flow.outputs_by_address.items()
            }
            issuer = definition.issuer
            credits[issuer] = (
                credits.get(issuer, -flow.inputs_by_address.get(issuer, 0))
                + self._commission_bound(flow, definition, fees)
            )
            for address, credit in credits.items():
                if credit > INT128_MAX:
                    raise BalanceOverflowError(address, flow.denom, credit)

    @staticmethod
    def _commission_bound(
        flow: DenomFlow, definition: DenomDefinition, fees: FeeSchedule | None
    ) -> int:
        if fees is not None:
            return fees[flow.denom].total_commission
        return sum(
            definition.commission_fee(amount)
            for _, amount in flow.contributors(definition.issuer)
        )

    def required_amount(
        self,
        address: str,
        amount: int,
        definition: DenomDefinition,
        fees: FeeSchedule | None = None,
    ) -> int:
        """Balance ``address`` needs to send ``amount`` of ``definition.denom``."""
        if definition.is_issuer(address):
            return amount
        if self.solvency_mode is SolvencyMode.AGGREGATE:
            return amount + fees.share_for(definition.denom, address).total
        return definition.gross_debit(amount)
