"""
Module: multisend_engines.fees
Responsibility:
    Compute, per denom, the burn and commission each sender pays on a
    multi-send transaction, distributing the aggregate fee proportionally
    across non-issuer senders.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import multisend_kernel.

Invariants enforced:
    - ISSUER_EXEMPTION: the issuer of a denom never receives a fee share
      and its flows never enter the fee base.
    - CEILING_ROUNDING: each sender's share is the ceiling of its exact
      proportional share, computed with integer arithmetic only
      (rates are converted to exact integer ratios, never floats).
    - No division by zero: a denom without non-issuer input carries no fees.

Algorithm (per denom):
    non_issuer_input_sum  = inputs from every address except the issuer
    non_issuer_output_sum = outputs to every address except the issuer
    fee_base              = min(non_issuer_input_sum, non_issuer_output_sum)
    total                 = fee_base * rate            (exact, a Fraction)
    share(sender)         = ceil(total * amount / non_issuer_input_sum)

    Rounding is applied per sender and independently, so the sum of shares
    can exceed ``total`` by less than one unit per sender.

Failure modes:
    - UnknownDenomError when a denom in the transaction has no definition.

Usage:
    from multisend_engines.fees import FeeCalculator

    schedule = FeeCalculator().compute_fees(tx, definitions)
    share = schedule.share_for("usd", "alice")
    share.burn, share.commission
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from types import MappingProxyType

from multisend_engines.flows import (
    DenomFlow,
    TransactionFlows,
    index_definitions,
    summarize_flows,
)
from multisend_engines.tracer import traced_engine
from multisend_kernel.domain.values import DenomDefinition, MultiSendTx, ceil_div
from multisend_kernel.exceptions import UnknownDenomError
from multisend_kernel.logging_config import get_logger

logger = get_logger("engines.fees")


@dataclass(frozen=True, slots=True)
class FeeShare:
    """Burn and commission charged to one sender for one denom."""

    burn: int = 0
    commission: int = 0

    @property
    def total(self) -> int:
        return self.burn + self.commission

    @property
    def is_zero(self) -> bool:
        return self.burn == 0 and self.commission == 0


ZERO_SHARE = FeeShare()


@dataclass(frozen=True)
class DenomFees:
    """
    Fee outcome for one denom.

    Contract:
        ``exact_burn`` / ``exact_commission`` are the unrounded aggregate
        fees; ``total_burn`` / ``total_commission`` are what the senders
        are actually charged after per-sender ceiling.
    Guarantees:
        - ``shares`` never contains the issuer.
        - Every share is within one unit above its exact proportional value.
    """

    denom: str
    issuer: str
    non_issuer_input_sum: int
    non_issuer_output_sum: int
    fee_base: int
    exact_burn: Fraction
    exact_commission: Fraction
    shares: Mapping[str, FeeShare]

    @property
    def total_burn(self) -> int:
        return sum(share.burn for share in self.shares.values())

    @property
    def total_commission(self) -> int:
        return sum(share.commission for share in self.shares.values())

    def share_for(self, address: str) -> FeeShare:
        return self.shares.get(address, ZERO_SHARE)


@dataclass(frozen=True)
class FeeSchedule:
    """Fees for every denom of a transaction, keyed by denom."""

    by_denom: Mapping[str, DenomFees]

    def share_for(self, denom: str, address: str) -> FeeShare:
        denom_fees = self.by_denom.get(denom)
        if denom_fees is None:
            return ZERO_SHARE
        return denom_fees.share_for(address)

    def as_mapping(self) -> dict[str, dict[str, tuple[int, int]]]:
        """``denom -> sender -> (burn_share, commission_share)``."""
        return {
            denom: {
                address: (share.burn, share.commission)
                for address, share in denom_fees.shares.items()
            }
            for denom, denom_fees in self.by_denom.items()
        }

    def __getitem__(self, denom: str) -> DenomFees:
        return self.by_denom[denom]

    def __iter__(self) -> Iterator[DenomFees]:
        return iter(self.by_denom.values())


def distribute(
    fee_base: int,
    rate: Decimal,
    contributions: Sequence[tuple[str, int]],
    contribution_total: int,
) -> dict[str, int]:
    """Split ``fee_base * rate`` over contributions, rounding each share up.

    Preconditions:
        - ``contribution_total`` equals the sum of the contribution amounts.
    Postconditions:
        - Every share equals ``ceil(fee_base * rate * amount / contribution_total)``.
        - Returns all-zero shares when ``contribution_total`` is 0.
    """
    if contribution_total == 0:
        return {address: 0 for address, _ in contributions}
    numerator, denominator = rate.as_integer_ratio()
    scale = denominator * contribution_total
    return {
        address: ceil_div(fee_base * numerator * amount, scale)
        for address, amount in contributions
    }


class FeeCalculator:
    """
    Compute proportional burn and commission shares.

    Contract:
        Pure function of the transaction and the denom definitions.
        Denoms are independent, so ``max_workers > 1`` computes them on a
        thread pool; the result is identical to the serial computation.
    Non-goals:
        - Does not check solvency; see TransactionValidator.
        - Does not credit the issuer; see BalanceProjector.
    """

    def __init__(self, max_workers: int = 1):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers

    def compute_fees(
        self,
        tx: MultiSendTx,
        definitions: Sequence[DenomDefinition],
    ) -> FeeSchedule:
        """Fee schedule for ``tx``; see module docstring for the algorithm."""
        return self.compute_from_flows(summarize_flows(tx), index_definitions(definitions))

    @traced_engine("fees", "1.0", fingerprint_fields=("flows",))
    def compute_from_flows(
        self,
        flows: TransactionFlows,
        definitions: Mapping[str, DenomDefinition],
    ) -> FeeSchedule:
        pairs: list[tuple[DenomFlow, DenomDefinition]] = []
        for flow in flows:
            definition = definitions.get(flow.denom)
            if definition is None:
                logger.error("fee_unknown_denom", extra={"denom": flow.denom})
                raise UnknownDenomError(flow.denom)
            pairs.append((flow, definition))

        if self.max_workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                # Workers inherit the caller's LogContext
                futures = [
                    pool.submit(
                        contextvars.copy_context().run, self._compute_denom, flow, definition
                    )
                    for flow, definition in pairs
                ]
                results = [future.result() for future in futures]
        else:
            results = [self._compute_denom(flow, definition) for flow, definition in pairs]

        schedule = FeeSchedule(
            by_denom=MappingProxyType({fees.denom: fees for fees in results})
        )
        logger.info("fee_schedule_computed", extra={
            "denom_count": len(results),
            "total_burn": {fees.denom: fees.total_burn for fees in results},
            "total_commission": {fees.denom: fees.total_commission for fees in results},
            "workers": self.max_workers,
        })
        return schedule

    def _compute_denom(self, flow: DenomFlow, definition: DenomDefinition) -> DenomFees:
        issuer = definition.issuer
        input_sum = flow.non_issuer_input_sum(issuer)
        output_sum = flow.non_issuer_output_sum(issuer)
        contributions = list(flow.contributors(issuer))

        if input_sum == 0:
            # No non-issuer sender: nothing to charge, nothing to divide by
            fee_base = 0
        else:
            fee_base = min(input_sum, output_sum)

        burns = distribute(fee_base, definition.burn_rate, contributions, input_sum)
        commissions = distribute(
            fee_base, definition.commission_rate, contributions, input_sum
        )
        shares = {
            address: FeeShare(burn=burns[address], commission=commissions[address])
            for address, _ in contributions
        }

        denom_fees = DenomFees(
            denom=flow.denom,
            issuer=issuer,
            non_issuer_input_sum=input_sum,
            non_issuer_output_sum=output_sum,
            fee_base=fee_base,
            exact_burn=fee_base * Fraction(definition.burn_rate),
            exact_commission=fee_base * Fraction(definition.commission_rate),
            shares=MappingProxyType(shares),
        )
        logger.debug("denom_fees_computed", extra={
            "denom": flow.denom,
            "fee_base": fee_base,
            "non_issuer_input_sum": input_sum,
            "non_issuer_output_sum": output_sum,
            "exact_burn": denom_fees.exact_burn,
            "total_burn": denom_fees.total_burn,
            "total_commission": denom_fees.total_commission,
            "contributor_count": len(shares),
        })
        return denom_fees
