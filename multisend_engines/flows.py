"""
Module: multisend_engines.flows
Responsibility:
    Aggregate a MultiSendTx into per-denom flows in a single pass, and index
    the caller-supplied balances and denom definitions by their keys.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Shared by the validator, fee calculator and projector so that input and
    output sums are derived exactly once per transaction.

Invariants enforced:
    - Insertion order of denoms and addresses follows first appearance in
      the transaction, which makes error reporting reproducible.
    - Address keys are unique in the balance index, denom keys unique in
      the definition index.

Failure modes:
    - DuplicateAddressError when two original balances share an address.
    - DuplicateDenomError when two definitions share a denom.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from multisend_kernel.domain.values import Balance, DenomDefinition, MultiSendTx
from multisend_kernel.exceptions import DuplicateAddressError, DuplicateDenomError


@dataclass(frozen=True)
class DenomFlow:
    """
    Everything the pipeline needs to know about one denom's movement.

    Guarantees:
        - ``input_total == sum(inputs_by_address.values())``
        - ``output_total == sum(outputs_by_address.values())``
    """

    denom: str
    input_total: int
    output_total: int
    inputs_by_address: Mapping[str, int]
    outputs_by_address: Mapping[str, int]

    @property
    def is_balanced(self) -> bool:
        return self.input_total == self.output_total

    def non_issuer_input_sum(self, issuer: str) -> int:
        return self.input_total - self.inputs_by_address.get(issuer, 0)

    def non_issuer_output_sum(self, issuer: str) -> int:
        return self.output_total - self.outputs_by_address.get(issuer, 0)

    def contributors(self, issuer: str) -> Iterator[tuple[str, int]]:
        """Non-issuer senders with their aggregate input amount."""
        for address, amount in self.inputs_by_address.items():
            if address != issuer:
                yield address, amount


@dataclass(frozen=True)
class TransactionFlows:
    """
    Single-pass aggregate of a transaction.

    ``by_denom`` covers every denom on either side. ``sender_totals`` maps
    each sending address to its aggregate input amount per denom.
    """

    by_denom: Mapping[str, DenomFlow]
    sender_totals: Mapping[str, Mapping[str, int]]

    @property
    def denoms(self) -> tuple[str, ...]:
        return tuple(self.by_denom)

    def __getitem__(self, denom: str) -> DenomFlow:
        return self.by_denom[denom]

    def __iter__(self) -> Iterator[DenomFlow]:
        return iter(self.by_denom.values())


def summarize_flows(tx: MultiSendTx) -> TransactionFlows:
    """Aggregate inputs and outputs per denom and per address in one pass."""
    inputs: dict[str, dict[str, int]] = {}
    outputs: dict[str, dict[str, int]] = {}
    senders: dict[str, dict[str, int]] = {}
    denoms: dict[str, None] = {}

    for address, coin in tx.input_entries():
        denoms.setdefault(coin.denom)
        per_address = inputs.setdefault(coin.denom, {})
        per_address[address] = per_address.get(address, 0) + coin.amount
        per_denom = senders.setdefault(address, {})
        per_denom[coin.denom] = per_denom.get(coin.denom, 0) + coin.amount

    for address, coin in tx.output_entries():
        denoms.setdefault(coin.denom)
        per_address = outputs.setdefault(coin.denom, {})
        per_address[address] = per_address.get(address, 0) + coin.amount

    by_denom = {}
    for denom in denoms:
        ins = inputs.get(denom, {})
        outs = outputs.get(denom, {})
        by_denom[denom] = DenomFlow(
            denom=denom,
            input_total=sum(ins.values()),
            output_total=sum(outs.values()),
            inputs_by_address=MappingProxyType(ins),
            outputs_by_address=MappingProxyType(outs),
        )

    return TransactionFlows(
        by_denom=MappingProxyType(by_denom),
        sender_totals=MappingProxyType(
            {address: MappingProxyType(totals) for address, totals in senders.items()}
        ),
    )


def index_balances(balances: Iterable[Balance]) -> dict[str, Balance]:
    """Index original balances by address; addresses must be unique."""
    index: dict[str, Balance] = {}
    for balance in balances:
        if balance.address in index:
            raise DuplicateAddressError(balance.address)
        index[balance.address] = balance
    return index


def index_definitions(
    definitions: Iterable[DenomDefinition],
) -> dict[str, DenomDefinition]:
    """Index denom definitions by denom; denoms must be unique."""
    index: dict[str, DenomDefinition] = {}
    for definition in definitions:
        if definition.denom in index:
            raise DuplicateDenomError(definition.denom)
        index[definition.denom] = definition
    return index
