"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the value types every stage of the multi-send pipeline works
    with: Coin, Balance, DenomDefinition, MultiSendTx and the resulting
    BalanceChangeSet. These replace loose tuples and nested dicts wherever
    account or denomination data appears in engine logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by the engines and services. No outward dependencies.

Invariants enforced:
    - Coin amounts are Python ints inside the signed 128-bit range.
    - Denoms are unique within one Balance.
    - Fee rates are Decimal (fixed-point) in [0, 1]; floats are converted
      through their shortest string form, never used in arithmetic.
    - Per-amount fees round up (ceiling) using exact integer arithmetic.
    - Transaction legs never carry negative amounts.

Failure modes:
    - ValueError on construction with empty identifiers, duplicate denoms,
      out-of-range amounts or rates.
    - TypeError when an amount is not an int.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType

INT128_MIN = -(2**127)
INT128_MAX = 2**127 - 1

RATE_MIN = Decimal("0")
RATE_MAX = Decimal("1")


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling of numerator / denominator (denominator > 0)."""
    return -(-numerator // denominator)


def _require_identifier(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} is required")
    return value


@dataclass(frozen=True, slots=True)
class Coin:
    """
    An amount of one denom.

    Contract:
        Pairs a denom with an integer amount. Inside a transaction leg the
        amount is non-negative; inside a balance change it is a signed delta.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is an int (never bool, float or Decimal)
        - amount fits a signed 128-bit integer
    """

    denom: str
    amount: int

    def __post_init__(self) -> None:
        _require_identifier(self.denom, "Coin denom")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError(f"Coin amount must be an int, got {type(self.amount).__name__}")
        if not INT128_MIN <= self.amount <= INT128_MAX:
            raise ValueError(f"Coin amount out of 128-bit range: {self.amount}")

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True, slots=True)
class Balance:
    """
    Coins held by (or moved for) one address.

    Contract:
        Represents either a pre-transaction account balance or one input /
        output leg of a MultiSendTx.

    Guarantees:
        - address is a non-empty string
        - coins is a tuple with unique denoms

    Non-goals:
        - Does NOT enforce non-negative amounts; MultiSendTx does that for
          its legs.
    """

    address: str
    coins: tuple[Coin, ...] = ()

    def __post_init__(self) -> None:
        _require_identifier(self.address, "Balance address")
        coins = tuple(self.coins)
        seen: set[str] = set()
        for coin in coins:
            if not isinstance(coin, Coin):
                raise TypeError(f"coins must contain Coin, got {type(coin).__name__}")
            if coin.denom in seen:
                raise ValueError(
                    f"Duplicate denom {coin.denom} in balance of {self.address}"
                )
            seen.add(coin.denom)
        object.__setattr__(self, "coins", coins)

    @classmethod
    def of(cls, address: str, **amounts: int) -> Balance:
        """Factory: ``Balance.of("alice", usd=100, eur=5)``."""
        return cls(
            address=address,
            coins=tuple(Coin(denom, amount) for denom, amount in amounts.items()),
        )

    def amount_of(self, denom: str) -> int:
        """Amount held for ``denom`` (0 when there is no coin record)."""
        for coin in self.coins:
            if coin.denom == denom:
                return coin.amount
        return 0

    @property
    def denoms(self) -> tuple[str, ...]:
        return tuple(coin.denom for coin in self.coins)


@dataclass(frozen=True, slots=True)
class DenomDefinition:
    """
    Definition of one denom and its transfer fees.

    Contract:
        ``burn_rate`` and ``commission_rate`` are fixed-point Decimals in
        [0, 1]. A transfer of ``a`` by a non-issuer costs the sender
        ``ceil(a * burn_rate)`` burned on top of ``a`` and
        ``ceil(a * commission_rate)`` paid to the issuer.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - Rates are Decimal; float input goes through ``str`` first so that
          ``0.1`` becomes exactly ``Decimal("0.1")``
        - All fee rounding is exact (rational integer arithmetic)

    Non-goals:
        - Does NOT know about proportional distribution across senders;
          that is FeeCalculator's job.
    """

    denom: str
    issuer: str
    burn_rate: Decimal = Decimal("0")
    commission_rate: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        _require_identifier(self.denom, "DenomDefinition denom")
        _require_identifier(self.issuer, "DenomDefinition issuer")
        for name in ("burn_rate", "commission_rate"):
            rate = _to_rate(getattr(self, name), name)
            object.__setattr__(self, name, rate)

    def is_issuer(self, address: str) -> bool:
        return address == self.issuer

    def burn_fee(self, amount: int) -> int:
        """Burn charged on an individual transfer of ``amount``."""
        return rate_ceil(amount, self.burn_rate)

    def commission_fee(self, amount: int) -> int:
        """Commission charged on an individual transfer of ``amount``."""
        return rate_ceil(amount, self.commission_rate)

    def gross_debit(self, amount: int) -> int:
        """``amount`` plus its individual burn and commission fees."""
        return amount + self.burn_fee(amount) + self.commission_fee(amount)

    @property
    def has_fees(self) -> bool:
        return self.burn_rate > 0 or self.commission_rate > 0


def _to_rate(value: Decimal | str | int | float, name: str) -> Decimal:
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a number, got bool")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid {name}: {value!r}") from e
    if not value.is_finite():
        raise ValueError(f"{name} must be finite: {value}")
    if not RATE_MIN <= value <= RATE_MAX:
        raise ValueError(f"{name} must be in [0, 1]: {value}")
    return value


def rate_ceil(amount: int, rate: Decimal) -> int:
    """``ceil(amount * rate)`` without floating point."""
    numerator, denominator = rate.as_integer_ratio()
    return ceil_div(amount * numerator, denominator)


@dataclass(frozen=True, slots=True)
class MultiSendTx:
    """
    A requested batched transfer.

    Contract:
        ``inputs`` are debits requested from senders, ``outputs`` credits
        requested for recipients. An address may appear on several legs.

    Guarantees:
        - inputs and outputs are tuples of Balance
        - No leg carries a negative amount

    Non-goals:
        - Does NOT check that inputs and outputs balance; that is the
          validator's structural check.
    """

    inputs: tuple[Balance, ...] = ()
    outputs: tuple[Balance, ...] = ()

    def __post_init__(self) -> None:
        for side in ("inputs", "outputs"):
            legs = tuple(getattr(self, side))
            for leg in legs:
                if not isinstance(leg, Balance):
                    raise TypeError(f"{side} must contain Balance, got {type(leg).__name__}")
                for coin in leg.coins:
                    if coin.amount < 0:
                        raise ValueError(
                            f"Negative amount {coin.amount} for {coin.denom} "
                            f"in {side} leg of {leg.address}"
                        )
            object.__setattr__(self, side, legs)

    def input_entries(self) -> Iterator[tuple[str, Coin]]:
        """Yield ``(address, coin)`` for every input coin, in order."""
        for leg in self.inputs:
            for coin in leg.coins:
                yield leg.address, coin

    def output_entries(self) -> Iterator[tuple[str, Coin]]:
        """Yield ``(address, coin)`` for every output coin, in order."""
        for leg in self.outputs:
            for coin in leg.coins:
                yield leg.address, coin


@dataclass(frozen=True)
class BalanceChangeSet:
    """
    Net signed balance changes produced by one transaction.

    Contract:
        Read-only mapping ``address -> denom -> delta``. Negative deltas are
        deductions, positive deltas are credits.

    Guarantees:
        - No zero deltas, no addresses without deltas
        - Equality ignores ordering
    """

    changes: Mapping[str, Mapping[str, int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        pruned: dict[str, MappingProxyType] = {}
        for address, coins in self.changes.items():
            kept = {denom: amount for denom, amount in coins.items() if amount != 0}
            if kept:
                pruned[address] = MappingProxyType(kept)
        object.__setattr__(self, "changes", MappingProxyType(pruned))

    @classmethod
    def from_balances(cls, balances: Iterable[Balance]) -> BalanceChangeSet:
        changes: dict[str, dict[str, int]] = {}
        for balance in balances:
            row = changes.setdefault(balance.address, {})
            for coin in balance.coins:
                row[coin.denom] = row.get(coin.denom, 0) + coin.amount
        return cls(changes)

    def delta(self, address: str, denom: str) -> int:
        return self.changes.get(address, {}).get(denom, 0)

    @property
    def addresses(self) -> frozenset[str]:
        return frozenset(self.changes)

    def net_by_denom(self) -> dict[str, int]:
        """Sum of deltas per denom across all addresses."""
        totals: dict[str, int] = {}
        for coins in self.changes.values():
            for denom, amount in coins.items():
                totals[denom] = totals.get(denom, 0) + amount
        return totals

    def to_balances(self) -> tuple[Balance, ...]:
        """Balances sorted by address, coins sorted by denom."""
        return tuple(
            Balance(
                address=address,
                coins=tuple(
                    Coin(denom, self.changes[address][denom])
                    for denom in sorted(self.changes[address])
                ),
            )
            for address in sorted(self.changes)
        )

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {address: dict(coins) for address, coins in self.changes.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BalanceChangeSet):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash(self.to_balances())

    def __len__(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)
