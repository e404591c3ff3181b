"""
Unit tests for the domain value objects.

Verifies:
- Coin amount typing and 128-bit range
- Balance denom uniqueness and lookups
- DenomDefinition rate parsing and exact ceiling fees
- MultiSendTx leg validation
- BalanceChangeSet pruning, ordering and equality
"""

import pytest
from decimal import Decimal

from multisend_kernel.domain.values import (
    INT128_MAX,
    INT128_MIN,
    Balance,
    BalanceChangeSet,
    Coin,
    DenomDefinition,
    MultiSendTx,
    ceil_div,
    rate_ceil,
)
from tests.builders import leg


class TestCoin:
    """Tests for Coin construction."""

    def test_negative_amount_allowed(self):
        """Deltas may be negative."""
        assert Coin("usd", -5).amount == -5

    def test_float_amount_rejected(self):
        with pytest.raises(TypeError, match="int"):
            Coin("usd", 1.5)

    def test_bool_amount_rejected(self):
        with pytest.raises(TypeError):
            Coin("usd", True)

    def test_int128_bounds(self):
        assert Coin("usd", INT128_MAX).amount == INT128_MAX
        assert Coin("usd", INT128_MIN).amount == INT128_MIN
        with pytest.raises(ValueError, match="128-bit"):
            Coin("usd", INT128_MAX + 1)
        with pytest.raises(ValueError, match="128-bit"):
            Coin("usd", INT128_MIN - 1)

    def test_empty_denom_rejected(self):
        with pytest.raises(ValueError, match="denom"):
            Coin("", 1)


class TestBalance:
    """Tests for Balance."""

    def test_duplicate_denom_rejected(self):
        with pytest.raises(ValueError, match="Duplicate denom usd"):
            Balance("alice", (Coin("usd", 1), Coin("usd", 2)))

    def test_coins_list_frozen_to_tuple(self):
        balance = Balance("alice", [Coin("usd", 1)])
        assert balance.coins == (Coin("usd", 1),)

    def test_amount_of_missing_denom_is_zero(self):
        balance = Balance.of("alice", usd=10)
        assert balance.amount_of("usd") == 10
        assert balance.amount_of("eur") == 0

    def test_empty_address_rejected(self):
        with pytest.raises(ValueError, match="address"):
            Balance("  ", ())

    def test_non_coin_rejected(self):
        with pytest.raises(TypeError):
            Balance("alice", (("usd", 1),))


class TestDenomDefinition:
    """Tests for rate handling and per-amount fees."""

    def test_float_rate_converted_exactly(self):
        """0.08 as float must behave as exactly 8/100."""
        definition = DenomDefinition("d", "issuer", burn_rate=0.08, commission_rate=0.12)
        assert definition.burn_rate == Decimal("0.08")
        assert definition.commission_rate == Decimal("0.12")
        # float arithmetic would give ceil(80.00000000000001) == 81
        assert definition.burn_fee(1000) == 80
        assert definition.commission_fee(1000) == 120
        assert definition.gross_debit(1000) == 1200

    def test_fee_rounds_up(self):
        definition = DenomDefinition("d", "issuer", burn_rate="0.1")
        assert definition.burn_fee(75) == 8  # 7.5 -> 8
        assert definition.burn_fee(70) == 7
        assert definition.burn_fee(1) == 1
        assert definition.burn_fee(0) == 0

    def test_rate_bounds(self):
        DenomDefinition("d", "issuer", burn_rate="0", commission_rate="1")
        with pytest.raises(ValueError, match="burn_rate"):
            DenomDefinition("d", "issuer", burn_rate="1.01")
        with pytest.raises(ValueError, match="commission_rate"):
            DenomDefinition("d", "issuer", commission_rate="-0.1")

    def test_invalid_rate_rejected(self):
        with pytest.raises(ValueError, match="Invalid burn_rate"):
            DenomDefinition("d", "issuer", burn_rate="ten percent")
        with pytest.raises(ValueError, match="finite"):
            DenomDefinition("d", "issuer", burn_rate="NaN")

    def test_is_issuer(self):
        definition = DenomDefinition("d", "issuer")
        assert definition.is_issuer("issuer")
        assert not definition.is_issuer("alice")
        assert not definition.has_fees


class TestExactArithmetic:
    """Tests for the integer ceiling helpers."""

    def test_ceil_div(self):
        assert ceil_div(15, 2) == 8
        assert ceil_div(14, 2) == 7
        assert ceil_div(0, 7) == 0

    def test_rate_ceil_large_amount(self):
        """No precision loss near the 128-bit limit."""
        amount = 2**126 + 1
        assert rate_ceil(amount, Decimal("0.5")) == 2**125 + 1


class TestMultiSendTx:
    """Tests for transaction leg validation."""

    def test_negative_leg_rejected(self):
        with pytest.raises(ValueError, match="Negative amount"):
            MultiSendTx(inputs=(leg("alice", usd=-1),), outputs=())

    def test_entries_in_order(self):
        tx = MultiSendTx(
            inputs=(leg("alice", usd=1, eur=2), leg("bob", usd=3)),
            outputs=(leg("carol", usd=4, eur=2),),
        )
        assert [(a, c.denom, c.amount) for a, c in tx.input_entries()] == [
            ("alice", "usd", 1),
            ("alice", "eur", 2),
            ("bob", "usd", 3),
        ]
        assert [(a, c.amount) for a, c in tx.output_entries()] == [
            ("carol", 4),
            ("carol", 2),
        ]


class TestBalanceChangeSet:
    """Tests for the result mapping."""

    def test_zero_entries_and_empty_addresses_pruned(self):
        changes = BalanceChangeSet({
            "alice": {"usd": 0, "eur": -3},
            "bob": {"usd": 0},
        })
        assert changes.as_dict() == {"alice": {"eur": -3}}
        assert changes.addresses == frozenset({"alice"})
        assert changes.delta("bob", "usd") == 0

    def test_to_balances_sorted(self):
        changes = BalanceChangeSet({"bob": {"z": 1, "a": -1}, "alice": {"m": 2}})
        assert changes.to_balances() == (
            Balance("alice", (Coin("m", 2),)),
            Balance("bob", (Coin("a", -1), Coin("z", 1))),
        )

    def test_equality_ignores_order(self):
        first = BalanceChangeSet({"a": {"x": 1, "y": 2}, "b": {"x": -3}})
        second = BalanceChangeSet.from_balances([
            Balance("b", (Coin("x", -3),)),
            Balance("a", (Coin("y", 2), Coin("x", 1))),
        ])
        assert first == second
        assert hash(first) == hash(second)

    def test_immutable(self):
        changes = BalanceChangeSet({"alice": {"usd": 1}})
        with pytest.raises(TypeError):
            changes.changes["bob"] = {"usd": 1}

    def test_net_by_denom(self):
        changes = BalanceChangeSet({"a": {"x": -10, "y": 5}, "b": {"x": 8}})
        assert changes.net_by_denom() == {"x": -2, "y": 5}

    def test_empty_is_falsy(self):
        assert not BalanceChangeSet({})
        assert len(BalanceChangeSet({"a": {"x": 1}})) == 1
