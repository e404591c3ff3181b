"""
Tests for the engine tracer decorator.
"""

from decimal import Decimal

import pytest

from multisend_engines.tracer import (
    TRACE_MESSAGE,
    _canonicalize,
    compute_input_fingerprint,
    traced_engine,
)
from multisend_kernel.exceptions import UnknownDenomError
from tests.builders import denom, leg


@traced_engine("sample", "2.1", fingerprint_fields=("left", "right"))
def _add(left, right, *, scale=1):
    return (left + right) * scale


@traced_engine("sample", "2.1")
def _reject(name):
    raise UnknownDenomError(name)


def _traces(records):
    return [r for r in records if r["message"] == TRACE_MESSAGE]


class TestCanonicalize:

    def test_mapping_keys_sorted(self):
        assert _canonicalize({"b": 1, "a": 2}) == _canonicalize({"a": 2, "b": 1})

    def test_dataclasses_rendered_by_field(self):
        rendered = _canonicalize(leg("alice", usd=5))
        assert rendered == "Balance(address=alice,coins=[Coin(denom=usd,amount=5)])"

    def test_rates(self):
        assert "burn_rate=0.1" in _canonicalize(denom("d", burn="0.1"))
        assert _canonicalize(Decimal("0.5")) == "0.5"

    def test_equal_rates_render_alike(self):
        assert _canonicalize(Decimal("0.10")) == "0.1"
        assert _canonicalize(Decimal("1E+2")) == "100"
        assert _canonicalize(Decimal("0.000")) == "0"

    def test_none_and_bool(self):
        assert _canonicalize(None) == "null"
        assert _canonicalize(True) == "true"


class TestFingerprint:

    def test_deterministic(self):
        args = {"tx": [leg("a", x=1)]}
        first = compute_input_fingerprint(("tx",), args)
        assert first == compute_input_fingerprint(("tx",), dict(args))
        assert len(first) == 16

    def test_different_inputs_differ(self):
        assert compute_input_fingerprint(("v",), {"v": 1}) != compute_input_fingerprint(("v",), {"v": 2})

    def test_trailing_zeros_in_rates_ignored(self):
        short = compute_input_fingerprint(("d",), {"d": denom("d", burn="0.1")})
        padded = compute_input_fingerprint(("d",), {"d": denom("d", burn="0.10")})
        assert short == padded


class TestTracedEngine:

    def test_result_passed_through(self):
        assert _add(2, 3, scale=2) == 10

    def test_positional_and_keyword_binding_agree(self, captured_logs):
        _add(1, 2)
        _add(right=2, left=1)
        first, second = _traces(captured_logs())
        assert first["input_fingerprint"] == second["input_fingerprint"]
        assert first["engine_name"] == "sample"
        assert first["engine_version"] == "2.1"
        assert first["outcome"] == "ok"
        assert "duration_ms" in first

    def test_rejection_traced_and_reraised(self, captured_logs):
        with pytest.raises(UnknownDenomError):
            _reject("gold")
        (trace,) = _traces(captured_logs())
        assert trace["outcome"] == "rejected"
        assert trace["error_code"] == "UNKNOWN_DENOM"
        assert trace["input_fingerprint"] == ""
