"""Tests for value parsing and banding helpers."""

from __future__ import annotations

import pytest

from advisor_flow.recommendations.bands import (
    band,
    ceil_div,
    leading_int,
    money,
    round_half_up,
    token,
)


class TestLeadingInt:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("3500", 3500),
            ("12_months", 12),
            ("1-2_months", 1),
            ("3-6_months", 3),
            ("  42", 42),
            ("-5", -5),
        ],
    )
    def test_parses_leading_integer(self, value, expected):
        assert leading_int(value, 0) == expected

    @pytest.mark.parametrize("value", ["", "avalanche", "months_12", None])
    def test_default_when_no_leading_digits(self, value):
        assert leading_int(value, 99) == 99


class TestToken:
    def test_known_token(self):
        assert token("Snowball", ("avalanche", "snowball"), "avalanche") == "snowball"

    def test_unknown_token_defaults(self):
        assert token("yolo", ("avalanche", "snowball"), "avalanche") == "avalanche"
        assert token(None, ("a",), "a") == "a"


class TestBand:
    BOUNDS = [(2500, "low"), (4500, "medium")]

    @pytest.mark.parametrize(
        "amount, expected",
        [(0, "low"), (2499, "low"), (2500, "medium"), (4499, "medium"), (4500, "high"), (10**9, "high")],
    )
    def test_edges(self, amount, expected):
        assert band(amount, self.BOUNDS, "high") == expected


class TestArithmetic:
    def test_ceil_div(self):
        assert ceil_div(21000, 500) == 42
        assert ceil_div(20000, 750) == 27
        assert ceil_div(0, 500) == 0

    def test_ceil_div_non_positive_denominator(self):
        assert ceil_div(10, 0) == 10
        assert ceil_div(10, -3) == 10

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_money(self):
        assert money(21000) == "$21,000"
        assert money(500) == "$500"
        assert money(1_168_200) == "$1,168,200"
