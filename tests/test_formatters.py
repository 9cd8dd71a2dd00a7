import pytest

from fairnomics.formatters import (
    as_int,
    format_bp,
    format_duration,
    format_price,
    format_ratio,
    format_timestamp,
    format_tokens,
    short_address,
    target_indicator,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (True, 1),
        (False, 0),
        (5, 5),
        ("5", 5),
        ("  5  ", 5),
        ("0x10", 16),
        (-7, -7),
    ],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


def test_as_int_default():
    assert as_int(None, default=-1) == -1


@pytest.mark.parametrize(
    ("price", "expected"),
    [
        (0, "$0.000000"),
        (10, "$0.000010"),
        (15, "$0.000015"),
        (1_000_000, "$1.000000"),
        (12_345_678, "$12.345678"),
    ],
)
def test_format_price(price, expected):
    assert format_price(price) == expected


def test_format_bp_and_ratio():
    assert format_bp(5556) == "55.56%"
    assert format_bp(10_000) == "100.00%"
    assert format_ratio(5000, 9000) == "55.56%"
    assert format_ratio(2000, 9000) == "22.22%"
    assert format_ratio(1000, 9000) == "11.11%"
    with pytest.raises(ZeroDivisionError):
        format_ratio(1, 0)


def test_format_tokens():
    assert format_tokens(0) == "0"
    assert format_tokens(10 * 10**18, symbol="FAIR") == "10 FAIR"
    assert format_tokens(1000 * 10**18) == "1,000"
    assert format_tokens(1_234_567 * 10**14, symbol="FAIR") == "123.4567 FAIR"
    assert format_tokens(1_500, decimals=3) == "1.5"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0s"),
        (-5, "0s"),
        (45, "45s"),
        (3660, "1h 1m"),
        (86400, "1d"),
        (90 * 86400, "90d"),
        (86400 + 3600 + 60 + 1, "1d 1h 1m 1s"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_timestamp():
    assert format_timestamp(1735689600) == "2025-01-01 00:00 UTC"


def test_short_address():
    assert short_address("0xabc") == "0xabc"
    address = "0x62c944758F34D598CC817F2bfB7205b467Cf5C3b"
    assert short_address(address) == "0x62c94475...Cf5C3b"


def test_target_indicator():
    assert target_indicator(0, 10) == "❔"
    assert target_indicator(10, 10) == "🟢"
    assert target_indicator(6, 10) == "🟡"
    assert target_indicator(5, 10) == "🟡"
    assert target_indicator(4, 10) == "🔴"
