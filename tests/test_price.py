from math import isqrt

import pytest

from fairnomics.constants import MAX_UINT128, Q96, Q192
from fairnomics.errors import ConfigurationError
from fairnomics.price import price_scale_factor, sqrt_ratio_to_price
from fairnomics.tick_math import get_sqrt_ratio_at_tick


@pytest.mark.parametrize(
    ("asset_decimals", "quote_decimals", "expected"),
    [
        (18, 6, 10**18),
        (6, 6, 10**6),
        (8, 6, 10**8),
        (6, 9, 10**3),
        (18, 18, 10**6),
    ],
)
def test_price_scale_factor(asset_decimals, quote_decimals, expected):
    assert price_scale_factor(asset_decimals, quote_decimals) == expected


def test_price_scale_factor_rejects_lossy_or_invalid_input():
    with pytest.raises(ConfigurationError):
        price_scale_factor(6, 18)
    with pytest.raises(ConfigurationError):
        price_scale_factor(-1, 6)
    with pytest.raises(ConfigurationError):
        price_scale_factor(18, 6, multiplier=0)


@pytest.mark.parametrize("asset_is_token0", [True, False])
def test_parity_at_tick_zero(asset_is_token0):
    price = sqrt_ratio_to_price(get_sqrt_ratio_at_tick(0), asset_is_token0=asset_is_token0, scale_factor=10**6)
    assert price == 10**6


def test_token_order_inverts_the_ratio():
    sqrt_ratio = 2 * Q96  # pool ratio token1/token0 = 4
    assert sqrt_ratio_to_price(sqrt_ratio, asset_is_token0=True, scale_factor=10**6) == 4_000_000
    assert sqrt_ratio_to_price(sqrt_ratio, asset_is_token0=False, scale_factor=10**6) == 250_000


def test_small_usd_price_in_output_units():
    # 18-decimal asset priced in 6-decimal USDC at $0.000010
    scale = price_scale_factor(18, 6)
    sqrt_ratio = isqrt(Q192 // 10**17) + 1
    assert sqrt_ratio_to_price(sqrt_ratio, asset_is_token0=True, scale_factor=scale) == 10


def test_large_ratio_path_matches_full_precision():
    sqrt_ratio = MAX_UINT128 * 3
    full = sqrt_ratio * sqrt_ratio * 10**6 // Q192
    # shift-then-multiply may truncate a little, never more than one unit of the scaled price here
    assert abs(sqrt_ratio_to_price(sqrt_ratio, asset_is_token0=True, scale_factor=10**6) - full) <= 1


def test_zero_ratio():
    assert sqrt_ratio_to_price(0, asset_is_token0=True, scale_factor=10**6) == 0
    with pytest.raises(ZeroDivisionError):
        sqrt_ratio_to_price(0, asset_is_token0=False, scale_factor=10**6)


def test_negative_ratio_rejected():
    with pytest.raises(ValueError):
        sqrt_ratio_to_price(-1, asset_is_token0=True, scale_factor=10**6)
