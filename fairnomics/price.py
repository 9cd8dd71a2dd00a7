"""Conversion of pool sqrt ratios into 1e6-scaled asset prices."""

from fairnomics.constants import MAX_UINT128, PRICE_OUTPUT_MULTIPLIER, Q64, Q128, Q192
from fairnomics.errors import ConfigurationError


def price_scale_factor(asset_decimals: int, quote_decimals: int, *, multiplier: int = PRICE_OUTPUT_MULTIPLIER) -> int:
    """
    Scale factor applied to the raw pool ratio: multiplier * 10^(asset_decimals - quote_decimals).

    E.g. an 18-decimal asset quoted in 6-decimal USDC with the default 1e6 multiplier gives 10^18.
    """
    if asset_decimals < 0 or quote_decimals < 0:
        raise ConfigurationError("token decimals must be >= 0")
    if multiplier <= 0:
        raise ConfigurationError("output multiplier must be > 0")
    shift = asset_decimals - quote_decimals
    if shift >= 0:
        return multiplier * 10**shift
    divisor = 10**-shift
    if multiplier % divisor:
        raise ConfigurationError(
            f"output multiplier {multiplier} cannot absorb a decimals gap of {shift} without losing precision"
        )
    return multiplier // divisor


def sqrt_ratio_to_price(sqrt_ratio: int, *, asset_is_token0: bool, scale_factor: int) -> int:
    """
    Convert a Q64.96 sqrt ratio into the asset's price in quote units, scaled by `scale_factor`.

    The pool ratio is token1-per-token0. When the tracked asset is token0 that ratio already is
    quote-per-asset; when it is token1 the relationship has to be inverted. Both directions are
    computed in integer arithmetic with the same operation order as the on-chain oracle, so results
    match it exactly (including truncation).

    Raises ZeroDivisionError when the asset is token1 and the squared ratio is zero.
    """
    if sqrt_ratio < 0:
        raise ValueError("sqrt ratio must be >= 0")
    if asset_is_token0:
        return _token0_price(sqrt_ratio, scale_factor)
    return _token1_price(sqrt_ratio, scale_factor)


def _token0_price(sqrt_ratio: int, scale_factor: int) -> int:
    if sqrt_ratio <= MAX_UINT128:
        # Small ratio: the square fits 256 bits, multiply first then shift out Q192.
        return (sqrt_ratio * sqrt_ratio * scale_factor) // Q192

    # Large ratio: drop 64 fractional bits before multiplying by the scale.
    ratio_x128 = (sqrt_ratio * sqrt_ratio) // Q64
    price = (ratio_x128 * scale_factor) // Q128
    if price == 0:
        # The early shift truncated everything away; redo it at full precision.
        price = (sqrt_ratio * sqrt_ratio * scale_factor) // Q192
    return price


def _token1_price(sqrt_ratio: int, scale_factor: int) -> int:
    squared = sqrt_ratio * sqrt_ratio
    if squared == 0:
        raise ZeroDivisionError("squared sqrt ratio is zero; cannot invert pool price")

    # (2^192 * scale) / squared, with both operands reduced by 2^64.
    denominator = squared // Q64
    if denominator == 0:
        return (Q192 * scale_factor) // squared
    return (Q128 * scale_factor) // denominator
