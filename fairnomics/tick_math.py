"""
Tick <-> sqrt price ratio conversion.

Bit-exact with the on-chain TickMath library used by concentrated-liquidity pools: the sqrt ratio is
a Q64.96 fixed-point value of sqrt(1.0001^tick). Every constant below must match the pool's own
library, otherwise prices computed here drift from the prices the pool reports.
"""

from fairnomics.constants import MAX_SQRT_RATIO, MAX_TICK, MAX_UINT256, MIN_SQRT_RATIO, MIN_TICK

# Q128.128 value of 1 / sqrt(1.0001^(2^i)) for bit i of |tick|, i = 1..19.
# Bit 0 selects the starting value instead (see _TICK_BIT0_RATIO).
_TICK_BIT0_RATIO = 0xFFFCB933BD6FAD37AA2D162D1A594001
_TICK_LADDER: tuple[tuple[int, int], ...] = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)

# log_sqrt(1.0001)(2) as Q128.128, and the error bounds of the log approximation.
_LOG_SQRT10001_FACTOR = 255738958999603826347141
_TICK_LOW_ERROR = 3402992956809132552372053340129591855
_TICK_HIGH_ERROR = 291339464771989622907027621153398088495


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Calculate sqrt(1.0001^tick) * 2^96.

    Raises ValueError if |tick| > MAX_TICK. Out-of-range ticks are never clamped.
    """
    abs_tick = -tick if tick < 0 else tick
    if abs_tick > MAX_TICK:
        raise ValueError(f"tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    ratio = _TICK_BIT0_RATIO if abs_tick & 0x1 else 1 << 128
    for bit, factor in _TICK_LADDER:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up so that get_tick_at_sqrt_ratio stays consistent.
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_ratio: int) -> int:
    """
    Calculate the greatest tick whose sqrt ratio is <= `sqrt_ratio`.

    Accepts MIN_SQRT_RATIO <= sqrt_ratio <= MAX_SQRT_RATIO; raises ValueError otherwise.
    """
    if sqrt_ratio < MIN_SQRT_RATIO or sqrt_ratio > MAX_SQRT_RATIO:
        raise ValueError(f"sqrt ratio {sqrt_ratio} out of bounds [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO}]")
    if sqrt_ratio == MAX_SQRT_RATIO:
        return MAX_TICK

    ratio = sqrt_ratio << 32
    msb = ratio.bit_length() - 1
    r = ratio >> (msb - 127) if msb >= 128 else ratio << (127 - msb)

    log_2 = (msb - 128) << 64
    for shift in range(63, 49, -1):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << shift
        r >>= f

    log_sqrt10001 = log_2 * _LOG_SQRT10001_FACTOR

    tick_low = (log_sqrt10001 - _TICK_LOW_ERROR) >> 128
    tick_high = (log_sqrt10001 + _TICK_HIGH_ERROR) >> 128
    if tick_low == tick_high:
        return tick_low
    if tick_high <= MAX_TICK and get_sqrt_ratio_at_tick(tick_high) <= sqrt_ratio:
        return tick_high
    return tick_low
