"""Time-weighted average tick over a pool's observation history."""

import sys

from fairnomics.constants import DEFAULT_TWAP_WINDOW
from fairnomics.errors import ConfigurationError
from fairnomics.sources import Pool


def average_tick(cumulative_ago: int, cumulative_now: int, window: int) -> int:
    """
    Average tick between two tick-cumulative samples `window` seconds apart.

    Rounds toward negative infinity: delta=-7, window=2 gives -4, not -3.
    """
    if window <= 0:
        raise ConfigurationError("TWAP window must be > 0")
    # Floor division already rounds negative, inexact quotients down.
    return (cumulative_now - cumulative_ago) // window


class TwapReader:
    """
    Reads an average tick from a pool, degrading to the spot tick and then to tick 0.

    Never raises on pool failures: a missing history falls back to the instantaneous tick, and a
    failing spot read falls back to tick 0. The tick-0 fallback reports price parity rather than
    "unknown", so every fallback is reported on stderr.
    """

    def __init__(self, pool: Pool, window: int = DEFAULT_TWAP_WINDOW) -> None:
        if window <= 0:
            raise ConfigurationError("TWAP window must be > 0")
        self.pool = pool
        self.window = int(window)

    def read_twap_tick(self) -> int:
        """Average tick over the window. Raises whatever the pool raises."""
        cumulatives = self.pool.cumulative_ticks([self.window, 0])
        if len(cumulatives) != 2:
            raise ValueError(f"expected 2 tick cumulatives, got {len(cumulatives)}")
        return average_tick(int(cumulatives[0]), int(cumulatives[1]), self.window)

    def read_spot_tick(self) -> int:
        """Current pool tick. Raises whatever the pool raises."""
        _, tick = self.pool.instantaneous_state()
        return int(tick)

    def read_tick(self) -> int:
        """TWAP tick, else spot tick, else 0."""
        try:
            return self.read_twap_tick()
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  TWAP observe({self.window}s) failed, using spot tick: {ex}", file=sys.stderr)

        try:
            return self.read_spot_tick()
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  Spot tick read failed, using tick 0: {ex}", file=sys.stderr)
        return 0
