"""In-memory concentrated-liquidity pool, used for simulation and local runs."""

import bisect
import time
from collections.abc import Callable, Sequence

from fairnomics.constants import MAX_TICK, MIN_TICK
from fairnomics.errors import ConfigurationError, ExternalSourceFailure
from fairnomics.tick_math import get_sqrt_ratio_at_tick


class ObservationPool:
    """
    Keeps a tick-cumulative history the way an on-chain pool's observation array does:
    every second a tick is in effect adds that tick to the running cumulative.

    Asking for a point in time before the first observation raises ExternalSourceFailure("OLD"),
    like `observe()` reverting on a young pool.
    """

    def __init__(self, token0: str, token1: str, *, clock: Callable[[], float] | None = None) -> None:
        if not token0 or not token1 or token0.lower() == token1.lower():
            raise ConfigurationError("pool needs two distinct tokens")
        self.token0 = token0
        self.token1 = token1
        self.clock = clock or time.time
        # (timestamp, tick_cumulative at timestamp, tick in effect from timestamp on)
        self.observations: list[tuple[int, int, int]] = []

    @property
    def current_tick(self) -> int | None:
        return self.observations[-1][2] if self.observations else None

    def record(self, tick: int, timestamp: int | None = None) -> None:
        """Move the pool to `tick` at `timestamp` (default: now)."""
        if not MIN_TICK <= tick <= MAX_TICK:
            raise ConfigurationError(f"tick {tick} out of range")
        ts = int(self.clock()) if timestamp is None else int(timestamp)
        if not self.observations:
            self.observations.append((ts, 0, tick))
            return
        last_ts, last_cum, last_tick = self.observations[-1]
        if ts < last_ts:
            raise ConfigurationError(f"observation at {ts} is older than the last one ({last_ts})")
        cumulative = last_cum + last_tick * (ts - last_ts)
        if ts == last_ts:
            self.observations[-1] = (ts, cumulative, tick)
        else:
            self.observations.append((ts, cumulative, tick))

    def _cumulative_at(self, target: int) -> int:
        timestamps = [obs[0] for obs in self.observations]
        idx = bisect.bisect_right(timestamps, target) - 1
        if idx < 0:
            raise ExternalSourceFailure("OLD")
        ts, cumulative, tick = self.observations[idx]
        return cumulative + tick * (target - ts)

    def cumulative_ticks(self, offsets: Sequence[int]) -> list[int]:
        if not self.observations:
            raise ExternalSourceFailure("OLD")
        now = int(self.clock())
        out = []
        for ago in offsets:
            if ago < 0:
                raise ConfigurationError("seconds-ago offsets must be >= 0")
            out.append(self._cumulative_at(now - int(ago)))
        return out

    def instantaneous_state(self) -> tuple[int, int]:
        tick = self.current_tick
        if tick is None:
            raise ExternalSourceFailure("pool has no price yet")
        return get_sqrt_ratio_at_tick(tick), tick

    def token_order(self) -> tuple[str, str]:
        return self.token0, self.token1


class ManualClock:
    """Clock that only moves when told to. Callable, so it can stand in for `time.time`."""

    def __init__(self, now: int = 0) -> None:
        self.now = int(now)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot go backwards")
        self.now += int(seconds)
        return self.now
