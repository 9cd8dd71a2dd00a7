"""Aggregate oracle: combines several price sources with outlier rejection."""

import sys
from collections.abc import Iterable, Sequence

from fairnomics.constants import TOTAL_BASIS_POINTS
from fairnomics.errors import ConfigurationError
from fairnomics.models import AggregationMethod, AggregationResult, OracleSource, PriceReading
from fairnomics.sources import query_price, source_identity

# Returned by get_price() when too few sources produced a usable price.
INSUFFICIENT_SOURCES = 0


def median(values: Sequence[int]) -> int:
    """Median of integers; for an even count, the floored mean of the two middle values."""
    if not values:
        raise ValueError("median of an empty sequence")
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) // 2


def mean(values: Sequence[int]) -> int:
    """Floored arithmetic mean."""
    if not values:
        raise ValueError("mean of an empty sequence")
    return sum(values) // len(values)


def deviation_bps(value: int, reference: int) -> int:
    """Absolute deviation of `value` from `reference`, in basis points (floored)."""
    if reference <= 0:
        raise ZeroDivisionError("reference must be > 0")
    return abs(value - reference) * TOTAL_BASIS_POINTS // reference


def filter_outliers(entries: Sequence[tuple[int, int]], max_deviation_bps: int) -> list[tuple[int, int]]:
    """Keep (price, weight) entries within `max_deviation_bps` of the median price."""
    mid = median([price for price, _ in entries])
    return [(price, weight) for price, weight in entries if deviation_bps(price, mid) <= max_deviation_bps]


class AggregateOracle:
    """
    Queries N price sources and combines the usable answers.

    A failing or non-positive source contributes nothing. Below `min_sources` usable answers the
    result is INSUFFICIENT_SOURCES (0), never an average of fewer sources. Configuration may change
    only until `freeze()`; afterwards the oracle is an immutable price function.
    """

    def __init__(
        self,
        sources: Iterable[object] = (),
        *,
        method: AggregationMethod = AggregationMethod.MEAN,
        min_sources: int = 1,
        max_deviation_bps: int = 0,
        owner: str | None = None,
        identity: str | None = None,
    ) -> None:
        self.owner = owner
        self.frozen = False
        self.sources: list[OracleSource] = []
        self.method = AggregationMethod(method)
        self.min_sources = 1
        self.max_deviation_bps = 0
        for source in sources:
            self._add(source, weight=0)
        self._set_min_sources(min_sources)
        self._set_max_deviation_bps(max_deviation_bps)
        self.identity = identity or "aggregate:" + ",".join(s.identity for s in self.sources)

    # ------------------------------------------------------------------ admin

    def _require_admin(self, caller: str | None) -> None:
        if self.frozen:
            raise ConfigurationError("Aggregate oracle is frozen")
        if self.owner is not None and caller != self.owner:
            raise ConfigurationError("caller is not the oracle owner")

    def _add(self, source: object, *, weight: int) -> None:
        if source is None:
            raise ConfigurationError("price source must be set")
        if weight < 0:
            raise ConfigurationError("weight must be >= 0")
        identity = source_identity(source)
        if any(s.identity == identity for s in self.sources):
            raise ConfigurationError(f"price source {identity} already registered")
        self.sources.append(OracleSource(identity=identity, source=source, weight=weight))

    def _set_min_sources(self, min_sources: int) -> None:
        if min_sources < 1:
            raise ConfigurationError("min_sources must be >= 1")
        if self.sources and min_sources > len(self.sources):
            raise ConfigurationError(f"min_sources {min_sources} exceeds configured sources ({len(self.sources)})")
        self.min_sources = min_sources

    def _set_max_deviation_bps(self, max_deviation_bps: int) -> None:
        if max_deviation_bps < 0:
            raise ConfigurationError("max_deviation_bps must be >= 0 (0 disables outlier filtering)")
        self.max_deviation_bps = max_deviation_bps

    def _find(self, identity: str) -> OracleSource:
        for entry in self.sources:
            if entry.identity == identity:
                return entry
        raise ConfigurationError(f"unknown price source {identity}")

    def add_source(self, source: object, *, weight: int = 0, caller: str | None = None) -> None:
        self._require_admin(caller)
        self._add(source, weight=weight)

    def remove_source(self, identity: str, *, caller: str | None = None) -> None:
        self._require_admin(caller)
        entry = self._find(identity)
        if len(self.sources) - 1 < self.min_sources:
            raise ConfigurationError("removing this source would leave fewer sources than min_sources")
        self.sources.remove(entry)

    def set_weight(self, identity: str, weight: int, *, caller: str | None = None) -> None:
        self._require_admin(caller)
        if weight < 0:
            raise ConfigurationError("weight must be >= 0")
        self._find(identity).weight = weight

    def set_method(self, method: AggregationMethod, *, caller: str | None = None) -> None:
        self._require_admin(caller)
        self.method = AggregationMethod(method)

    def set_min_sources(self, min_sources: int, *, caller: str | None = None) -> None:
        self._require_admin(caller)
        self._set_min_sources(min_sources)

    def set_max_deviation_bps(self, max_deviation_bps: int, *, caller: str | None = None) -> None:
        self._require_admin(caller)
        self._set_max_deviation_bps(max_deviation_bps)

    def freeze(self, *, caller: str | None = None) -> None:
        """Make the configuration permanently immutable."""
        self._require_admin(caller)
        if not self.sources:
            raise ConfigurationError("cannot freeze an aggregate oracle without sources")
        self.frozen = True

    # ------------------------------------------------------------------ pricing

    def _combine(self, entries: list[tuple[int, int]]) -> int:
        prices = [price for price, _ in entries]
        if self.method == AggregationMethod.MEDIAN:
            return median(prices)
        if self.method == AggregationMethod.WEIGHTED:
            total_weight = sum(weight for _, weight in entries)
            # More survivors than configured sources means the bookkeeping is off; don't trust weights.
            if total_weight == 0 or len(entries) > len(self.sources):
                return mean(prices)
            return sum(price * weight for price, weight in entries) // total_weight
        return mean(prices)

    def aggregate(self) -> AggregationResult:
        """Query every source once and combine; returns the full round for diagnostics."""
        readings: list[PriceReading] = []
        valid: list[tuple[int, int]] = []
        for entry in self.sources:
            reading = query_price(entry.source)
            readings.append(reading)
            entry.last_call_failed = not reading.ok
            if not reading.ok:
                print(f"⚠️  Price source {entry.identity} skipped: {reading.error}", file=sys.stderr)
                continue
            valid.append((reading.price, entry.weight or 1))

        def result(price: int, kept: int, filtered: int) -> AggregationResult:
            return AggregationResult(
                price=price,
                method=self.method,
                valid_sources=kept,
                filtered_outliers=filtered,
                readings=tuple(readings),
            )

        if len(valid) < self.min_sources:
            return result(INSUFFICIENT_SOURCES, len(valid), 0)

        filtered = 0
        if self.max_deviation_bps > 0 and len(valid) > 2:
            kept = filter_outliers(valid, self.max_deviation_bps)
            filtered = len(valid) - len(kept)
            valid = kept
            if len(valid) < self.min_sources:
                return result(INSUFFICIENT_SOURCES, len(valid), filtered)

        return result(self._combine(valid), len(valid), filtered)

    def get_price(self) -> int:
        """Aggregated price in 1e6 units, or INSUFFICIENT_SOURCES (0)."""
        return self.aggregate().price
