"""Data models for pricing and milestone release."""

from dataclasses import dataclass
from enum import IntEnum


class AggregationMethod(IntEnum):
    """How surviving source prices are combined. Values match the deployed contract enum."""

    MEAN = 0
    MEDIAN = 1
    WEIGHTED = 2


@dataclass(frozen=True)
class PricePoint:
    """A price derived from pool state. Recomputed on every read, never persisted."""

    raw_tick: int
    sqrt_ratio: int
    # usd_price * 1e6
    scaled_price: int


@dataclass(frozen=True)
class PriceReading:
    """Outcome of a single `get_price()` call: either a price or the error text."""

    source: str
    price: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.price > 0


@dataclass
class OracleSource:
    """A price source registered with an aggregate oracle."""

    identity: str
    source: object
    # 0 means "unset" and counts as weight 1 in weighted aggregation.
    weight: int = 0
    last_call_failed: bool = False


@dataclass(frozen=True)
class AggregationResult:
    """Result of one aggregation round, kept for diagnostics."""

    price: int
    method: AggregationMethod
    valid_sources: int
    filtered_outliers: int
    readings: tuple[PriceReading, ...] = ()


@dataclass
class Milestone:
    """Per-milestone progress. `unlocked` is terminal."""

    id: int
    price_target: int
    good_periods: int = 0
    last_good_timestamp: int = 0
    unlocked: bool = False


@dataclass
class VaultState:
    """Scalar state of a milestone vault."""

    total_deposited: int = 0
    per_milestone_amount: int = 0
    last_unlock_time: int = 0
    last_unlock_price: int = 0
    oracle_reference: str | None = None
    oracle_frozen: bool = False
    initialized: bool = False


@dataclass(frozen=True)
class Recipients:
    """The four fixed release recipients."""

    treasury: str
    growth: str
    liquidity: str
    team: str


@dataclass(frozen=True)
class DistributionShare:
    """One recipient's part of a milestone release. Computed per distribution event."""

    role: str
    recipient: str
    ratio_numerator: int
    computed_amount: int


@dataclass(frozen=True)
class MilestoneStatus:
    """Read-only milestone view for keepers and dashboards."""

    id: int
    unlocked: bool
    good_periods: int
    price_target: int
    current_price: int


@dataclass(frozen=True)
class VaultInfo:
    """Read-only vault aggregate view."""

    token: str
    balance: int
    deposited: int
    per_milestone_amount: int
    count_unlocked: int
    initialized: bool


@dataclass(frozen=True)
class UnlockCheck:
    """Answer of `can_finalize`: whether a milestone may finalize now, and why not."""

    can_unlock: bool
    reason: str


@dataclass(frozen=True)
class ProgressOutcome:
    """What a soft `try_progress` call did."""

    milestone_id: int
    recorded: bool
    unlocked: bool
    reason: str
    price: int = 0
