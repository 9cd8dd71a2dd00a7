"""Offline end-to-end run: simulated pool -> TWAP oracle -> vault -> keeper."""

from collections.abc import Callable
from dataclasses import dataclass, field
from math import isqrt

from fairnomics.constants import (
    DEFAULT_TWAP_WINDOW,
    MAX_SQRT_RATIO,
    MIN_SQRT_RATIO,
    Q192,
    TEST_WALLETS,
    TGE_TIMESTAMP,
)
from fairnomics.keeper import run_keeper_cycle
from fairnomics.ledger import InMemoryLedger
from fairnomics.models import ProgressOutcome, Recipients
from fairnomics.oracle import TwapOracle
from fairnomics.pools import ManualClock, ObservationPool
from fairnomics.price import price_scale_factor
from fairnomics.tick_math import get_tick_at_sqrt_ratio
from fairnomics.vault import MilestoneVault

SIM_ASSET = "0x00000000000000000000000000000000000000a1"  # 18 decimals, token0
SIM_QUOTE = "0x00000000000000000000000000000000000000b2"  # 6 decimals (USDC-like)
SIM_OWNER = "0x00000000000000000000000000000000000000c3"
SIM_VAULT = "0x00000000000000000000000000000000000000d4"
SIM_ALLOCATION = 18_000_000 * 10**18


def tick_for_price(price: int, scale_factor: int) -> int:
    """A tick (at most one above the exact crossing) whose token0 price is at least `price`."""
    if price <= 0:
        raise ValueError("price must be > 0")
    sqrt_ratio = isqrt(price * Q192 // scale_factor) + 1
    sqrt_ratio = min(max(sqrt_ratio, MIN_SQRT_RATIO), MAX_SQRT_RATIO - 1)
    return get_tick_at_sqrt_ratio(sqrt_ratio) + 1


@dataclass
class Simulation:
    clock: ManualClock
    pool: ObservationPool
    oracle: TwapOracle
    ledger: InMemoryLedger
    vault: MilestoneVault
    outcomes: list[ProgressOutcome] = field(default_factory=list)


def build_simulation(
    *,
    start_time: int = TGE_TIMESTAMP,
    wait_rule: int = 24 * 60 * 60,
    required_periods: int = 24,
    period_interval: int = 60 * 60,
    window: int = DEFAULT_TWAP_WINDOW,
    start_price: int = 8,
    recipients: Recipients | None = None,
) -> Simulation:
    """A funded, initialized vault wired to a frozen TWAP oracle over a fresh simulated pool."""
    clock = ManualClock(start_time)
    pool = ObservationPool(SIM_ASSET, SIM_QUOTE, clock=clock)
    oracle = TwapOracle(
        pool, SIM_ASSET, SIM_QUOTE, scale_factor=price_scale_factor(18, 6), window=window, identity="twap:simulated"
    )
    # history reaching back one full window, so the first TWAP read succeeds
    pool.record(tick_for_price(start_price, oracle.scale_factor), timestamp=start_time - window)

    ledger = InMemoryLedger("FAIR", {SIM_OWNER: SIM_ALLOCATION})
    vault = MilestoneVault(
        SIM_ASSET,
        SIM_OWNER,
        recipients or Recipients(**TEST_WALLETS),
        ledger,
        address=SIM_VAULT,
        start_time=start_time,
        wait_rule=wait_rule,
        required_periods=required_periods,
        period_interval=period_interval,
        clock=clock,
    )
    vault.set_price_source_and_freeze(oracle, caller=SIM_OWNER)
    vault.deposit_and_initialize(SIM_ALLOCATION, caller=SIM_OWNER)
    return Simulation(clock=clock, pool=pool, oracle=oracle, ledger=ledger, vault=vault)


def price_path(start_tick: int, end_tick: int, steps: int) -> list[int]:
    """`steps` ticks moving linearly from start_tick to end_tick."""
    if steps < 1:
        raise ValueError("steps must be >= 1")
    if steps == 1:
        return [end_tick]
    return [start_tick + (end_tick - start_tick) * i // (steps - 1) for i in range(steps)]


def run_step(sim: Simulation, tick: int, step_seconds: int, *, log: Callable[[str], None]) -> ProgressOutcome | None:
    """Advance time, move the pool, run one keeper cycle."""
    sim.clock.advance(step_seconds)
    sim.pool.record(tick)
    outcome = run_keeper_cycle(sim.vault, log=log)
    if outcome is not None:
        sim.outcomes.append(outcome)
    return outcome
