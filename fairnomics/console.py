"""Console output formatting."""

from fairnomics.constants import RATIO_DENOMINATOR
from fairnomics.distribution import DEFAULT_RATIOS
from fairnomics.formatters import (
    format_duration,
    format_price,
    format_ratio,
    format_timestamp,
    format_tokens,
    short_address,
    target_indicator,
)
from fairnomics.models import AggregationResult, MilestoneStatus, PricePoint
from fairnomics.vault import MilestoneVault, milestone_targets


def print_milestone_table(current_price: int | None = None) -> None:
    """Target schedule, optionally marked against a current price."""
    print("=" * 50)
    print("🎯 MILESTONE PRICE TARGETS")
    print("=" * 50)
    for i, target in enumerate(milestone_targets(), start=1):
        marker = f" {target_indicator(current_price, target)}" if current_price is not None else ""
        print(f"   #{i:<3} {format_price(target):>12}   ({target} in 1e6 units){marker}")
    print("")
    print("   Distribution per unlock:")
    for role, numerator in DEFAULT_RATIOS:
        print(f"      • {role:<10} {format_ratio(numerator, RATIO_DENOMINATOR):>7}")


def print_price_point(label: str, point: PricePoint) -> None:
    print(f"   {label}: {format_price(point.scaled_price)}  (tick {point.raw_tick}, sqrtPriceX96 {point.sqrt_ratio})")


def print_aggregation(result: AggregationResult) -> None:
    print(f"📊 Aggregated price ({result.method.name.lower()}): {format_price(result.price)}")
    print(f"   Valid sources: {result.valid_sources}  •  Filtered outliers: {result.filtered_outliers}")
    for reading in result.readings:
        if reading.ok:
            print(f"      ✅ {reading.source}: {format_price(reading.price)}")
        else:
            print(f"      ❌ {reading.source}: {reading.error}")


def _print_milestone_line(status: MilestoneStatus, required_periods: int) -> None:
    if status.unlocked:
        state = "🔓 unlocked"
    else:
        state = f"🔒 {status.good_periods}/{required_periods} periods"
    indicator = target_indicator(status.current_price, status.price_target)
    print(f"   #{status.id:<3} {format_price(status.price_target):>12}  {indicator}  {state}")


def print_vault_status(vault: MilestoneVault, *, symbol: str = "FAIR", decimals: int = 18) -> None:
    """Full status report of a vault: scalars, oracle wiring and the milestone table."""
    info = vault.vault_info()
    statuses = vault.milestone_statuses()
    price = statuses[0].current_price if statuses else 0

    print("=" * 70)
    print("🏦 MILESTONE VAULT STATUS")
    print(f"   🕐 {format_timestamp(vault.now())}  •  vault={short_address(vault.address)}")
    print("=" * 70)
    print(f"   Token: {info.token}")
    print(f"   Initialized: {'yes' if info.initialized else 'no'}")
    print(f"   Deposited: {format_tokens(info.deposited, decimals=decimals, symbol=symbol)}")
    print(f"   Per milestone: {format_tokens(info.per_milestone_amount, decimals=decimals, symbol=symbol)}")
    print(f"   Balance: {format_tokens(info.balance, decimals=decimals, symbol=symbol)}")
    print(f"   Unlocked: {info.count_unlocked}/{len(vault.milestones)}")

    ref = vault.state.oracle_reference or "not set"
    frozen = " (frozen)" if vault.state.oracle_frozen else ""
    print(f"   Oracle: {ref}{frozen}")
    print(f"   Current price: {format_price(price) if price > 0 else 'n/a'}")

    print(f"   Last unlock: {format_timestamp(vault.state.last_unlock_time)}")
    cooldown_left = vault.state.last_unlock_time + vault.wait_rule - vault.now()
    if cooldown_left > 0:
        print(f"   ⏳ Cooldown remaining: {format_duration(cooldown_left)}")
    else:
        print("   ✅ Cooldown elapsed")
    print(
        f"   Timing: wait {format_duration(vault.wait_rule)}, "
        f"{vault.required_periods} good periods of {format_duration(vault.period_interval)}"
    )

    print("")
    for status in statuses:
        _print_milestone_line(status, vault.required_periods)

    next_id = vault.next_locked_milestone()
    if next_id is not None:
        check = vault.can_finalize(next_id)
        mark = "✅" if check.can_unlock else "ℹ️ "
        print(f"\n{mark} Milestone {next_id}: {check.reason}")
    else:
        print("\n🎉 All milestones unlocked")
