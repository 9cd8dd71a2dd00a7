"""CLI and main logic."""

import argparse
import os
import sys
from dataclasses import asdict

from tqdm import tqdm

from fairnomics.aggregator import AggregateOracle
from fairnomics.console import print_aggregation, print_milestone_table, print_price_point, print_vault_status
from fairnomics.constants import (
    BASESCAN_BASE,
    DEFAULT_PUBLIC_BASE_RPC_URLS,
    DEFAULT_TWAP_WINDOW,
    OBSERVATION_PROBE_WINDOWS,
    PERIOD_INTERVAL_SECONDS,
    REQUIRED_GOOD_PERIODS,
    TEST_WALLETS,
    TGE_TIMESTAMP,
    WAIT_RULE_SECONDS,
)
from fairnomics.errors import FairnomicsError
from fairnomics.formatters import format_price, format_tokens
from fairnomics.keeper import make_logger, run_keeper_cycle
from fairnomics.ledger import InMemoryLedger
from fairnomics.models import AggregationMethod, Recipients
from fairnomics.simulation import build_simulation, price_path, run_step, tick_for_price
from fairnomics.store import load_vault, save_vault
from fairnomics.twap import average_tick
from fairnomics.vault import MilestoneVault

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30


def env_int(name: str, default: int) -> int:
    """Integer from the environment, or `default` when unset/empty."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as ex:
        raise SystemExit(f"Error: {name} must be an integer, got {raw!r}") from ex


def recipients_from_env() -> Recipients:
    """Recipients from *_WALLET env vars; unset roles fall back to the local test wallets."""
    values = {}
    for role, placeholder in TEST_WALLETS.items():
        value = os.getenv(f"{role.upper()}_WALLET")
        if not value:
            print(f"ℹ️  {role.upper()}_WALLET not set, using test wallet {placeholder}", file=sys.stderr)
            value = placeholder
        values[role] = value
    return Recipients(**values)


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Price-gated milestone vault: TWAP pricing, keeper and diagnostics.")
    p.add_argument(
        "--rpc-url",
        default=None,
        help="Base RPC URL. Falls back to BASE_RPC_URL, then to a public endpoint.",
    )
    p.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable caching of token decimals and pool token order.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    ms = sub.add_parser("milestones", help="Print the milestone price targets.")
    ms.add_argument("--price", type=int, default=None, help="Mark targets against this price (1e6 units).")

    def add_pool_args(sp: argparse.ArgumentParser, *, required: bool) -> None:
        sp.add_argument("--pool", required=required, default=None, help="Pool address.")
        sp.add_argument("--asset", required=required, default=None, help="Address of the token being priced.")
        sp.add_argument("--window", type=int, default=DEFAULT_TWAP_WINDOW, help="TWAP window in seconds.")

    def add_oracle_arg(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--oracle", default=None, help="Deployed oracle contract (getPrice) to use instead of --pool.")

    pr = sub.add_parser("price", help="Read TWAP and spot price from a live pool.")
    add_pool_args(pr, required=True)

    ob = sub.add_parser("observations", help="Probe how far back a pool's observation history reaches.")
    add_pool_args(ob, required=True)

    init = sub.add_parser("init-state", help="Create a vault state file (timing from VAULT_* env vars).")
    init.add_argument("state", help="Path of the JSON state file to create.")
    init.add_argument("--token", required=True, help="Token held by the vault.")
    init.add_argument("--owner", required=True, help="Owner address (funds the vault).")
    init.add_argument("--amount", type=int, required=True, help="Amount to lock, in base units.")
    init.add_argument("--address", default="fairnomics-vault", help="Vault identity in the ledger.")
    init.add_argument("--start-time", type=int, default=TGE_TIMESTAMP, help="Start of the first cooldown.")
    init.add_argument("--freeze", action="store_true", help="Freeze the price source right away.")
    add_pool_args(init, required=False)
    add_oracle_arg(init)

    st = sub.add_parser("status", help="Print a vault state file, priced from a live pool if given.")
    st.add_argument("state", help="Path of the JSON state file.")
    add_pool_args(st, required=False)
    add_oracle_arg(st)

    kp = sub.add_parser("keeper", help="Run one keeper cycle against a live pool and save the state.")
    kp.add_argument("state", help="Path of the JSON state file.")
    add_pool_args(kp, required=False)
    add_oracle_arg(kp)

    ag = sub.add_parser("aggregate", help="Aggregate several deployed oracles (and optionally a pool TWAP).")
    ag.add_argument("--source", action="append", default=[], help="Oracle contract address (repeatable).")
    add_pool_args(ag, required=False)
    ag.add_argument(
        "--method",
        choices=[m.name.lower() for m in AggregationMethod],
        default="median",
        help="How surviving prices are combined.",
    )
    ag.add_argument("--min-sources", type=int, default=1, help="Minimum number of usable sources.")
    ag.add_argument(
        "--max-deviation-bps", type=int, default=0, help="Outlier threshold around the median (0 disables)."
    )

    sim = sub.add_parser("simulate", help="Offline run of a rising price through pool, oracle, vault and keeper.")
    sim.add_argument("--steps", type=int, default=2000, help="Number of keeper cycles.")
    sim.add_argument("--step-seconds", type=int, default=3600, help="Simulated seconds between cycles.")
    sim.add_argument("--start-price", type=int, default=8, help="Start price, 1e6 units.")
    sim.add_argument("--end-price", type=int, default=12000, help="End price, 1e6 units.")
    sim.add_argument("--wait-rule", type=int, default=24 * 60 * 60, help="Seconds between unlocks.")
    sim.add_argument("--good-periods", type=int, default=24, help="Good periods required per milestone.")
    sim.add_argument("--window", type=int, default=DEFAULT_TWAP_WINDOW, help="TWAP window in seconds.")
    sim.add_argument("-v", "--verbose", action="store_true", help="Print keeper log lines.")
    return p.parse_args(argv)


def connect(args: argparse.Namespace):
    """Web3 connection, or None (with a message on stderr) when the RPC is unreachable."""
    try:
        from web3 import Web3
    except ImportError as ex:  # pragma: no cover
        print("Missing dependency. Run: uv sync", file=sys.stderr)
        raise SystemExit(2) from ex

    rpc_url = args.rpc_url or os.getenv("BASE_RPC_URL")
    if not rpc_url:
        rpc_url = DEFAULT_PUBLIC_BASE_RPC_URLS[0]
        print(f"ℹ️  No --rpc-url or BASE_RPC_URL set, using public RPC {rpc_url}", file=sys.stderr)

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": DEFAULT_TIMEOUT}))
    if not w3.is_connected():
        print(f"Error: failed to connect to RPC at {rpc_url}", file=sys.stderr)
        return None
    return w3


def live_oracle(args: argparse.Namespace):
    """TWAP oracle over --pool/--asset, or None when no pool was given. Exits if the RPC is down."""
    if not args.pool:
        return None
    if not args.asset:
        raise SystemExit("Error: --asset is required together with --pool")
    from fairnomics.onchain import build_twap_oracle

    w3 = connect(args)
    if w3 is None:
        raise SystemExit(2)
    return build_twap_oracle(w3, args.pool, args.asset, window=args.window, use_cache=not args.no_cache)


def live_price_source(args: argparse.Namespace):
    """Price source for a vault: --oracle contract if given, else the --pool TWAP, else None."""
    if not args.oracle:
        return live_oracle(args)
    if args.pool:
        raise SystemExit("Error: use either --oracle or --pool, not both")
    from fairnomics.onchain import ContractPriceSource

    w3 = connect(args)
    if w3 is None:
        raise SystemExit(2)
    return ContractPriceSource(w3, args.oracle)


def cmd_milestones(args: argparse.Namespace) -> int:
    print_milestone_table(args.price)
    return 0


def cmd_price(args: argparse.Namespace) -> int:
    from fairnomics.onchain import fetch_token_symbol

    oracle = live_oracle(args)
    w3 = oracle.pool.w3
    print(f"🔗 Pool: {BASESCAN_BASE}/address/{oracle.pool.address}")
    print(f"   Pair: {fetch_token_symbol(w3, oracle.asset)}/{fetch_token_symbol(w3, oracle.quote)}")
    print(f"   Asset is token{'0' if oracle.asset_is_token0 else '1'}, scale factor {oracle.scale_factor}")
    print_price_point(f"TWAP ({oracle.window}s)", oracle.get_price_point())
    try:
        print(f"   Spot: {format_price(oracle.get_spot_price())}")
    except FairnomicsError as ex:
        print(f"⚠️  Spot price unavailable: {ex}", file=sys.stderr)
    return 0


def cmd_observations(args: argparse.Namespace) -> int:
    oracle = live_oracle(args)
    pool = oracle.pool
    windows = sorted(set(OBSERVATION_PROBE_WINDOWS) | {oracle.window})
    deepest = 0
    with tqdm(windows, desc="🔍 Probing observation windows", unit="window", file=sys.stderr) as pbar:
        for window in pbar:
            pbar.set_postfix(window=window)
            try:
                ago, now = pool.cumulative_ticks([window, 0])
            except Exception as ex:  # pylint: disable=broad-exception-caught
                tqdm.write(f"   ❌ {window:>5}s: {ex}", file=sys.stderr)
                continue
            tick = average_tick(ago, now, window)
            point = oracle.price_at_tick(tick)
            tqdm.write(f"   ✅ {window:>5}s: avg tick {tick}, price {format_price(point.scaled_price)}", file=sys.stderr)
            deepest = max(deepest, window)

    if deepest >= oracle.window:
        print(f"✅ History covers the {oracle.window}s TWAP window.")
        return 0
    print(f"⚠️  History covers only {deepest}s; TWAP reads will fall back to spot.")
    return 1


def cmd_init_state(args: argparse.Namespace) -> int:
    ledger = InMemoryLedger(balances={args.owner: args.amount})
    vault = MilestoneVault(
        args.token,
        args.owner,
        recipients_from_env(),
        ledger,
        address=args.address,
        start_time=args.start_time,
        wait_rule=env_int("VAULT_WAIT_RULE", WAIT_RULE_SECONDS),
        required_periods=env_int("VAULT_GOOD_PERIODS", REQUIRED_GOOD_PERIODS),
        period_interval=env_int("VAULT_PERIOD_INTERVAL", PERIOD_INTERVAL_SECONDS),
    )
    source = live_price_source(args)
    if source is not None:
        if args.freeze:
            vault.set_price_source_and_freeze(source, caller=args.owner)
        else:
            vault.set_price_source(source, caller=args.owner)
    vault.deposit_and_initialize(args.amount, caller=args.owner)
    save_vault(vault, args.state)
    print(f"✅ Vault state written to {args.state}", file=sys.stderr)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    vault = load_vault(args.state, price_source=live_price_source(args))
    print_vault_status(vault)
    return 0


def cmd_keeper(args: argparse.Namespace) -> int:
    vault = load_vault(args.state, price_source=live_price_source(args))
    log = make_logger(vault.clock)
    log("=" * 50)
    log(f"Keeper cycle for {vault.address}")
    log("=" * 50)
    run_keeper_cycle(vault, log=log)
    save_vault(vault, args.state)
    log("Keeper cycle complete.")
    return 0


def cmd_aggregate(args: argparse.Namespace) -> int:
    if not args.source and not args.pool:
        raise SystemExit("Error: give at least one --source or a --pool/--asset pair")
    from fairnomics.onchain import ContractPriceSource

    sources = []
    twap = live_oracle(args)
    if twap is not None:
        sources.append(twap)
    if args.source:
        w3 = connect(args)
        if w3 is None:
            raise SystemExit(2)
        sources.extend(ContractPriceSource(w3, address) for address in args.source)

    aggregate = AggregateOracle(
        sources,
        method=AggregationMethod[args.method.upper()],
        min_sources=args.min_sources,
        max_deviation_bps=args.max_deviation_bps,
    )
    result = aggregate.aggregate()
    print_aggregation(result)
    return 0 if result.price > 0 else 1


def cmd_simulate(args: argparse.Namespace) -> int:
    sim = build_simulation(
        wait_rule=args.wait_rule,
        required_periods=args.good_periods,
        period_interval=args.step_seconds,
        window=args.window,
        start_price=args.start_price,
    )
    scale = sim.oracle.scale_factor
    ticks = price_path(tick_for_price(args.start_price, scale), tick_for_price(args.end_price, scale), args.steps)

    def write(line: str) -> None:
        if args.verbose:
            tqdm.write(line, file=sys.stderr)

    log = make_logger(sim.clock, write)
    with tqdm(ticks, desc="📈 Simulating keeper cycles", unit="cycle", file=sys.stderr) as pbar:
        for tick in pbar:
            outcome = run_step(sim, tick, args.step_seconds, log=log)
            if outcome is not None and outcome.unlocked:
                tqdm.write(
                    f"🔓 Milestone {outcome.milestone_id} unlocked at {format_price(outcome.price)}", file=sys.stderr
                )
            pbar.set_postfix(unlocked=sim.vault.count_unlocked, price=format_price(sim.vault.current_price()))

    print_vault_status(sim.vault)
    print("\n💸 Recipient balances:")
    for role, address in asdict(sim.vault.recipients).items():
        print(f"   • {role:<10} {format_tokens(sim.ledger.balance_of(address), symbol='FAIR')}")
    return 0


COMMANDS = {
    "milestones": cmd_milestones,
    "price": cmd_price,
    "observations": cmd_observations,
    "init-state": cmd_init_state,
    "status": cmd_status,
    "keeper": cmd_keeper,
    "aggregate": cmd_aggregate,
    "simulate": cmd_simulate,
}


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    try:
        return COMMANDS[args.command](args)
    except FairnomicsError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
