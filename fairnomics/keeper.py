"""One keeper cycle: look at the next locked milestone and call `try_progress` when it can help."""

import sys
from collections.abc import Callable
from datetime import datetime, timezone

from fairnomics.formatters import format_price
from fairnomics.models import MilestoneStatus, ProgressOutcome, UnlockCheck
from fairnomics.vault import MilestoneVault

# can_finalize reasons meaning a progress call would fail outright.
BLOCKING_REASONS = ("oracle", "not initialized", "not set", "invalid milestone")
# Reasons meaning "not yet": a progress call still records a good period when price >= target.
WAITING_REASONS = ("good periods not reached", "cooldown not elapsed", "price below target")


def make_logger(
    clock: Callable[[], float], write: Callable[[str], None] | None = None
) -> Callable[[str], None]:
    """Logger writing `[ISO-8601 UTC] message` lines (stderr by default), stamped with `clock`."""

    def log(message: str) -> None:
        ts = datetime.fromtimestamp(int(clock()), tz=timezone.utc).isoformat(timespec="seconds")
        line = f"[{ts}] {message}"
        if write is not None:
            write(line)
        else:
            print(line, file=sys.stderr)

    return log


def should_call_progress(check: UnlockCheck, status: MilestoneStatus) -> tuple[bool, str]:
    """Decide whether to call try_progress; returns (call, explanation)."""
    if check.can_unlock:
        return True, "all conditions met"
    reason = check.reason.lower()
    price_ok = 0 < status.current_price and status.price_target <= status.current_price
    if any(r in reason for r in BLOCKING_REASONS):
        return False, f"cannot proceed: {check.reason}"
    if any(r in reason for r in WAITING_REASONS):
        if price_ok:
            return True, f"cannot unlock yet ({check.reason}), price is above target, recording a good period"
        return False, f"cannot unlock yet ({check.reason}), price below target"
    if price_ok:
        return True, f"unknown reason ({check.reason}), price is above target, trying anyway"
    return False, f"unknown reason ({check.reason}), skipping"


def run_keeper_cycle(vault: MilestoneVault, *, log: Callable[[str], None] | None = None) -> ProgressOutcome | None:
    """
    Run one cycle against `vault`. Returns the try_progress outcome, or None when the cycle
    skipped the call (everything unlocked, vault not ready, or nothing to gain this round).
    """
    log = log or make_logger(vault.clock)

    milestone_id = vault.next_locked_milestone()
    if milestone_id is None:
        log("🎉 All milestones unlocked! Nothing left to do.")
        return None
    log(f"Current milestone: {milestone_id}")

    if not vault.state.initialized:
        log("  ⚠️  Vault not initialized yet. Waiting for deposit...")
        return None
    if vault.price_source is None:
        log("  ⚠️  Oracle not set yet. Waiting for deployment...")
        return None

    status = vault.milestone_status(milestone_id)
    log(f"  Good periods: {status.good_periods}/{vault.required_periods}")
    log(f"  Price target: {format_price(status.price_target)}")
    log(f"  Current price: {format_price(status.current_price)}")

    check = vault.can_finalize(milestone_id)
    log(f"  Can unlock: {check.can_unlock} ({check.reason})")

    call, why = should_call_progress(check, status)
    if not call:
        log(f"  ℹ️  Skipping try_progress: {why}")
        return None
    log(f"  Calling try_progress({milestone_id}): {why}")

    outcome = vault.try_progress(milestone_id)
    if outcome.unlocked:
        log(f"✅ MILESTONE {milestone_id} UNLOCKED at {format_price(outcome.price)}")
    elif outcome.recorded:
        after = vault.milestone(milestone_id).good_periods
        log(f"  ✅ Good period recorded: {status.good_periods} → {after}")
    else:
        log(f"  Good periods unchanged: {outcome.reason}")
    return outcome
