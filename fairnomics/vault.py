"""
Milestone vault: price-gated, time-gated release of a pre-allocated balance.

Every operation runs to completion synchronously. External capabilities (price source, ledger)
may call back into the vault, so each mutating operation follows one ordering rule: make the
external read first, then check preconditions against the state as it is *after* that call, then
write. The only external call made after a write is the distribution itself, and a failure there
restores the fields written just before it.
"""

import sys
import time
from collections.abc import Callable

from fairnomics.constants import (
    PERIOD_INTERVAL_SECONDS,
    PRICE_MULTIPLIER_DEN,
    PRICE_MULTIPLIER_NUM,
    REQUIRED_GOOD_PERIODS,
    START_PRICE,
    TGE_TIMESTAMP,
    TOTAL_MILESTONES,
    WAIT_RULE_SECONDS,
)
from fairnomics.distribution import distribute, is_zero_identity, validate_recipients
from fairnomics.errors import ConfigurationError, ExternalSourceFailure, PreconditionNotMet
from fairnomics.models import (
    DistributionShare,
    Milestone,
    MilestoneStatus,
    ProgressOutcome,
    Recipients,
    UnlockCheck,
    VaultInfo,
    VaultState,
)
from fairnomics.sources import Ledger, query_price, source_identity

# Reasons reported by can_finalize / PreconditionNotMet. Keepers match on these substrings.
REASON_INVALID_MILESTONE = "Invalid milestone"
REASON_ALREADY_UNLOCKED = "Already unlocked"
REASON_NOT_INITIALIZED = "Vault not initialized"
REASON_ORACLE_NOT_SET = "Oracle not set"
REASON_ORACLE_UNAVAILABLE = "Oracle price unavailable"
REASON_COOLDOWN = "Cooldown not elapsed"
REASON_PRICE_BELOW_TARGET = "Price below target"
REASON_GOOD_PERIODS = "Good periods not reached"
REASON_NOTHING_TO_RELEASE = "Vault balance empty"
REASON_READY = "Ready to unlock"


def milestone_targets(
    start_price: int = START_PRICE,
    count: int = TOTAL_MILESTONES,
    *,
    numerator: int = PRICE_MULTIPLIER_NUM,
    denominator: int = PRICE_MULTIPLIER_DEN,
) -> list[int]:
    """Price targets: target[1] = start_price, target[i] = floor(target[i-1] * num / den)."""
    if count < 1:
        raise ConfigurationError("milestone count must be >= 1")
    if denominator <= 0 or numerator <= denominator:
        raise ConfigurationError("price multiplier must be > 1")
    targets = [start_price]
    for _ in range(count - 1):
        targets.append(targets[-1] * numerator // denominator)
    if any(later <= earlier for earlier, later in zip(targets, targets[1:])):
        raise ConfigurationError(f"start price {start_price} does not give strictly increasing targets")
    return targets


def build_milestones(start_price: int = START_PRICE, count: int = TOTAL_MILESTONES) -> dict[int, Milestone]:
    return {
        i: Milestone(id=i, price_target=target)
        for i, target in enumerate(milestone_targets(start_price, count), start=1)
    }


class MilestoneVault:
    """
    Holds the locked balance and the 18 milestones.

    Entry points by caller:
      - keepers: `try_progress` (soft, never raises on unmet preconditions)
      - manual trigger: `finalize` (hard, raises PreconditionNotMet with a reason)
      - owner, once each: `set_price_source`, `freeze_price_source`, `initialize`,
        `deposit_and_initialize`
      - dashboards: `milestone_status`, `vault_info`, `can_finalize` (never raise on price failures)
    """

    def __init__(
        self,
        token: str,
        owner: str,
        recipients: Recipients,
        ledger: Ledger,
        *,
        address: str = "fairnomics-vault",
        start_time: int = TGE_TIMESTAMP,
        wait_rule: int = WAIT_RULE_SECONDS,
        required_periods: int = REQUIRED_GOOD_PERIODS,
        period_interval: int = PERIOD_INTERVAL_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        for name, value in (("token", token), ("owner", owner), ("vault address", address)):
            if is_zero_identity(value):
                raise ConfigurationError(f"{name} must be a non-zero address")
        validate_recipients(recipients)
        if wait_rule < 0:
            raise ConfigurationError("wait rule must be >= 0")
        if required_periods < 1:
            raise ConfigurationError("required good periods must be >= 1")
        if period_interval < 1:
            raise ConfigurationError("period interval must be >= 1 second")

        self.token = token
        self.owner = owner
        self.address = address
        self.recipients = recipients
        self.ledger = ledger
        self.wait_rule = int(wait_rule)
        self.required_periods = int(required_periods)
        self.period_interval = int(period_interval)
        self.clock = clock or time.time
        self.milestones = build_milestones()
        self.state = VaultState(last_unlock_time=int(start_time))
        self.price_source: object | None = None

    # ------------------------------------------------------------------ helpers

    def now(self) -> int:
        return int(self.clock())

    def milestone(self, milestone_id: int) -> Milestone:
        m = self.milestones.get(milestone_id)
        if m is None:
            raise ConfigurationError(f"{REASON_INVALID_MILESTONE}: {milestone_id}")
        return m

    @property
    def count_unlocked(self) -> int:
        return sum(1 for m in self.milestones.values() if m.unlocked)

    def next_locked_milestone(self) -> int | None:
        """Lowest milestone id that is still locked, or None once everything is released."""
        for milestone_id in sorted(self.milestones):
            if not self.milestones[milestone_id].unlocked:
                return milestone_id
        return None

    def _require_owner(self, caller: str | None) -> None:
        if caller is None or caller.lower() != self.owner.lower():
            raise ConfigurationError("caller is not the vault owner")

    def _require_ready(self) -> object:
        if not self.state.initialized:
            raise ConfigurationError(REASON_NOT_INITIALIZED)
        if self.price_source is None:
            raise ConfigurationError(REASON_ORACLE_NOT_SET)
        return self.price_source

    def _read_price(self) -> int:
        source = self._require_ready()
        try:
            return int(source.get_price())  # type: ignore[attr-defined]
        except ExternalSourceFailure:
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ExternalSourceFailure(f"price source {self.state.oracle_reference} failed: {ex}") from ex

    def _blocking_reason(self, m: Milestone, price: int, now: int) -> str | None:
        if m.unlocked:
            return REASON_ALREADY_UNLOCKED
        if now < self.state.last_unlock_time + self.wait_rule:
            return REASON_COOLDOWN
        if price < m.price_target:
            return REASON_PRICE_BELOW_TARGET
        if m.good_periods < self.required_periods:
            return REASON_GOOD_PERIODS
        return None

    # ------------------------------------------------------------------ admin

    def set_price_source(self, source: object, *, caller: str | None) -> None:
        """Wire the price source. Allowed once, and never after freezing."""
        self._require_owner(caller)
        if self.state.oracle_frozen:
            raise ConfigurationError("Oracle is frozen")
        if source is None:
            raise ConfigurationError("price source must be set")
        if self.state.oracle_reference is not None:
            raise ConfigurationError(f"Oracle already set to {self.state.oracle_reference}")
        identity = source_identity(source)
        if is_zero_identity(identity):
            raise ConfigurationError("price source identity must be non-zero")
        self.price_source = source
        self.state.oracle_reference = identity

    def freeze_price_source(self, *, caller: str | None) -> None:
        """Permanently lock the price source reference."""
        self._require_owner(caller)
        if self.state.oracle_frozen:
            raise ConfigurationError("Oracle is frozen")
        if self.state.oracle_reference is None:
            raise ConfigurationError(REASON_ORACLE_NOT_SET)
        self.state.oracle_frozen = True

    def set_price_source_and_freeze(self, source: object, *, caller: str | None) -> None:
        self.set_price_source(source, caller=caller)
        self.freeze_price_source(caller=caller)

    def reattach_price_source(self, source: object) -> None:
        """Bind a live source to a restored vault. The identity must match the recorded reference."""
        if self.state.oracle_reference is None:
            raise ConfigurationError(REASON_ORACLE_NOT_SET)
        identity = source_identity(source)
        if identity != self.state.oracle_reference:
            raise ConfigurationError(
                f"price source {identity} does not match recorded reference {self.state.oracle_reference}"
            )
        self.price_source = source

    def initialize(self, amount: int, *, caller: str | None) -> None:
        """Mark `amount` of the vault's existing balance as the locked allocation."""
        self._require_owner(caller)
        if self.state.initialized:
            raise ConfigurationError("Vault already initialized")
        if amount <= 0:
            raise ConfigurationError("amount must be > 0")
        balance = self.ledger.balance_of(self.address)
        if balance < amount:
            raise ConfigurationError(f"vault balance {balance} is below the amount to lock ({amount})")
        self._commit_initialize(amount)

    def deposit_and_initialize(self, amount: int, *, caller: str | None) -> None:
        """Pull `amount` from the owner into the vault and lock it."""
        self._require_owner(caller)
        if self.state.initialized:
            raise ConfigurationError("Vault already initialized")
        if amount <= 0:
            raise ConfigurationError("amount must be > 0")
        self._commit_initialize(amount)
        try:
            self.ledger.transfer(caller, self.address, amount)
        except Exception:
            self.state.initialized = False
            self.state.total_deposited = 0
            self.state.per_milestone_amount = 0
            raise

    def _commit_initialize(self, amount: int) -> None:
        self.state.total_deposited = amount
        self.state.per_milestone_amount = amount // len(self.milestones)
        self.state.initialized = True

    # ------------------------------------------------------------------ state machine

    def _record(self, m: Milestone, price: int, now: int) -> bool:
        if m.unlocked or price < m.price_target:
            return False
        if now - m.last_good_timestamp < self.period_interval:
            return False
        m.good_periods += 1
        m.last_good_timestamp = now
        return True

    def _unlock(self, m: Milestone, price: int, now: int) -> list[DistributionShare]:
        amount = min(self.state.per_milestone_amount, self.ledger.balance_of(self.address))
        # balance_of is external and may reenter; every precondition is re-checked on fresh state.
        reason = self._blocking_reason(m, price, now)
        if reason is not None:
            raise PreconditionNotMet(reason)
        if amount <= 0:
            raise PreconditionNotMet(REASON_NOTHING_TO_RELEASE)

        previous = (self.state.last_unlock_time, self.state.last_unlock_price)
        m.unlocked = True
        self.state.last_unlock_time = now
        self.state.last_unlock_price = price
        try:
            return distribute(self.ledger, self.address, amount, self.recipients)
        except Exception:
            m.unlocked = False
            self.state.last_unlock_time, self.state.last_unlock_price = previous
            raise

    def record_progress(self, milestone_id: int) -> bool:
        """
        Count one good period if the price is at/above target and a full interval has passed since
        the last one. Returns whether a period was recorded; unmet conditions are a silent no-op.
        """
        m = self.milestone(milestone_id)
        self._require_ready()
        try:
            price = self._read_price()
        except ExternalSourceFailure as ex:
            print(f"⚠️  Milestone {milestone_id}: progress not recorded, {ex}", file=sys.stderr)
            return False
        return self._record(m, price, self.now())

    def finalize(self, milestone_id: int) -> list[DistributionShare]:
        """
        Unlock a milestone and distribute its amount. Raises on any unmet precondition.

        Raises:
            ConfigurationError: invalid id, vault not initialized, no price source.
            PreconditionNotMet: already unlocked, cooldown, price below target, too few periods.
            ExternalSourceFailure: the price call or a transfer failed (state is left unchanged).
        """
        m = self.milestone(milestone_id)
        if m.unlocked:
            raise PreconditionNotMet(REASON_ALREADY_UNLOCKED)
        self._require_ready()
        price = self._read_price()
        now = self.now()
        reason = self._blocking_reason(m, price, now)
        if reason is not None:
            raise PreconditionNotMet(reason)
        return self._unlock(m, price, now)

    def try_progress(self, milestone_id: int) -> ProgressOutcome:
        """Record progress, then finalize if possible. Unmet preconditions never raise."""
        m = self.milestone(milestone_id)
        if m.unlocked:
            return ProgressOutcome(milestone_id=milestone_id, recorded=False, unlocked=False, reason=REASON_ALREADY_UNLOCKED)
        self._require_ready()
        try:
            price = self._read_price()
        except ExternalSourceFailure as ex:
            print(f"⚠️  Milestone {milestone_id}: no progress this round, {ex}", file=sys.stderr)
            return ProgressOutcome(
                milestone_id=milestone_id, recorded=False, unlocked=False, reason=f"{REASON_ORACLE_UNAVAILABLE}: {ex}"
            )

        now = self.now()
        recorded = self._record(m, price, now)
        reason = self._blocking_reason(m, price, now)
        if reason is None:
            try:
                self._unlock(m, price, now)
            except PreconditionNotMet as ex:
                reason = ex.reason
        return ProgressOutcome(
            milestone_id=milestone_id,
            recorded=recorded,
            unlocked=reason is None,
            reason=reason or "Unlocked",
            price=price,
        )

    # ------------------------------------------------------------------ views

    def current_price(self) -> int:
        """Best-effort price for views: 0 when no source is set or the source fails."""
        if self.price_source is None:
            return 0
        reading = query_price(self.price_source)
        return reading.price if reading.ok else 0

    def can_finalize(self, milestone_id: int) -> UnlockCheck:
        m = self.milestones.get(milestone_id)
        if m is None:
            return UnlockCheck(False, REASON_INVALID_MILESTONE)
        if m.unlocked:
            return UnlockCheck(False, REASON_ALREADY_UNLOCKED)
        if not self.state.initialized:
            return UnlockCheck(False, REASON_NOT_INITIALIZED)
        if self.price_source is None:
            return UnlockCheck(False, REASON_ORACLE_NOT_SET)
        price = self.current_price()
        if price <= 0:
            return UnlockCheck(False, REASON_ORACLE_UNAVAILABLE)
        reason = self._blocking_reason(m, price, self.now())
        if reason is not None:
            return UnlockCheck(False, reason)
        return UnlockCheck(True, REASON_READY)

    def milestone_status(self, milestone_id: int, *, price: int | None = None) -> MilestoneStatus:
        m = self.milestone(milestone_id)
        return MilestoneStatus(
            id=m.id,
            unlocked=m.unlocked,
            good_periods=m.good_periods,
            price_target=m.price_target,
            current_price=self.current_price() if price is None else price,
        )

    def milestone_statuses(self) -> list[MilestoneStatus]:
        price = self.current_price()
        return [self.milestone_status(i, price=price) for i in sorted(self.milestones)]

    def vault_info(self) -> VaultInfo:
        try:
            balance = self.ledger.balance_of(self.address)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  balance_of({self.address}) failed: {ex}", file=sys.stderr)
            balance = 0
        return VaultInfo(
            token=self.token,
            balance=balance,
            deposited=self.state.total_deposited,
            per_milestone_amount=self.state.per_milestone_amount,
            count_unlocked=self.count_unlocked,
            initialized=self.state.initialized,
        )
