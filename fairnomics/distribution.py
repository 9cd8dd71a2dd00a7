"""Proportional split of a milestone release across the four recipients."""

import sys

from fairnomics.constants import (
    GROWTH_RATIO,
    LIQUIDITY_RATIO,
    RATIO_DENOMINATOR,
    TEAM_RATIO,
    TREASURY_RATIO,
    ZERO_ADDRESS,
)
from fairnomics.errors import ConfigurationError, ExternalSourceFailure, LedgerError
from fairnomics.models import DistributionShare, Recipients
from fairnomics.sources import Ledger

DEFAULT_RATIOS: tuple[tuple[str, int], ...] = (
    ("treasury", TREASURY_RATIO),
    ("growth", GROWTH_RATIO),
    ("liquidity", LIQUIDITY_RATIO),
    ("team", TEAM_RATIO),
)


def is_zero_identity(value: str | None) -> bool:
    return not value or value.strip().lower() in ("", "0x", "0x0", ZERO_ADDRESS)


def validate_recipients(recipients: Recipients) -> None:
    for role, _ in DEFAULT_RATIOS:
        if is_zero_identity(getattr(recipients, role)):
            raise ConfigurationError(f"{role} recipient must be a non-zero address")


def validate_ratios(ratios: tuple[tuple[str, int], ...], denominator: int) -> None:
    if denominator <= 0:
        raise ConfigurationError("ratio denominator must be > 0")
    if any(numerator < 0 for _, numerator in ratios):
        raise ConfigurationError("ratio numerators must be >= 0")
    total = sum(numerator for _, numerator in ratios)
    if total != denominator:
        raise ConfigurationError(f"ratio numerators sum to {total}, expected {denominator}")


def split_amount(
    amount: int,
    recipients: Recipients,
    *,
    ratios: tuple[tuple[str, int], ...] = DEFAULT_RATIOS,
    denominator: int = RATIO_DENOMINATOR,
) -> list[DistributionShare]:
    """
    Split `amount` by integer ratios. Floor-division dust goes to the first (treasury) share.

    100 over (5000, 2000, 1000, 1000) / 9000 -> raw (55, 22, 11, 11) = 99 -> (56, 22, 11, 11).
    """
    if amount < 0:
        raise ValueError("amount must be >= 0")
    validate_ratios(ratios, denominator)
    validate_recipients(recipients)

    raw = [amount * numerator // denominator for _, numerator in ratios]
    raw[0] += amount - sum(raw)
    return [
        DistributionShare(
            role=role,
            recipient=getattr(recipients, role),
            ratio_numerator=numerator,
            computed_amount=share,
        )
        for (role, numerator), share in zip(ratios, raw, strict=True)
    ]


def distribute(ledger: Ledger, sender: str, amount: int, recipients: Recipients) -> list[DistributionShare]:
    """
    Transfer `amount` from `sender` to the four recipients as one unit.

    The balance is checked up front. If a transfer still fails, the transfers already made are
    reversed before LedgerError is raised, so either all four shares move or none do.
    """
    shares = split_amount(amount, recipients)
    balance = ledger.balance_of(sender)
    if balance < amount:
        raise LedgerError(f"insufficient balance for distribution: have {balance}, need {amount}")

    done: list[DistributionShare] = []
    for share in shares:
        if share.computed_amount == 0:
            continue
        try:
            ledger.transfer(sender, share.recipient, share.computed_amount)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            _reverse(ledger, sender, done)
            raise LedgerError(f"transfer of {share.computed_amount} to {share.role} failed: {ex}") from ex
        done.append(share)
    return shares


def _reverse(ledger: Ledger, sender: str, done: list[DistributionShare]) -> None:
    for share in reversed(done):
        try:
            ledger.transfer(share.recipient, sender, share.computed_amount)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  Could not reverse {share.role} transfer of {share.computed_amount}: {ex}", file=sys.stderr)
            raise ExternalSourceFailure(f"distribution left partially applied: {share.role} reversal failed") from ex
