"""Exception hierarchy for pricing and milestone release."""


class FairnomicsError(Exception):
    """Base class for all package errors."""


class ConfigurationError(FairnomicsError, ValueError):
    """Invalid identity, ratio, milestone id, or a missing/frozen configuration value."""


class PreconditionNotMet(FairnomicsError, RuntimeError):
    """
    A state-machine precondition does not hold (cooldown, price, good periods, already unlocked).

    `reason` carries the same text that `MilestoneVault.can_finalize` reports.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ExternalSourceFailure(FairnomicsError, RuntimeError):
    """A price source, pool or ledger call failed."""


class LedgerError(ExternalSourceFailure):
    """A ledger transfer could not be completed."""
