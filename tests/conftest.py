import pytest

from fairnomics.constants import TGE_TIMESTAMP
from fairnomics.errors import ExternalSourceFailure, LedgerError
from fairnomics.ledger import InMemoryLedger
from fairnomics.models import Recipients
from fairnomics.pools import ManualClock
from fairnomics.vault import MilestoneVault

OWNER = "0x00000000000000000000000000000000000000aa"
TOKEN = "0x00000000000000000000000000000000000000bb"
VAULT = "0x00000000000000000000000000000000000000cc"
RECIPIENTS = Recipients(
    treasury="0x0000000000000000000000000000000000000001",
    growth="0x0000000000000000000000000000000000000002",
    liquidity="0x0000000000000000000000000000000000000003",
    team="0x0000000000000000000000000000000000000004",
)

DAY = 24 * 60 * 60
HOUR = 60 * 60
ALLOCATION = 18_000


class FixedPriceSource:
    def __init__(self, price: int, identity: str = "fixed") -> None:
        self.price = price
        self.identity = identity
        self.calls = 0

    def get_price(self) -> int:
        self.calls += 1
        return self.price


class FailingPriceSource:
    def __init__(self, identity: str = "failing", exc: Exception | None = None) -> None:
        self.identity = identity
        self.exc = exc or ExternalSourceFailure("source down")

    def get_price(self) -> int:
        raise self.exc


class FakePool:
    """Pool double: each capability returns its configured value or raises it if it is an exception."""

    def __init__(self, cumulatives=None, state=None, tokens=("0xasset", "0xquote")) -> None:
        self.cumulatives = cumulatives
        self.state = state
        self.tokens = tokens
        self.observe_calls: list[list[int]] = []

    def cumulative_ticks(self, offsets):
        self.observe_calls.append(list(offsets))
        if isinstance(self.cumulatives, Exception):
            raise self.cumulatives
        if self.cumulatives is None:
            raise ExternalSourceFailure("OLD")
        return list(self.cumulatives)

    def instantaneous_state(self):
        if isinstance(self.state, Exception):
            raise self.state
        if self.state is None:
            raise ExternalSourceFailure("slot0 reverted")
        return self.state

    def token_order(self):
        return self.tokens


class FailingLedger(InMemoryLedger):
    """Ledger that rejects every transfer to one address."""

    def __init__(self, reject: str, balances=None) -> None:
        super().__init__(balances=balances)
        self.reject = reject.lower()

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if recipient.lower() == self.reject:
            raise LedgerError(f"transfer to {recipient} rejected")
        super().transfer(sender, recipient, amount)


@pytest.fixture
def clock():
    return ManualClock(TGE_TIMESTAMP)


@pytest.fixture
def make_vault(clock):
    """Factory for a vault with short timing: 1 day cooldown, 3 good periods of 1 hour."""

    def _make(*, ledger=None, price_source=None, initialize=True, **kwargs):
        ledger = ledger if ledger is not None else InMemoryLedger(balances={OWNER: ALLOCATION})
        options = {
            "address": VAULT,
            "start_time": TGE_TIMESTAMP,
            "wait_rule": DAY,
            "required_periods": 3,
            "period_interval": HOUR,
            "clock": clock,
        }
        options.update(kwargs)
        vault = MilestoneVault(TOKEN, OWNER, RECIPIENTS, ledger, **options)
        if price_source is not None:
            vault.set_price_source(price_source, caller=OWNER)
        if initialize:
            vault.deposit_and_initialize(ALLOCATION, caller=OWNER)
        return vault

    return _make
