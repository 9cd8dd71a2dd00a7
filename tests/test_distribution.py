import pytest

from conftest import RECIPIENTS, FailingLedger
from fairnomics.distribution import distribute, split_amount, validate_ratios
from fairnomics.errors import ConfigurationError, LedgerError
from fairnomics.ledger import InMemoryLedger
from fairnomics.models import Recipients

SENDER = "0x00000000000000000000000000000000000000cc"


def test_dust_goes_to_treasury():
    shares = split_amount(100, RECIPIENTS)
    assert [s.role for s in shares] == ["treasury", "growth", "liquidity", "team"]
    assert [s.computed_amount for s in shares] == [56, 22, 11, 11]
    assert sum(s.computed_amount for s in shares) == 100
    assert [s.ratio_numerator for s in shares] == [5000, 2000, 1000, 1000]


@pytest.mark.parametrize("amount", [0, 1, 8, 9, 1000, 10**24 + 7])
def test_shares_always_sum_to_amount(amount):
    shares = split_amount(amount, RECIPIENTS)
    assert sum(s.computed_amount for s in shares) == amount
    assert all(s.computed_amount >= 0 for s in shares)


def test_invalid_ratios_and_recipients():
    with pytest.raises(ConfigurationError):
        validate_ratios((("treasury", 5000), ("team", 3000)), 9000)
    with pytest.raises(ConfigurationError):
        validate_ratios((("treasury", 10000), ("team", -1000)), 9000)
    bad = Recipients(treasury=RECIPIENTS.treasury, growth="0x0000000000000000000000000000000000000000", liquidity="0x3", team="0x4")
    with pytest.raises(ConfigurationError, match="growth"):
        split_amount(100, bad)


def test_distribute_moves_all_four_shares():
    ledger = InMemoryLedger(balances={SENDER: 1000})
    shares = distribute(ledger, SENDER, 1000, RECIPIENTS)
    assert ledger.balance_of(SENDER) == 0
    for share in shares:
        assert ledger.balance_of(share.recipient) == share.computed_amount
    assert ledger.balance_of(RECIPIENTS.treasury) == 556


def test_distribute_checks_balance_first():
    ledger = InMemoryLedger(balances={SENDER: 99})
    with pytest.raises(LedgerError, match="insufficient"):
        distribute(ledger, SENDER, 100, RECIPIENTS)
    assert ledger.balance_of(SENDER) == 99


def test_failed_transfer_reverses_completed_ones():
    ledger = FailingLedger(RECIPIENTS.team, balances={SENDER: 1000})
    with pytest.raises(LedgerError, match="team"):
        distribute(ledger, SENDER, 1000, RECIPIENTS)
    assert ledger.balance_of(SENDER) == 1000
    assert ledger.balance_of(RECIPIENTS.treasury) == 0
    assert ledger.balance_of(RECIPIENTS.growth) == 0
    assert ledger.balance_of(RECIPIENTS.liquidity) == 0


def test_ledger_rules():
    ledger = InMemoryLedger(balances={"0xAbC": 10})
    assert ledger.balance_of("0xabc") == 10
    with pytest.raises(LedgerError):
        ledger.transfer("0xabc", "0xdef", 0)
    with pytest.raises(LedgerError):
        ledger.transfer("0xabc", "0xdef", 11)
    ledger.transfer("0xABC", "0xdef", 4)
    assert ledger.balance_of("0xDEF") == 4
    assert ledger.total_supply() == 10
