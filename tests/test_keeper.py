from conftest import DAY, HOUR, FailingPriceSource, FixedPriceSource
from fairnomics.keeper import make_logger, run_keeper_cycle, should_call_progress
from fairnomics.models import MilestoneStatus, UnlockCheck


def status(price, target=10):
    return MilestoneStatus(id=1, unlocked=False, good_periods=0, price_target=target, current_price=price)


def test_should_call_progress_decisions():
    assert should_call_progress(UnlockCheck(True, "Ready to unlock"), status(10))[0]
    assert not should_call_progress(UnlockCheck(False, "Oracle price unavailable"), status(0))[0]
    assert not should_call_progress(UnlockCheck(False, "Vault not initialized"), status(10))[0]
    assert should_call_progress(UnlockCheck(False, "Cooldown not elapsed"), status(12))[0]
    assert not should_call_progress(UnlockCheck(False, "Price below target"), status(9))[0]
    assert not should_call_progress(UnlockCheck(False, "Something new"), status(0))[0]
    assert should_call_progress(UnlockCheck(False, "Something new"), status(11))[0]


def test_logger_stamps_iso_time(clock, capsys):
    log = make_logger(clock)
    log("hello")
    assert capsys.readouterr().err == "[2025-01-01T00:00:00+00:00] hello\n"

    lines = []
    make_logger(clock, lines.append)("captured")
    assert lines == ["[2025-01-01T00:00:00+00:00] captured"]


def test_cycle_waits_for_initialization_and_oracle(make_vault):
    lines = []
    assert run_keeper_cycle(make_vault(initialize=False), log=lines.append) is None
    assert any("not initialized" in line for line in lines)

    lines.clear()
    assert run_keeper_cycle(make_vault(), log=lines.append) is None
    assert any("Oracle not set" in line for line in lines)


def test_cycle_skips_when_price_is_below_target(make_vault):
    vault = make_vault(price_source=FixedPriceSource(5))
    lines = []
    assert run_keeper_cycle(vault, log=lines.append) is None
    assert vault.milestone(1).good_periods == 0
    assert any("Skipping try_progress" in line for line in lines)


def test_cycle_skips_when_oracle_fails(make_vault):
    vault = make_vault(price_source=FailingPriceSource())
    lines = []
    assert run_keeper_cycle(vault, log=lines.append) is None
    assert any("Oracle price unavailable" in line for line in lines)


def test_cycles_record_periods_and_unlock(make_vault, clock):
    vault = make_vault(price_source=FixedPriceSource(10))
    lines = []
    clock.advance(DAY - 2 * HOUR)
    outcomes = []
    for _ in range(3):
        outcomes.append(run_keeper_cycle(vault, log=lines.append))
        clock.advance(HOUR)

    assert [o.recorded for o in outcomes] == [True, True, True]
    assert outcomes[-1].unlocked
    assert vault.milestone(1).unlocked
    assert any("Good period recorded: 0 → 1" in line for line in lines)
    assert any("MILESTONE 1 UNLOCKED" in line for line in lines)

    # next cycle moves on to milestone 2, whose target is not met
    lines.clear()
    assert run_keeper_cycle(vault, log=lines.append) is None
    assert lines[0] == "Current milestone: 2"


def test_cycle_when_everything_is_unlocked(make_vault):
    vault = make_vault(price_source=FixedPriceSource(10))
    for m in vault.milestones.values():
        m.unlocked = True
    lines = []
    assert run_keeper_cycle(vault, log=lines.append) is None
    assert "All milestones unlocked" in lines[0]
