import json

import pytest

from conftest import OWNER, TOKEN
from fairnomics.cli import env_int, main, parse_args, recipients_from_env
from fairnomics.constants import TEST_WALLETS


def test_milestones_table(capsys):
    assert main(["milestones"]) == 0
    out = capsys.readouterr().out
    assert "MILESTONE PRICE TARGETS" in out
    assert "$0.000010" in out
    assert "$0.000015" in out
    assert "55.56%" in out
    assert "🟢" not in out

    assert main(["milestones", "--price", "12"]) == 0
    out = capsys.readouterr().out
    assert out.count("🟢") == 1


def test_env_int(monkeypatch):
    monkeypatch.delenv("VAULT_WAIT_RULE", raising=False)
    assert env_int("VAULT_WAIT_RULE", 7) == 7
    monkeypatch.setenv("VAULT_WAIT_RULE", " 60 ")
    assert env_int("VAULT_WAIT_RULE", 7) == 60
    monkeypatch.setenv("VAULT_WAIT_RULE", "soon")
    with pytest.raises(SystemExit):
        env_int("VAULT_WAIT_RULE", 7)


def test_recipients_from_env(monkeypatch, capsys):
    for role in TEST_WALLETS:
        monkeypatch.delenv(f"{role.upper()}_WALLET", raising=False)
    monkeypatch.setenv("TREASURY_WALLET", "0x00000000000000000000000000000000000000f1")
    recipients = recipients_from_env()
    assert recipients.treasury == "0x00000000000000000000000000000000000000f1"
    assert recipients.team == TEST_WALLETS["team"]
    assert "GROWTH_WALLET not set" in capsys.readouterr().err


def test_pool_commands_require_pool_and_asset():
    with pytest.raises(SystemExit):
        parse_args(["price"])
    args = parse_args(["--no-cache", "price", "--pool", "0xp", "--asset", "0xa", "--window", "900"])
    assert args.no_cache
    assert args.window == 900


def test_init_state_then_status(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("VAULT_WAIT_RULE", "60")
    monkeypatch.setenv("VAULT_GOOD_PERIODS", "2")
    monkeypatch.setenv("VAULT_PERIOD_INTERVAL", "30")
    state = tmp_path / "vault.json"

    args = ["init-state", str(state), "--token", TOKEN, "--owner", OWNER, "--amount", "18000"]
    assert main(args) == 0
    data = json.loads(state.read_text(encoding="utf-8"))
    assert data["state"]["per_milestone_amount"] == 1000
    assert data["state"]["oracle_reference"] is None
    assert data["timing"]["wait_rule"] == 60
    assert data["ledger"]["balances"][OWNER.lower()] == 0
    capsys.readouterr()

    assert main(["status", str(state)]) == 0
    out = capsys.readouterr().out
    assert "MILESTONE VAULT STATUS" in out
    assert "Oracle: not set" in out
    assert "Current price: n/a" in out
    assert "Milestone 1: Oracle not set" in out


def test_init_state_rejects_empty_allocation(tmp_path, capsys):
    state = tmp_path / "vault.json"
    args = ["init-state", str(state), "--token", TOKEN, "--owner", OWNER, "--amount", "0"]
    assert main(args) == 1
    assert not state.exists()
    assert "amount must be > 0" in capsys.readouterr().err


def test_status_of_unknown_state_version(tmp_path, capsys):
    state = tmp_path / "vault.json"
    state.write_text(json.dumps({"version": 99}), encoding="utf-8")
    assert main(["status", str(state)]) == 1
    assert "version" in capsys.readouterr().err


def test_simulate(capsys):
    args = ["simulate", "--steps", "8", "--wait-rule", "3600", "--good-periods", "2", "--end-price", "100"]
    assert main(args) == 0
    out = capsys.readouterr().out
    assert "MILESTONE VAULT STATUS" in out
    assert "Recipient balances" in out


def test_aggregate_needs_a_source():
    with pytest.raises(SystemExit):
        main(["aggregate"])
    args = parse_args(["aggregate", "--source", "0x1", "--source", "0x2", "--method", "weighted"])
    assert args.source == ["0x1", "0x2"]
    assert args.method == "weighted"
