"""JSON persistence for a milestone vault and its in-memory ledger."""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from fairnomics.errors import ConfigurationError
from fairnomics.ledger import InMemoryLedger
from fairnomics.models import Milestone, Recipients, VaultState
from fairnomics.vault import MilestoneVault, build_milestones

STATE_FORMAT_VERSION = 1


def vault_to_dict(vault: MilestoneVault) -> dict[str, Any]:
    """Persisted layout: milestones 1..18, vault scalars, recipients, timing and ledger balances."""
    if not isinstance(vault.ledger, InMemoryLedger):
        raise ConfigurationError("only vaults backed by an InMemoryLedger can be saved")
    return {
        "version": STATE_FORMAT_VERSION,
        "token": vault.token,
        "owner": vault.owner,
        "address": vault.address,
        "recipients": asdict(vault.recipients),
        "timing": {
            "wait_rule": vault.wait_rule,
            "required_periods": vault.required_periods,
            "period_interval": vault.period_interval,
        },
        "state": asdict(vault.state),
        "milestones": [asdict(vault.milestones[i]) for i in sorted(vault.milestones)],
        "ledger": {"token": vault.ledger.token, "balances": dict(vault.ledger.balances)},
    }


def vault_from_dict(data: dict[str, Any], *, price_source: object | None = None, clock=None) -> MilestoneVault:
    """
    Rebuild a vault. `price_source`, if given, must carry the identity recorded as the vault's
    oracle reference; the reference itself is never changed by loading.
    """
    if data.get("version") != STATE_FORMAT_VERSION:
        raise ConfigurationError(f"unsupported state format version: {data.get('version')!r}")
    timing = data["timing"]
    ledger_data = data["ledger"]
    vault = MilestoneVault(
        data["token"],
        data["owner"],
        Recipients(**data["recipients"]),
        InMemoryLedger(ledger_data["token"], ledger_data["balances"]),
        address=data["address"],
        wait_rule=timing["wait_rule"],
        required_periods=timing["required_periods"],
        period_interval=timing["period_interval"],
        clock=clock,
    )
    vault.state = VaultState(**data["state"])

    milestones = {m["id"]: Milestone(**m) for m in data["milestones"]}
    expected = build_milestones()
    if sorted(milestones) != sorted(expected):
        raise ConfigurationError("state file must hold exactly milestones 1..18")
    for milestone_id, m in milestones.items():
        if m.price_target != expected[milestone_id].price_target:
            raise ConfigurationError(f"milestone {milestone_id} target {m.price_target} does not match the schedule")
    vault.milestones = milestones

    if price_source is not None and vault.state.oracle_reference is not None:
        vault.reattach_price_source(price_source)
    return vault


def save_vault(vault: MilestoneVault, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(vault_to_dict(vault), f, indent=2)
    tmp.replace(path)


def load_vault(path: str | Path, *, price_source: object | None = None, clock=None) -> MilestoneVault:
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    return vault_from_dict(data, price_source=price_source, clock=clock)
