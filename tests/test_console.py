from conftest import DAY, FailingPriceSource, FixedPriceSource
from fairnomics.aggregator import AggregateOracle
from fairnomics.console import print_aggregation, print_price_point, print_vault_status
from fairnomics.models import AggregationMethod, PricePoint


def test_print_aggregation(capsys):
    oracle = AggregateOracle(
        [FixedPriceSource(100, "a"), FixedPriceSource(104, "b"), FixedPriceSource(500, "c"), FailingPriceSource("d")],
        method=AggregationMethod.MEDIAN,
        max_deviation_bps=1000,
    )
    print_aggregation(oracle.aggregate())
    out = capsys.readouterr().out
    assert "Aggregated price (median): $0.000102" in out
    assert "Valid sources: 2  •  Filtered outliers: 1" in out
    assert "✅ a: $0.000100" in out
    assert "❌ d: ExternalSourceFailure: source down" in out


def test_print_price_point(capsys):
    print_price_point("TWAP (3600s)", PricePoint(raw_tick=-5, sqrt_ratio=123, scaled_price=10))
    assert capsys.readouterr().out == "   TWAP (3600s): $0.000010  (tick -5, sqrtPriceX96 123)\n"


def test_print_vault_status(make_vault, clock, capsys):
    vault = make_vault(price_source=FixedPriceSource(12, "twap:pool"))
    vault.freeze_price_source(caller=vault.owner)
    print_vault_status(vault, decimals=0, symbol="FAIR")
    out = capsys.readouterr().out
    assert "Oracle: twap:pool (frozen)" in out
    assert "Current price: $0.000012" in out
    assert "Deposited: 18,000 FAIR" in out
    assert "Unlocked: 0/18" in out
    assert "Cooldown remaining: 1d" in out
    assert "Milestone 1: Cooldown not elapsed" in out

    clock.advance(DAY)
    print_vault_status(vault, decimals=0)
    out = capsys.readouterr().out
    assert "Cooldown elapsed" in out
    assert "Milestone 1: Good periods not reached" in out
