"""Unit tests for backtesting.engine and backtesting.data."""

import pandas as pd
import pytest

from strategy_engine.backtesting import BacktestEngine, generate_synthetic_bars, load_price_csv
from strategy_engine.core.errors import UnknownStrategyTemplate
from strategy_engine.core.types import PositionSide, PriceBar, TradeStatus, bars_to_frame


def _frame(closes):
    n = len(closes)
    return pd.DataFrame({
        "time": pd.date_range("2024-01-01", periods=n, freq="D", tz="UTC"),
        "open": closes,
        "high": closes,
        "low": closes,
        "close": [float(c) for c in closes],
        "volume": [1000.0] * n,
    })


def test_equity_curve_invariants():
    # SOL prices near 25, so 10% of 10000 buys whole units
    df = generate_synthetic_bars("SOLUSDT", bars=300, seed=3)
    result = BacktestEngine(10000).run(df, "rsi-oversold", {"oversold_level": 40, "overbought_level": 60})
    assert result.trades
    assert result.trades[0].entry_date != df["time"].iloc[-1]
    assert any(t.exit_reason == "signal_reverse" for t in result.trades)

    assert len(result.equity_curve) == len(df)
    assert result.equity_curve[-1].value == result.final_capital
    assert sum(t.pnl for t in result.trades) == pytest.approx(result.final_capital - result.initial_capital)
    assert result.performance.total_return == pytest.approx(result.final_capital - result.initial_capital)
    assert all(t.status == TradeStatus.CLOSED for t in result.trades)
    assert result.performance.total_trades == len(result.trades) > 0


def test_first_equity_point_is_initial_capital_while_flat():
    df = generate_synthetic_bars("ETHUSDT", bars=100, seed=11)
    result = BacktestEngine(5000).run(df, "moving-average-crossover", {"fast_period": 5, "slow_period": 20})
    assert result.equity_curve[0].value == 5000


def test_determinism():
    df = generate_synthetic_bars("SOLUSDT", bars=250, seed=5)
    a = BacktestEngine().run(df, "bollinger-bands", {"period": 20})
    b = BacktestEngine().run(df, "bollinger-bands", {"period": 20})
    assert a.to_dict() == b.to_dict()


def test_synthetic_bars_reproducible():
    a = generate_synthetic_bars("SOLUSDT", bars=50, seed=9)
    b = generate_synthetic_bars("SOLUSDT", bars=50, seed=9)
    pd.testing.assert_frame_equal(a, b)
    assert (a["high"] >= a["low"]).all()


def test_rising_series_opens_short_and_closes_at_end():
    closes = list(range(100, 120))
    result = BacktestEngine(10000, 0.10).run(_frame(closes), "rsi-oversold")
    assert len(result.trades) == 1
    trade = result.trades[0]
    assert trade.side == PositionSide.SHORT
    assert trade.entry_price == 114.0
    assert trade.quantity == 8  # floor(1000 / 114)
    assert trade.exit_reason == "end_of_data"
    assert trade.pnl == pytest.approx((114 - 119) * 8)
    assert trade.pnl_percent == pytest.approx(trade.pnl / (114 * 8) * 100)


def test_reversal_closes_then_opens():
    closes = list(range(100, 120)) + list(range(118, 90, -1))
    result = BacktestEngine().run(_frame(closes), "rsi-oversold")
    assert result.trades[0].side == PositionSide.SHORT
    assert result.trades[0].exit_reason == "signal_reverse"
    assert result.trades[1].side == PositionSide.LONG
    assert result.trades[1].entry_date == result.trades[0].exit_date


def test_run_on_price_bars():
    start = pd.Timestamp("2024-01-01", tz="UTC")
    bars = [PriceBar(start + pd.Timedelta(days=i), c, c, c, c, 1000.0) for i, c in enumerate(range(100, 120))]
    result = BacktestEngine(10000, 0.10).run(bars_to_frame(bars), "rsi-oversold")
    assert [t.side for t in result.trades] == [PositionSide.SHORT]
    assert result.trades[0].entry_date == start + pd.Timedelta(days=14)


def test_short_series_is_flat_run():
    result = BacktestEngine(10000).run(_frame([100.0] * 5), "rsi-oversold")
    assert result.trades == []
    assert result.final_capital == 10000
    assert [p.value for p in result.equity_curve] == [10000] * 5


def test_unknown_template():
    with pytest.raises(UnknownStrategyTemplate):
        BacktestEngine().run(_frame([100.0] * 30), "nope")


def test_invalid_engine_arguments():
    with pytest.raises(ValueError):
        BacktestEngine(initial_capital=0)
    with pytest.raises(ValueError):
        BacktestEngine(position_fraction=1.5)


def test_result_to_dict():
    result = BacktestEngine().run(_frame(list(range(100, 120))), "rsi-oversold", symbol="ETHUSDT")
    data = result.to_dict()
    assert data["period"]["symbol"] == "ETHUSDT"
    assert data["strategy"]["template_id"] == "rsi-oversold"
    assert data["trades"][0]["side"] == "short"
    assert len(data["equity_curve"]) == 20


def test_load_price_csv(tmp_path):
    path = tmp_path / "bars.csv"
    path.write_text(
        "Date,Open,High,Low,Close,Volume\n"
        "2024-01-02,2,3,1,2.5,10\n"
        "2024-01-01,1,2,0.5,1.5,20\n"
    )
    df = load_price_csv(path)
    assert list(df.columns) == ["time", "open", "high", "low", "close", "volume"]
    assert df["close"].tolist() == [1.5, 2.5]


def test_load_price_csv_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("time,close\n2024-01-01,1\n")
    with pytest.raises(ValueError):
        load_price_csv(path)
