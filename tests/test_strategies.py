"""Unit tests for strategy templates and the registry."""

import pandas as pd
import pytest

from strategy_engine.core.errors import StrategyParameterError, UnknownStrategyTemplate
from strategy_engine.core.types import SignalAction
from strategy_engine.strategies import INSUFFICIENT_DATA, TEMPLATES, create_strategy, list_templates


def _frame(closes, volumes=None):
    n = len(closes)
    return pd.DataFrame({
        "time": pd.date_range("2024-01-01", periods=n, freq="D", tz="UTC"),
        "open": closes,
        "high": closes,
        "low": closes,
        "close": [float(c) for c in closes],
        "volume": volumes if volumes is not None else [1000.0] * n,
    })


def test_registry_lists_all_templates():
    ids = {t["id"] for t in list_templates()}
    assert ids == set(TEMPLATES)
    assert {"rsi-oversold", "moving-average-crossover", "bollinger-bands", "macd-momentum", "volume-spike"} <= ids


def test_unknown_template_rejected():
    with pytest.raises(UnknownStrategyTemplate):
        create_strategy("does-not-exist", {})


def test_unknown_parameter_rejected():
    with pytest.raises(StrategyParameterError):
        create_strategy("rsi-oversold", {"period": 14})


def test_invalid_parameter_values_rejected():
    with pytest.raises(StrategyParameterError):
        create_strategy("moving-average-crossover", {"fast_period": 0})
    with pytest.raises(StrategyParameterError):
        create_strategy("rsi-oversold", {"oversold_level": 80, "overbought_level": 20})
    with pytest.raises(StrategyParameterError):
        create_strategy("macd-momentum", {"fast_period": 30, "slow_period": 26})


def test_rsi_rising_series_emits_short():
    strategy = create_strategy("rsi-oversold", {"rsi_period": 14})
    signals = strategy.generate_signals(_frame(list(range(100, 115))))
    assert len(signals) == 1
    assert signals[0].action == SignalAction.SHORT
    assert signals[0].index == 14


def test_rsi_falling_series_emits_buy():
    strategy = create_strategy("rsi-oversold")
    signals = strategy.generate_signals(_frame(list(range(130, 110, -1))))
    assert all(s.action == SignalAction.BUY for s in signals)


def test_insufficient_data_is_neutral():
    strategy = create_strategy("rsi-oversold")
    assert strategy.generate_signals(_frame([100.0] * 5)) == []
    latest = strategy.latest_signal(_frame([100.0] * 5))
    assert latest.action == SignalAction.NONE
    assert latest.reason == INSUFFICIENT_DATA


def test_ma_crossover_single_crossing_emits_one_buy():
    # falling leg then a steep rising leg: fast - slow only increases after the trough
    closes = [100 - i for i in range(25)] + [76 + 3 * i for i in range(1, 16)]
    fast, slow = 5, 10
    strategy = create_strategy("moving-average-crossover", {"fast_period": fast, "slow_period": slow})
    signals = strategy.generate_signals(_frame(closes))

    assert signals[0].index == max(fast, slow)
    actions = [s for s in signals if s.action != SignalAction.NONE]
    assert len(actions) == 1
    assert actions[0].action == SignalAction.BUY

    s = pd.Series(closes, dtype=float)
    diff = s.rolling(fast).mean() - s.rolling(slow).mean()
    expected = next(i for i in range(slow, len(closes)) if diff[i - 1] <= 0 < diff[i])
    assert actions[0].index == expected


def test_ma_crossover_first_emission_aligned():
    strategy = create_strategy("moving-average-crossover", {"fast_period": 3, "slow_period": 8})
    signals = strategy.generate_signals(_frame([100.0] * 20))
    assert signals[0].index == 8
    assert all(s.action == SignalAction.NONE for s in signals)


def test_bollinger_breakouts():
    closes = [100.0, 101.0] * 10 + [130.0]
    signals = create_strategy("bollinger-bands", {"period": 20}).generate_signals(_frame(closes))
    assert signals[-1].action == SignalAction.SHORT
    closes = [100.0, 101.0] * 10 + [70.0]
    signals = create_strategy("bollinger-bands", {"period": 20}).generate_signals(_frame(closes))
    assert signals[-1].action == SignalAction.BUY


def test_volume_spike_requires_volume_and_move():
    closes = [100.0] * 21 + [105.0]
    volumes = [1000.0] * 21 + [5000.0]
    strategy = create_strategy("volume-spike", {"lookback_period": 20})
    assert strategy.latest_signal(_frame(closes, volumes)).action == SignalAction.BUY
    quiet = [1000.0] * 22
    assert strategy.latest_signal(_frame(closes, quiet)).action == SignalAction.NONE
    falling = [100.0] * 21 + [95.0]
    assert strategy.latest_signal(_frame(falling, volumes)).action == SignalAction.SHORT


def test_macd_momentum_trend():
    strategy = create_strategy("macd-momentum")
    up = strategy.latest_signal(_frame([100 + i for i in range(60)]))
    down = strategy.latest_signal(_frame([200 - i for i in range(60)]))
    assert up.action == SignalAction.BUY
    assert down.action == SignalAction.SHORT


def test_latest_signal_reason():
    strategy = create_strategy("rsi-oversold")
    latest = strategy.latest_signal(_frame(list(range(100, 120))))
    assert latest.reason == "rsi-oversold strategy signal"
    assert latest.price == 119.0
