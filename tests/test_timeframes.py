"""Unit tests for utils.timeframes."""

import pytest

from strategy_engine.utils.timeframes import timeframe_minutes, timeframe_seconds


def test_timeframe_minutes():
    assert timeframe_minutes("5m") == 5
    assert timeframe_minutes("1h") == 60
    assert timeframe_minutes("1d") == 1440
    assert timeframe_minutes("1w") == 10080


def test_timeframe_seconds():
    assert timeframe_seconds("30s") == 30
    assert timeframe_seconds(" 15M ") == 900


@pytest.mark.parametrize("tf", ["1x", "m", "0m", "-5m", ""])
def test_timeframe_invalid(tf):
    with pytest.raises(ValueError):
        timeframe_minutes(tf)
