"""
Technical indicators over a close-price sequence: SMA, Wilder RSI, Bollinger Bands, EMA, MACD.
All functions are pure; callers check the minimum-length precondition.
"""

from __future__ import annotations
from typing import Sequence, Union

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

PriceSeq = Union[Sequence[float], np.ndarray, pd.Series]


def _as_array(prices: PriceSeq) -> np.ndarray:
    return np.asarray(prices, dtype=float)


def _check_period(period: int) -> int:
    if int(period) != period or period < 1:
        raise ValueError(f"period must be a positive integer, got {period!r}")
    return int(period)


def moving_average(prices: PriceSeq, period: int) -> np.ndarray:
    """Simple moving average per sliding window. Length len(prices) - period + 1, empty if too short."""
    period = _check_period(period)
    arr = _as_array(prices)
    if len(arr) < period:
        return np.empty(0)
    return sliding_window_view(arr, period).mean(axis=1)


def rsi(prices: PriceSeq, period: int = 14) -> np.ndarray:
    """
    Wilder's RSI. The first `period` changes seed the average gain/loss, later
    changes are smoothed with avg = (avg * (period - 1) + value) / period.
    Value i corresponds to prices[i + period]. avg_loss == 0 gives 100 (50 if flat).
    """
    period = _check_period(period)
    arr = _as_array(prices)
    if len(arr) < period + 1:
        return np.empty(0)
    deltas = np.diff(arr)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period
    out = np.empty(len(deltas) - period + 1)
    out[0] = _rsi_value(avg_gain, avg_loss)
    for j, i in enumerate(range(period, len(deltas)), start=1):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out[j] = _rsi_value(avg_gain, avg_loss)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def bollinger_bands(prices: PriceSeq, period: int = 20, std_dev_multiplier: float = 2.0) -> pd.DataFrame:
    """Columns upper/middle/lower per window, population std. Row i covers prices[i : i + period]."""
    period = _check_period(period)
    arr = _as_array(prices)
    if len(arr) < period:
        return pd.DataFrame(columns=["upper", "middle", "lower"], dtype=float)
    windows = sliding_window_view(arr, period)
    middle = windows.mean(axis=1)
    width = windows.std(axis=1) * std_dev_multiplier
    return pd.DataFrame({"upper": middle + width, "middle": middle, "lower": middle - width})


def ema(prices: PriceSeq, period: int) -> np.ndarray:
    """Exponential moving average seeded with the first price (alpha = 2 / (period + 1))."""
    period = _check_period(period)
    arr = _as_array(prices)
    if len(arr) == 0:
        return np.empty(0)
    return pd.Series(arr).ewm(span=period, adjust=False).mean().to_numpy()


def macd(prices: PriceSeq, fast: int = 12, slow: int = 26, signal: int = 9) -> pd.DataFrame:
    """MACD line (fast EMA - slow EMA), its signal EMA and the histogram. Same length as prices."""
    fast = _check_period(fast)
    slow = _check_period(slow)
    signal = _check_period(signal)
    arr = _as_array(prices)
    if len(arr) < slow:
        return pd.DataFrame(columns=["macd", "signal", "histogram"], dtype=float)
    line = ema(arr, fast) - ema(arr, slow)
    signal_line = ema(line, signal)
    return pd.DataFrame({"macd": line, "signal": signal_line, "histogram": line - signal_line})


def volatility_confidence(prices: PriceSeq, lookback: int = 10) -> float:
    """Confidence in [0.1, 1.0] that falls as recent relative volatility rises."""
    arr = _as_array(prices)[-lookback:]
    if len(arr) == 0:
        return 0.1
    mean = arr.mean()
    if mean == 0:
        return 0.1
    volatility = arr.std() / abs(mean)
    return float(max(0.1, min(1.0, 1.0 - volatility * 10)))
