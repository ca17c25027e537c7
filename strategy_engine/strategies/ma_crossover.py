"""
Moving-average crossover template.
Signals only on the bar where the fast SMA crosses the slow SMA.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from strategy_engine.core.types import SignalAction
from strategy_engine.indicators import moving_average
from strategy_engine.strategies.base import BaseStrategy


def _padded(values: np.ndarray, length: int) -> np.ndarray:
    return np.concatenate([np.full(length - len(values), np.nan), values])


class MovingAverageCrossoverStrategy(BaseStrategy):
    template_id = "moving-average-crossover"
    name = "Moving Average Crossover"
    description = "Generates signals when fast MA crosses above or below slow MA"
    defaults = {"fast_period": 10, "slow_period": 30}

    def validate(self) -> None:
        self.fast_period = self._positive_int("fast_period")
        self.slow_period = self._positive_int("slow_period")

    @property
    def min_bars(self) -> int:
        # bar i is compared against bar i - 1, so both averages must exist one bar earlier
        return max(self.fast_period, self.slow_period) + 1

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        closes = df["close"]
        df["fast_ma"] = _padded(moving_average(closes, self.fast_period), len(df))
        df["slow_ma"] = _padded(moving_average(closes, self.slow_period), len(df))
        return df

    def classify(self, df: pd.DataFrame, i: int) -> SignalAction:
        fast, slow = df["fast_ma"].iat[i], df["slow_ma"].iat[i]
        prev_fast, prev_slow = df["fast_ma"].iat[i - 1], df["slow_ma"].iat[i - 1]
        if prev_fast <= prev_slow and fast > slow:
            return SignalAction.BUY
        if prev_fast >= prev_slow and fast < slow:
            return SignalAction.SHORT
        return SignalAction.NONE
