"""
MACD momentum template.
Buy when MACD is above its signal line and positive; short when below and negative.
"""

from __future__ import annotations

import pandas as pd

from strategy_engine.core.errors import StrategyParameterError
from strategy_engine.core.types import SignalAction
from strategy_engine.indicators import macd
from strategy_engine.strategies.base import BaseStrategy


class MacdMomentumStrategy(BaseStrategy):
    template_id = "macd-momentum"
    name = "MACD Momentum"
    description = "Generates signals based on MACD line and signal line crossover"
    defaults = {"fast_period": 12, "slow_period": 26, "signal_period": 9}

    def validate(self) -> None:
        self.fast_period = self._positive_int("fast_period")
        self.slow_period = self._positive_int("slow_period")
        self.signal_period = self._positive_int("signal_period")
        if self.fast_period >= self.slow_period:
            raise StrategyParameterError(f"{self.template_id}: fast_period must be < slow_period")

    @property
    def min_bars(self) -> int:
        # slow EMA warm-up, then signal EMA warm-up on the MACD line
        return self.slow_period + self.signal_period - 1

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        lines = macd(df["close"], self.fast_period, self.slow_period, self.signal_period)
        df["macd"] = lines["macd"].to_numpy()
        df["macd_signal"] = lines["signal"].to_numpy()
        df["macd_hist"] = lines["histogram"].to_numpy()
        return df

    def classify(self, df: pd.DataFrame, i: int) -> SignalAction:
        line, signal = df["macd"].iat[i], df["macd_signal"].iat[i]
        if line > signal and line > 0:
            return SignalAction.BUY
        if line < signal and line < 0:
            return SignalAction.SHORT
        return SignalAction.NONE
