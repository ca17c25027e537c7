"""
RSI oversold/overbought template.
Buy while RSI is below the oversold level, short while above the overbought level.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from strategy_engine.core.errors import StrategyParameterError
from strategy_engine.core.types import SignalAction
from strategy_engine.indicators import rsi
from strategy_engine.strategies.base import BaseStrategy


class RsiOversoldStrategy(BaseStrategy):
    template_id = "rsi-oversold"
    name = "RSI Oversold/Overbought"
    description = "Generates signals based on RSI levels indicating oversold or overbought conditions"
    defaults = {"rsi_period": 14, "oversold_level": 30, "overbought_level": 70}

    def validate(self) -> None:
        self.rsi_period = self._positive_int("rsi_period")
        self.oversold_level = float(self.parameters["oversold_level"])
        self.overbought_level = float(self.parameters["overbought_level"])
        if not 0 <= self.oversold_level <= self.overbought_level <= 100:
            raise StrategyParameterError(
                f"{self.template_id}: need 0 <= oversold_level <= overbought_level <= 100"
            )

    @property
    def min_bars(self) -> int:
        return self.rsi_period + 1

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        values = rsi(df["close"], self.rsi_period)
        df["rsi"] = np.concatenate([np.full(len(df) - len(values), np.nan), values])
        return df

    def classify(self, df: pd.DataFrame, i: int) -> SignalAction:
        value = df["rsi"].iat[i]
        if value < self.oversold_level:
            return SignalAction.BUY
        if value > self.overbought_level:
            return SignalAction.SHORT
        return SignalAction.NONE
