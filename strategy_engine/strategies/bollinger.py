"""Bollinger Bands breakout template: short above the upper band, buy below the lower band."""

from __future__ import annotations

import numpy as np
import pandas as pd

from strategy_engine.core.errors import StrategyParameterError
from strategy_engine.core.types import SignalAction
from strategy_engine.indicators import bollinger_bands
from strategy_engine.strategies.base import BaseStrategy


class BollingerBandsStrategy(BaseStrategy):
    template_id = "bollinger-bands"
    name = "Bollinger Bands Breakout"
    description = "Generates signals when price breaks above or below Bollinger Bands"
    defaults = {"period": 20, "standard_deviations": 2.0}

    def validate(self) -> None:
        self.period = self._positive_int("period")
        self.standard_deviations = float(self.parameters["standard_deviations"])
        if self.standard_deviations <= 0:
            raise StrategyParameterError(f"{self.template_id}: standard_deviations must be > 0")

    @property
    def min_bars(self) -> int:
        return self.period

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        bands = bollinger_bands(df["close"], self.period, self.standard_deviations)
        pad = np.full(len(df) - len(bands), np.nan)
        for col in ("upper", "middle", "lower"):
            df[f"bb_{col}"] = np.concatenate([pad, bands[col].to_numpy()])
        return df

    def classify(self, df: pd.DataFrame, i: int) -> SignalAction:
        close = df["close"].iat[i]
        if close > df["bb_upper"].iat[i]:
            return SignalAction.SHORT
        if close < df["bb_lower"].iat[i]:
            return SignalAction.BUY
        return SignalAction.NONE
