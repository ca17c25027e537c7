"""
Volume spike template.
A bar whose volume exceeds volume_multiplier x the average of the previous
lookback_period bars, with a close-to-close move beyond price_change_threshold
percent, signals in the direction of the move.
"""

from __future__ import annotations

import pandas as pd

from strategy_engine.core.errors import StrategyParameterError
from strategy_engine.core.types import SignalAction
from strategy_engine.strategies.base import BaseStrategy


class VolumeSpikeStrategy(BaseStrategy):
    template_id = "volume-spike"
    name = "Volume Spike Strategy"
    description = "Generates signals when unusual volume spikes occur with price movement"
    defaults = {"volume_multiplier": 2.0, "price_change_threshold": 2.0, "lookback_period": 20}

    def validate(self) -> None:
        self.lookback_period = self._positive_int("lookback_period")
        self.volume_multiplier = float(self.parameters["volume_multiplier"])
        self.price_change_threshold = float(self.parameters["price_change_threshold"])
        if self.volume_multiplier <= 0 or self.price_change_threshold < 0:
            raise StrategyParameterError(
                f"{self.template_id}: volume_multiplier must be > 0 and price_change_threshold >= 0"
            )

    @property
    def min_bars(self) -> int:
        return self.lookback_period + 1

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        df["avg_volume"] = df["volume"].rolling(self.lookback_period).mean().shift(1)
        df["change_pct"] = df["close"].pct_change() * 100
        return df

    def classify(self, df: pd.DataFrame, i: int) -> SignalAction:
        spike = df["volume"].iat[i] > df["avg_volume"].iat[i] * self.volume_multiplier
        change = df["change_pct"].iat[i]
        if not spike or abs(change) <= self.price_change_threshold:
            return SignalAction.NONE
        return SignalAction.BUY if change > 0 else SignalAction.SHORT
