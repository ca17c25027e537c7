"""Abstract strategy template: parameters, indicators, and per-bar signal rule."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Mapping, Optional

import pandas as pd

from strategy_engine.core.errors import StrategyParameterError
from strategy_engine.core.types import SignalAction, SignalPoint

logger = logging.getLogger("strategy_engine.strategies")

INSUFFICIENT_DATA = "insufficient data"


class BaseStrategy(ABC):
    """
    A template computes indicator columns on an OHLCV DataFrame and maps each
    bar where the indicators are defined to buy / short / none.
    """

    template_id: ClassVar[str] = ""
    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    defaults: ClassVar[Dict[str, Any]] = {}

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None):
        params = dict(self.defaults)
        for key, value in (parameters or {}).items():
            if key not in self.defaults:
                raise StrategyParameterError(
                    f"{self.template_id}: unknown parameter {key!r} (expected one of {sorted(self.defaults)})"
                )
            params[key] = value
        self.parameters = params
        self.validate()

    def validate(self) -> None:
        """Check parameter values. Subclasses extend."""

    def _positive_int(self, key: str) -> int:
        value = self.parameters[key]
        if isinstance(value, bool) or int(value) != value or value < 1:
            raise StrategyParameterError(f"{self.template_id}: {key} must be a positive integer, got {value!r}")
        return int(value)

    @property
    @abstractmethod
    def min_bars(self) -> int:
        """Bars needed before the first signal is defined."""

    @abstractmethod
    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add indicator columns to OHLCV DataFrame (NaN where undefined). No lookahead."""

    @abstractmethod
    def classify(self, df: pd.DataFrame, i: int) -> SignalAction:
        """Signal for bar i of an indicator frame; i >= first_index."""

    @property
    def first_index(self) -> int:
        return self.min_bars - 1

    def generate_signals(self, df: pd.DataFrame) -> List[SignalPoint]:
        """One SignalPoint per bar from first_index on; empty if the series is too short."""
        if len(df) < self.min_bars:
            logger.debug("%s: %d bars < %d required", self.template_id, len(df), self.min_bars)
            return []
        frame = self.compute_indicators(df)
        closes = frame["close"].to_numpy(dtype=float)
        times = frame["time"].tolist() if "time" in frame else list(range(len(frame)))
        return [
            SignalPoint(timestamp=times[i], action=self.classify(frame, i), price=float(closes[i]), index=i)
            for i in range(self.first_index, len(frame))
        ]

    def latest_signal(self, df: pd.DataFrame) -> SignalPoint:
        """Signal for the last bar, or a neutral one when there is not enough data."""
        if len(df) < self.min_bars:
            last = len(df) - 1
            price = float(df["close"].iloc[-1]) if len(df) else 0.0
            ts = df["time"].iloc[-1] if len(df) and "time" in df else None
            return SignalPoint(timestamp=ts, action=SignalAction.NONE, price=price, index=last, reason=INSUFFICIENT_DATA)
        point = self.generate_signals(df)[-1]
        return SignalPoint(
            timestamp=point.timestamp,
            action=point.action,
            price=point.price,
            index=point.index,
            reason=f"{self.template_id} strategy signal",
        )
