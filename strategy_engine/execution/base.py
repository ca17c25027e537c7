"""Abstract collaborators: market data (bar windows) and order execution."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from strategy_engine.core.types import OrderRequest


@dataclass
class OrderResult:
    """Execution report for one order."""
    success: bool
    order_id: Optional[str] = None
    avg_price: Optional[float] = None
    quantity: Optional[float] = None
    message: str = ""


class MarketDataFeed(ABC):
    """Source of recent OHLCV windows."""

    @abstractmethod
    async def get_klines(self, symbol: str, interval: str, limit: int = 200) -> pd.DataFrame:
        """Return OHLCV DataFrame with columns: time, open, high, low, close, volume (oldest first)."""
        pass


class OrderExecutor(ABC):
    """Order placement. Results are reported, never retried by the engine."""

    @abstractmethod
    async def submit_order(self, order: OrderRequest) -> OrderResult:
        pass
