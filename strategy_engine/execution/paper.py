"""Paper trading: a replay feed over a bar DataFrame and an executor that fills at the last price."""

from __future__ import annotations
import asyncio
import logging
from typing import Dict, List, Optional

import pandas as pd

from strategy_engine.core.types import OHLCV_COLUMNS, OrderRequest
from strategy_engine.execution.base import MarketDataFeed, OrderExecutor, OrderResult

logger = logging.getLogger("strategy_engine.execution.paper")


class ReplayFeed(MarketDataFeed):
    """
    Serves historical bars progressively: each get_klines call for a symbol reveals one more bar,
    starting with `warmup` bars visible. Once exhausted, the full window keeps being served.
    """

    def __init__(self, frames: Dict[str, pd.DataFrame], warmup: int = 50, step: int = 1):
        self._frames = {s: df[OHLCV_COLUMNS].reset_index(drop=True) for s, df in frames.items()}
        self._cursor = {s: min(max(warmup, 1), len(df)) for s, df in self._frames.items()}
        self._step = step

    def last_price(self, symbol: str) -> Optional[float]:
        df = self._frames.get(symbol)
        if df is None or df.empty:
            return None
        return float(df["close"].iloc[self._cursor[symbol] - 1])

    async def get_klines(self, symbol: str, interval: str, limit: int = 200) -> pd.DataFrame:
        if symbol not in self._frames:
            raise KeyError(f"No replay data for {symbol}")
        end = self._cursor[symbol]
        window = self._frames[symbol].iloc[max(0, end - limit):end].reset_index(drop=True)
        self._cursor[symbol] = min(end + self._step, len(self._frames[symbol]))
        return window


class PaperExecutor(OrderExecutor):
    """
    Fills market orders at the order's reference price (or the feed's last price).
    `latency` delays every fill, which keeps orders in flight across scheduler ticks.
    """

    def __init__(self, feed: Optional[ReplayFeed] = None, latency: float = 0.0, fail_symbols: Optional[List[str]] = None):
        self._feed = feed
        self.latency = latency
        self.fail_symbols = set(fail_symbols or [])
        self.orders: List[OrderRequest] = []
        self._next_id = 1

    async def submit_order(self, order: OrderRequest) -> OrderResult:
        if self.latency:
            await asyncio.sleep(self.latency)
        self.orders.append(order)
        if order.symbol in self.fail_symbols:
            return OrderResult(success=False, message=f"paper executor rejected {order.symbol}")
        price = order.price
        if price is None and self._feed is not None:
            price = self._feed.last_price(order.symbol)
        if price is None:
            return OrderResult(success=False, message=f"no price for {order.symbol}")
        order_id = f"paper-{self._next_id}"
        self._next_id += 1
        logger.info("Paper fill %s %s %s @ %.4f (%s)", order.side, order.quantity, order.symbol, price, order_id)
        return OrderResult(success=True, order_id=order_id, avg_price=price, quantity=order.quantity)
