"""
Binance Futures market data and execution with retry and rate-limit handling.
python-binance is synchronous; calls run in a worker thread via asyncio.to_thread.
"""

from __future__ import annotations
import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from binance.client import Client
from binance.exceptions import BinanceAPIException

from strategy_engine.core.errors import ExecutionError
from strategy_engine.core.types import OHLCV_COLUMNS, OrderRequest
from strategy_engine.execution.base import MarketDataFeed, OrderExecutor, OrderResult

logger = logging.getLogger("strategy_engine.execution.binance")

TESTNET_FUTURES_URL = "https://testnet.binancefuture.com/fapi"
KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
]


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit) with exponential backoff."""
    def decorator(f):
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


@dataclass(frozen=True)
class LotFilter:
    """LOT_SIZE filter of one symbol."""
    min_qty: float = 0.001
    step_size: float = 0.0001

    @classmethod
    def from_symbol_info(cls, symbol_info: Optional[dict]) -> "LotFilter":
        if not symbol_info:
            return cls()
        for f in symbol_info.get("filters", []):
            if f.get("filterType") == "LOT_SIZE":
                return cls(min_qty=float(f.get("minQty", cls.min_qty)), step_size=float(f.get("stepSize", cls.step_size)))
        return cls()

    def round(self, qty: float) -> float:
        """Round down to step size; 0 if below min_qty."""
        if qty <= 0:
            return 0.0
        rounded = math.floor(qty / self.step_size + 1e-9) * self.step_size
        if rounded < self.min_qty:
            return 0.0
        return round(rounded, 8)


def klines_to_frame(raw: list) -> pd.DataFrame:
    df = pd.DataFrame(raw, columns=KLINE_COLUMNS)
    df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
    df["time"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
    return df[OHLCV_COLUMNS]


class BinanceClient(MarketDataFeed, OrderExecutor):
    """Binance USDT-M Futures client (testnet and live). Market orders only."""

    def __init__(self, api_key: str, api_secret: str, testnet: bool = True, client: Optional[Client] = None):
        self._client = client or Client(api_key, api_secret)
        if testnet:
            self._client.API_URL = TESTNET_FUTURES_URL
            logger.info("Binance Futures: using TESTNET")
        else:
            logger.info("Binance Futures: using LIVE")
        self._lot_filters: Dict[str, LotFilter] = {}

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def _klines(self, symbol: str, interval: str, limit: int) -> pd.DataFrame:
        return klines_to_frame(self._client.futures_klines(symbol=symbol, interval=interval, limit=limit))

    @retry_on_rate_limit(max_retries=2)
    def _lot_filter(self, symbol: str) -> LotFilter:
        if symbol not in self._lot_filters:
            info = self._client.futures_exchange_info()
            match = next((s for s in info.get("symbols", []) if s.get("symbol") == symbol), None)
            self._lot_filters[symbol] = LotFilter.from_symbol_info(match)
        return self._lot_filters[symbol]

    @retry_on_rate_limit(max_retries=2)
    def _create_market_order(self, symbol: str, side: str, quantity: float) -> dict:
        return self._client.futures_create_order(symbol=symbol, side=side, type="MARKET", quantity=str(quantity))

    async def get_klines(self, symbol: str, interval: str, limit: int = 200) -> pd.DataFrame:
        return await asyncio.to_thread(self._klines, symbol, interval, limit)

    def _place(self, order: OrderRequest) -> OrderResult:
        qty = self._lot_filter(order.symbol).round(order.quantity)
        if qty <= 0:
            return OrderResult(success=False, message=f"quantity {order.quantity} below lot size for {order.symbol}")
        try:
            res = self._create_market_order(order.symbol, order.side.upper(), qty)
        except BinanceAPIException as e:
            logger.exception("Binance order error: %s", e)
            return OrderResult(success=False, message=str(e))
        avg = float(res.get("avgPrice") or 0) or order.price
        executed = float(res.get("executedQty") or 0) or qty
        return OrderResult(success=True, order_id=str(res.get("orderId")), avg_price=avg, quantity=executed)

    async def submit_order(self, order: OrderRequest) -> OrderResult:
        if order.type != "market":
            raise ExecutionError(f"Unsupported order type: {order.type}")
        return await asyncio.to_thread(self._place, order)
