"""Execution: market data / order abstractions, Binance Futures and paper implementations."""

from strategy_engine.execution.base import MarketDataFeed, OrderExecutor, OrderResult
from strategy_engine.execution.binance import BinanceClient, LotFilter, retry_on_rate_limit
from strategy_engine.execution.paper import PaperExecutor, ReplayFeed

__all__ = [
    "MarketDataFeed", "OrderExecutor", "OrderResult",
    "BinanceClient", "LotFilter", "retry_on_rate_limit",
    "PaperExecutor", "ReplayFeed",
]
