"""Backtesting engine: bar-by-bar replay of a signal rule with equity and performance accounting."""

from strategy_engine.backtesting.engine import BacktestEngine, BacktestResult, EquityPoint
from strategy_engine.backtesting.data import load_price_csv, generate_synthetic_bars

__all__ = ["BacktestEngine", "BacktestResult", "EquityPoint", "load_price_csv", "generate_synthetic_bars"]
