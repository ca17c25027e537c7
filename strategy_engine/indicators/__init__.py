"""Indicators: pure numeric functions over price sequences."""

from strategy_engine.indicators.technical import (
    moving_average,
    rsi,
    bollinger_bands,
    ema,
    macd,
    volatility_confidence,
)

__all__ = [
    "moving_average",
    "rsi",
    "bollinger_bands",
    "ema",
    "macd",
    "volatility_confidence",
]
