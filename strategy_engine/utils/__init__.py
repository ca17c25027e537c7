"""Utils: timeframes."""

from strategy_engine.utils.timeframes import timeframe_minutes, timeframe_seconds

__all__ = ["timeframe_minutes", "timeframe_seconds"]
