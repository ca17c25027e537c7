"""Live loop: signal aggregation, periodic scheduler, trading engine."""

from strategy_engine.live.aggregation import AggregatedSignal, aggregate_signals
from strategy_engine.live.engine import TradingEngine
from strategy_engine.live.scheduler import Clock, Job, ManualClock, Scheduler, SystemClock

__all__ = [
    "AggregatedSignal", "aggregate_signals",
    "TradingEngine",
    "Clock", "Job", "ManualClock", "Scheduler", "SystemClock",
]
