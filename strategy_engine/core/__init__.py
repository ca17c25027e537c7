"""Core: config, types, errors, logging."""

from strategy_engine.core.config import load_config, Config, AutoTradingSettings
from strategy_engine.core.errors import (
    StrategyEngineError,
    UnknownStrategyTemplate,
    StrategyParameterError,
    UnsupportedAggregationMethod,
    SettingsError,
    ExecutionError,
)
from strategy_engine.core.types import (
    PriceBar,
    Signal,
    SignalAction,
    SignalMetadata,
    SignalPoint,
    Position,
    PositionSide,
    Trade,
    TradeStatus,
    StrategyConfig,
    RiskMetrics,
    OrderRequest,
    bars_to_frame,
)
from strategy_engine.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "AutoTradingSettings",
    "StrategyEngineError",
    "UnknownStrategyTemplate",
    "StrategyParameterError",
    "UnsupportedAggregationMethod",
    "SettingsError",
    "ExecutionError",
    "PriceBar",
    "Signal",
    "SignalAction",
    "SignalMetadata",
    "SignalPoint",
    "Position",
    "PositionSide",
    "Trade",
    "TradeStatus",
    "StrategyConfig",
    "RiskMetrics",
    "OrderRequest",
    "bars_to_frame",
    "setup_logging",
]
