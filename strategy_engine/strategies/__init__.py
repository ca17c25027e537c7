"""Strategies: template interface, signal rules, and registry."""

from strategy_engine.strategies.base import BaseStrategy, INSUFFICIENT_DATA
from strategy_engine.strategies.rsi_oversold import RsiOversoldStrategy
from strategy_engine.strategies.ma_crossover import MovingAverageCrossoverStrategy
from strategy_engine.strategies.bollinger import BollingerBandsStrategy
from strategy_engine.strategies.macd_momentum import MacdMomentumStrategy
from strategy_engine.strategies.volume_spike import VolumeSpikeStrategy
from strategy_engine.strategies.registry import TEMPLATES, create_strategy, list_templates

__all__ = [
    "BaseStrategy",
    "INSUFFICIENT_DATA",
    "RsiOversoldStrategy",
    "MovingAverageCrossoverStrategy",
    "BollingerBandsStrategy",
    "MacdMomentumStrategy",
    "VolumeSpikeStrategy",
    "TEMPLATES",
    "create_strategy",
    "list_templates",
]
