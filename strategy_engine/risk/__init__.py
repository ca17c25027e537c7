"""Risk management: live positions, SL/TP triggers, position sizing, daily loss kill switch."""

from strategy_engine.risk.manager import RiskManager, RiskResult
from strategy_engine.risk.positions import PositionBook

__all__ = ["RiskManager", "RiskResult", "PositionBook"]
