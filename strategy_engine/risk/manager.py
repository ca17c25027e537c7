"""
Risk manager: stop-loss / take-profit triggers, position sizing, portfolio risk metrics,
daily loss kill switch.
Position size = (1% of portfolio) / stop distance, capped at max_position_size.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from strategy_engine.analytics.metrics import equity_returns, max_drawdown, profit_factor, sharpe_ratio, win_rate
from strategy_engine.core.config import AutoTradingSettings, RiskManagementSettings
from strategy_engine.core.types import Position, PositionSide, RiskMetrics, Signal, SignalAction
from strategy_engine.notifications.base import Alert, AlertKind, AlertPriority
from strategy_engine.risk.positions import PositionBook

logger = logging.getLogger("strategy_engine.risk")

RISK_PER_TRADE = 0.01


@dataclass
class RiskResult:
    """Result of risk check: allowed or rejected + reason."""
    allowed: bool
    quantity: float = 0.0
    close_quantity: float = 0.0  # open opposite position closed by the same order
    reason: str = ""


class RiskManager:
    """
    Holds the live position set and the auto-trading settings it enforces.
    The kill switch is one-way: only update_settings() on the engine clears it.
    """

    def __init__(self, settings: Optional[AutoTradingSettings] = None, initial_capital: float = 10000.0):
        self.settings = settings or AutoTradingSettings()
        self.initial_capital = initial_capital
        self.positions = PositionBook()
        self.realized_pnl: float = 0.0
        self.kill_switch_engaged: bool = False
        self._daily_realized: float = 0.0
        self._daily_reset_date: Optional[date] = None
        self._closed_pnls: List[float] = []
        self._equity_history: deque = deque([initial_capital], maxlen=10000)

    @property
    def risk_settings(self) -> RiskManagementSettings:
        return self.settings.risk_management

    @property
    def auto_trading_enabled(self) -> bool:
        return self.settings.enabled and not self.kill_switch_engaged

    # --- portfolio state ---

    def portfolio_value(self) -> float:
        unrealized = sum(p.unrealized_pnl for p in self.positions)
        return self.initial_capital + self.realized_pnl + unrealized

    def total_exposure(self) -> float:
        return sum(p.market_value for p in self.positions)

    def daily_pnl(self) -> float:
        return self._daily_realized + sum(p.unrealized_pnl for p in self.positions)

    def reset_daily(self, as_of: Optional[date] = None) -> None:
        """Zero the daily realized PnL when the (UTC) date changes."""
        as_of = as_of or datetime.now(timezone.utc).date()
        if self._daily_reset_date is None:
            self._daily_reset_date = as_of
        elif self._daily_reset_date != as_of:
            self._daily_reset_date = as_of
            self._daily_realized = 0.0

    def record_trade_pnl(self, pnl: float) -> None:
        self.realized_pnl += pnl
        self._daily_realized += pnl
        self._closed_pnls.append(pnl)

    def mark_to_market(self, symbol: str, price: float) -> Optional[Position]:
        return self.positions.mark(symbol, price)

    def apply_fill(self, symbol: str, side: PositionSide, quantity: float, price: float) -> float:
        """Apply an execution report; realized PnL from closing trades is recorded."""
        closing = symbol in self.positions and self.positions.get(symbol).side != side
        realized = self.positions.apply_fill(symbol, side, quantity, price)
        if closing:
            self.record_trade_pnl(realized)
        return realized

    # --- triggers ---

    def stop_loss_price(self, side: PositionSide, entry_price: float) -> float:
        pct = self.risk_settings.stop_loss_percent / 100
        return entry_price * (1 - pct) if side == PositionSide.LONG else entry_price * (1 + pct)

    def take_profit_price(self, side: PositionSide, entry_price: float) -> float:
        pct = self.risk_settings.take_profit_percent / 100
        return entry_price * (1 + pct) if side == PositionSide.LONG else entry_price * (1 - pct)

    def should_trigger_stop_loss(self, position: Position, current_price: float) -> bool:
        if not self.settings.enable_risk_management:
            return False
        stop = self.stop_loss_price(position.side, position.entry_price)
        return current_price <= stop if position.side == PositionSide.LONG else current_price >= stop

    def should_trigger_take_profit(self, position: Position, current_price: float) -> bool:
        if not self.settings.enable_risk_management:
            return False
        target = self.take_profit_price(position.side, position.entry_price)
        return current_price >= target if position.side == PositionSide.LONG else current_price <= target

    # --- sizing ---

    def calculate_position_size(
        self,
        signal: Signal,
        risk_settings: Optional[RiskManagementSettings] = None,
        portfolio_value: Optional[float] = None,
    ) -> float:
        """Risk 1% of the portfolio over the stop distance; never above max_position_size."""
        risk_settings = risk_settings or self.risk_settings
        value = self.portfolio_value() if portfolio_value is None else portfolio_value
        risk_amount = value * RISK_PER_TRADE
        if signal.metadata.stop_loss is not None:
            stop_distance = abs(signal.price - signal.metadata.stop_loss)
        else:
            stop_distance = signal.price * (risk_settings.stop_loss_percent / 100)
        if stop_distance <= 0 or risk_amount <= 0:
            return 0.0
        return min(risk_amount / stop_distance, risk_settings.max_position_size)

    def validate_signal(self, signal: Signal) -> RiskResult:
        """Decide whether an actionable signal may become an order, and its size."""
        if self.kill_switch_engaged:
            return RiskResult(allowed=False, reason="kill switch engaged")
        if signal.action == SignalAction.NONE:
            return RiskResult(allowed=False, reason="no action")
        side = PositionSide.from_action(signal.action)
        current = self.positions.get(signal.symbol)
        if current is not None and current.side == side:
            return RiskResult(allowed=False, reason=f"{side.value} position already open")
        size = self.calculate_position_size(signal)
        if size <= 0:
            return RiskResult(allowed=False, reason="position size too small")
        close_qty = current.quantity if current is not None else 0.0
        return RiskResult(allowed=True, quantity=size, close_quantity=close_qty)

    # --- portfolio risk ---

    def calculate_risk_metrics(self, as_of: Optional[date] = None) -> RiskMetrics:
        self.reset_daily(as_of)
        value = self.portfolio_value()
        self._equity_history.append(value)
        history = list(self._equity_history)
        return RiskMetrics(
            portfolio_value=value,
            total_exposure=self.total_exposure(),
            daily_pnl=self.daily_pnl(),
            max_drawdown=max_drawdown(history),
            sharpe_ratio=sharpe_ratio(equity_returns(history)),
            win_rate=win_rate(self._closed_pnls),
            profit_factor=profit_factor(self._closed_pnls),
        )

    def check_risk_limits(self, metrics: RiskMetrics) -> Optional[Alert]:
        """
        Daily loss kill switch. On breach: critical alert, auto-trading forced off and latched.
        Returns the alert, or None within limits. Never re-enables anything.
        """
        limit = self.risk_settings.max_daily_loss
        if abs(metrics.daily_pnl) <= limit:
            return None
        if self.settings.enabled:
            logger.warning("Auto-trading disabled due to daily loss limit breach")
        self.settings.enabled = False
        self.kill_switch_engaged = True
        return Alert(
            kind=AlertKind.RISK_BREACH,
            title="Daily Loss Limit Exceeded",
            message=f"Daily P&L of ${abs(metrics.daily_pnl):.2f} exceeds limit of ${limit:.2f}; auto-trading disabled",
            priority=AlertPriority.CRITICAL,
            data={"daily_pnl": metrics.daily_pnl, "max_daily_loss": limit},
        )

    def release_kill_switch(self) -> None:
        """Explicit user action only."""
        if self.kill_switch_engaged:
            logger.info("Kill switch released by settings update")
        self.kill_switch_engaged = False
