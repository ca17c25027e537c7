"""
Backtest engine: replays a price series through one signal rule.
One Flat/Open state machine per run, bar-close fills, per-bar equity curve.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from strategy_engine.analytics.metrics import PerformanceMetrics, compute_metrics
from strategy_engine.core.types import PositionSide, SignalAction, SignalPoint, Trade
from strategy_engine.strategies.registry import create_strategy

logger = logging.getLogger("strategy_engine.backtest")


@dataclass(frozen=True)
class EquityPoint:
    date: Any
    value: float


@dataclass
class BacktestResult:
    """Backtest output. Built once per run."""
    strategy: Dict[str, Any]
    period: Dict[str, Any]
    initial_capital: float
    final_capital: float
    trades: List[Trade] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)
    signals: List[SignalPoint] = field(default_factory=list)
    performance: Optional[PerformanceMetrics] = None

    def to_dict(self) -> dict:
        return {
            "strategy": dict(self.strategy),
            "period": {k: _iso(v) for k, v in self.period.items()},
            "initial_capital": self.initial_capital,
            "final_capital": self.final_capital,
            "trades": [t.to_dict() for t in self.trades],
            "equity_curve": [{"date": _iso(p.date), "value": p.value} for p in self.equity_curve],
            "performance": self.performance.to_dict() if self.performance else None,
        }


def _iso(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


class BacktestEngine:
    """
    Runs a template over historical OHLCV bars (columns: time, open, high, low, close, volume).
    Each entry commits position_fraction of current capital at the bar close.
    """

    def __init__(self, initial_capital: float = 10000.0, position_fraction: float = 0.10):
        if initial_capital <= 0:
            raise ValueError("initial_capital must be > 0")
        if not 0 < position_fraction <= 1:
            raise ValueError("position_fraction must be in (0, 1]")
        self.initial_capital = initial_capital
        self.position_fraction = position_fraction

    def run(
        self,
        df: pd.DataFrame,
        template_id: str,
        parameters: Optional[Mapping[str, Any]] = None,
        symbol: str = "BTCUSDT",
        strategy_name: str = "",
    ) -> BacktestResult:
        """Raises UnknownStrategyTemplate for an unregistered template."""
        strategy = create_strategy(template_id, parameters)
        df = df.reset_index(drop=True)
        signals = strategy.generate_signals(df)
        if not signals:
            logger.info("%s on %s: %d bars, not enough for a signal", template_id, symbol, len(df))
        by_index = {s.index: s for s in signals}

        closes = df["close"].to_numpy(dtype=float)
        times = df["time"].tolist() if "time" in df else list(range(len(df)))
        capital = self.initial_capital
        trades: List[Trade] = []
        equity: List[EquityPoint] = []
        open_trade: Optional[Trade] = None
        trade_counter = 0

        for i, close in enumerate(closes):
            close = float(close)
            point = by_index.get(i)
            action = point.action if point is not None else SignalAction.NONE
            if action != SignalAction.NONE:
                side = PositionSide.from_action(action)
                if open_trade is not None and open_trade.side != side:
                    capital += open_trade.close(times[i], close, "signal_reverse")
                    trades.append(open_trade)
                    logger.debug("Closed %s at %.4f pnl=%.2f", open_trade.id, close, open_trade.pnl)
                    open_trade = None
                if open_trade is None:
                    quantity = math.floor(capital * self.position_fraction / close) if close > 0 else 0
                    if quantity > 0:
                        trade_counter += 1
                        open_trade = Trade(
                            id=f"trade-{trade_counter}",
                            entry_date=times[i],
                            entry_price=close,
                            side=side,
                            quantity=quantity,
                        )
            marked = open_trade.unrealized_pnl(close) if open_trade is not None else 0.0
            equity.append(EquityPoint(date=times[i], value=capital + marked))

        if open_trade is not None:
            capital += open_trade.close(times[-1], float(closes[-1]), "end_of_data")
            trades.append(open_trade)

        performance = compute_metrics(
            [t.pnl for t in trades],
            [p.value for p in equity],
            self.initial_capital,
            capital,
        )
        logger.info(
            "Backtest %s %s: %d trades, return %.2f (%.2f%%), max DD %.2f%%",
            template_id, symbol, performance.total_trades, performance.total_return,
            performance.total_return_percent, performance.max_drawdown,
        )
        return BacktestResult(
            strategy={"name": strategy_name or strategy.name, "template_id": template_id, "parameters": dict(strategy.parameters)},
            period={
                "start_date": times[0] if times else None,
                "end_date": times[-1] if times else None,
                "symbol": symbol,
            },
            initial_capital=self.initial_capital,
            final_capital=capital,
            trades=trades,
            equity_curve=equity,
            signals=signals,
            performance=performance,
        )
