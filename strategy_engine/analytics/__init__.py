"""Analytics: performance metrics (win rate, profit factor, MDD, Sharpe)."""

from strategy_engine.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    sharpe_ratio,
    equity_returns,
    max_drawdown,
    win_rate,
    average_win,
    average_loss,
    profit_factor,
)

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "sharpe_ratio",
    "equity_returns",
    "max_drawdown",
    "win_rate",
    "average_win",
    "average_loss",
    "profit_factor",
]
