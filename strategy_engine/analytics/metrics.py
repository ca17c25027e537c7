"""
Performance metrics: win rate, average win/loss, profit factor, max drawdown, Sharpe.
Shared by the backtest simulator and the live risk metrics.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class PerformanceMetrics:
    """Backtest summary."""
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    total_return: float
    total_return_percent: float
    max_drawdown: float
    sharpe_ratio: float
    profit_factor: float
    avg_win: float
    avg_loss: float

    def to_dict(self) -> dict:
        return asdict(self)


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe. returns = list of period returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    if excess.std() <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * excess.mean() / excess.std())


def equity_returns(values: Sequence[float]) -> List[float]:
    """Period-over-period simple returns of an equity series."""
    arr = np.asarray(values, dtype=float)
    if len(arr) < 2:
        return []
    prev = arr[:-1]
    return (np.diff(arr) / np.where(prev != 0, prev, 1.0)).tolist()


def max_drawdown(values: Sequence[float], initial_peak: Optional[float] = None) -> float:
    """Largest (peak - value) / peak * 100 against the running peak. Positive percent."""
    peak = initial_peak
    worst = 0.0
    for value in values:
        if peak is None or value > peak:
            peak = value
        if peak > 0:
            worst = max(worst, (peak - value) / peak * 100)
    return worst


def win_rate(pnls: Sequence[float]) -> float:
    """Fraction of trades with positive PnL."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def average_win(pnls: Sequence[float]) -> float:
    wins = [p for p in pnls if p > 0]
    return sum(wins) / len(wins) if wins else 0.0


def average_loss(pnls: Sequence[float]) -> float:
    """Mean absolute PnL of losing trades."""
    losses = [-p for p in pnls if p < 0]
    return sum(losses) / len(losses) if losses else 0.0


def profit_factor(pnls: Sequence[float]) -> float:
    """Average win / average loss. 0 when there are no losing trades."""
    avg_loss = average_loss(pnls)
    if avg_loss <= 0:
        return 0.0
    return average_win(pnls) / avg_loss


def compute_metrics(
    pnls: Sequence[float],
    equity_values: Sequence[float],
    initial_capital: float,
    final_capital: float,
    periods_per_year: float = 252.0,
) -> PerformanceMetrics:
    """Full metrics from closed-trade PnLs and the per-bar equity curve."""
    total_return = final_capital - initial_capital
    return PerformanceMetrics(
        total_trades=len(pnls),
        winning_trades=sum(1 for p in pnls if p > 0),
        losing_trades=sum(1 for p in pnls if p < 0),
        win_rate=win_rate(pnls),
        total_return=total_return,
        total_return_percent=total_return / initial_capital * 100 if initial_capital else 0.0,
        max_drawdown=max_drawdown(equity_values, initial_peak=initial_capital),
        sharpe_ratio=sharpe_ratio(equity_returns(equity_values), periods_per_year=periods_per_year),
        profit_factor=profit_factor(pnls),
        avg_win=average_win(pnls),
        avg_loss=average_loss(pnls),
    )
