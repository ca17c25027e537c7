"""Unit tests for analytics.metrics."""

import pytest

from strategy_engine.analytics.metrics import (
    average_loss,
    average_win,
    compute_metrics,
    equity_returns,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    win_rate,
)


def test_sharpe_ratio_empty():
    assert sharpe_ratio([]) == 0.0


def test_sharpe_ratio_constant():
    assert sharpe_ratio([0.01] * 10) == 0.0  # zero std


def test_sharpe_ratio_sign():
    assert sharpe_ratio([0.02, 0.01, 0.03, -0.01]) > 0
    assert sharpe_ratio([-0.02, -0.01, -0.03, 0.01]) < 0


def test_win_rate_is_fraction():
    assert win_rate([1, -1, 1, 1]) == 0.75
    assert win_rate([]) == 0.0


def test_average_win_loss():
    pnls = [10, -5, 20, -15]
    assert average_win(pnls) == 15
    assert average_loss(pnls) == 10


def test_profit_factor():
    assert profit_factor([10, -5, 10, -5]) == 2.0
    assert profit_factor([10, 10]) == 0.0


def test_max_drawdown_running_peak():
    assert max_drawdown([100, 120, 90, 130, 117]) == pytest.approx(25.0)
    assert max_drawdown([100, 110, 120]) == 0.0
    assert max_drawdown([90, 95], initial_peak=100) == pytest.approx(10.0)


def test_equity_returns():
    assert equity_returns([100, 110, 99]) == pytest.approx([0.1, -0.1])
    assert equity_returns([100]) == []


def test_compute_metrics():
    m = compute_metrics([50, -20, 30], [10000, 10050, 10030, 10060], 10000, 10060)
    assert m.total_trades == 3
    assert m.winning_trades == 2
    assert m.losing_trades == 1
    assert m.win_rate == pytest.approx(2 / 3)
    assert m.total_return == 60
    assert m.total_return_percent == pytest.approx(0.6)
    assert m.profit_factor == pytest.approx(40 / 20)
    assert m.max_drawdown == pytest.approx(20 / 10050 * 100)
