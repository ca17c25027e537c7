"""Tests for the main.py entry points with a temporary config."""

import argparse
import logging

import pytest

import main

ENV_KEYS = [
    "USE_TESTNET", "BINANCE_API_KEY", "BINANCE_API_SECRET", "BINANCE_TESTNET_API_KEY",
    "BINANCE_TESTNET_API_SECRET", "SYMBOLS", "TIMEFRAME", "AUTO_TRADING", "MAX_DAILY_LOSS",
    "PAPER_TRADING", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID",
]


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(f"""
engine:
  paper_trading: false
strategies:
  - id: rsi
    template_id: rsi-oversold
backtest:
  symbol: solusdt
  days: 60
logging:
  level: WARNING
  log_dir: {tmp_path / "logs"}
  log_file: cli.log
""")
    yield path
    root = logging.getLogger("strategy_engine")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


class FailingStore:
    def save_backtest(self, result):
        raise RuntimeError("store offline")


def test_backtest_uses_configured_symbol_and_survives_store_failure(config_path, monkeypatch, capsys):
    monkeypatch.setattr(main, "_persistence", lambda config: FailingStore())
    args = argparse.Namespace(config=config_path, template=None, symbol=None, source="synthetic")
    assert main.run_backtest(args) == 0
    out = capsys.readouterr().out
    assert "(rsi-oversold) on SOLUSDT, 60 bars" in out


def test_live_goes_to_binance_when_paper_trading_is_off(config_path, monkeypatch):
    requested = []
    monkeypatch.setattr(main, "_binance", lambda config: requested.append(config) or None)
    args = argparse.Namespace(config=config_path, binance=False, duration=0.01)
    assert main.run_live(args) == 1
    assert len(requested) == 1
