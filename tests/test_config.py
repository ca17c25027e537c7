"""Unit tests for core.config: yaml + env loading and auto-trading settings."""

import pytest

from strategy_engine.core.config import AutoTradingSettings, as_bool, load_config
from strategy_engine.core.errors import SettingsError

CONFIG_YAML = """
market:
  symbols: [btcusdt, ethusdt]
  timeframe: 5m
auto_trading:
  enabled: false
  confidence_threshold: 0.6
  signal_aggregation:
    method: weighted
    minimum_signals: 1
    weights: {rsi: 2, ma: 1}
strategies:
  - id: rsi
    template_id: rsi-oversold
    parameters: {rsi_period: 10}
  - id: ma
    template: moving-average-crossover
    enabled: false
engine:
  paper_trading: false
backtest:
  template: bollinger-bands
  symbol: solusdt
  parameters: {period: 15}
"""

ENV_KEYS = [
    "USE_TESTNET", "BINANCE_API_KEY", "BINANCE_API_SECRET", "BINANCE_TESTNET_API_KEY",
    "BINANCE_TESTNET_API_SECRET", "SYMBOLS", "TIMEFRAME", "AUTO_TRADING", "MAX_DAILY_LOSS",
    "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID",
    "PAPER_TRADING",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_load_config_from_yaml(tmp_path, clean_env):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    config = load_config(path, tmp_path)
    assert config.symbols == ["BTCUSDT", "ETHUSDT"]
    assert config.timeframe == "5m"
    assert config.auto_trading.confidence_threshold == 0.6
    assert config.auto_trading.signal_aggregation.weights == {"rsi": 2.0, "ma": 1.0}
    assert [s.id for s in config.strategies] == ["rsi", "ma"]
    assert config.strategies[1].template_id == "moving-average-crossover"
    assert config.strategies[1].enabled is False
    assert config.backtest_template == "bollinger-bands"
    assert config.backtest_parameters == {"period": 15}
    assert config.backtest_symbol == "solusdt"
    assert config.paper_trading is False


def test_env_overrides(tmp_path, clean_env):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    clean_env.setenv("SYMBOLS", "solusdt, adausdt")
    clean_env.setenv("AUTO_TRADING", "true")
    clean_env.setenv("MAX_DAILY_LOSS", "250")
    clean_env.setenv("BINANCE_TESTNET_API_KEY", "k")
    clean_env.setenv("BINANCE_TESTNET_API_SECRET", "s")
    config = load_config(path, tmp_path)
    assert config.symbols == ["SOLUSDT", "ADAUSDT"]
    assert config.auto_trading.enabled is True
    assert config.auto_trading.risk_management.max_daily_loss == 250
    assert config.binance_api_key == "k"
    assert config.use_testnet is True


def test_missing_config_uses_defaults(tmp_path, clean_env):
    config = load_config(tmp_path / "absent.yaml", tmp_path)
    assert config.symbols == ["BTCUSDT"]
    assert config.paper_trading is True
    assert config.backtest_symbol is None
    assert config.auto_trading.signal_aggregation.method == "majority"
    assert config.strategies == []


def test_settings_with_updates_is_nested_and_validated():
    settings = AutoTradingSettings()
    updated = settings.with_updates({"risk_management": {"max_daily_loss": 200}})
    assert updated.risk_management.max_daily_loss == 200
    assert updated.risk_management.stop_loss_percent == 5.0
    assert settings.risk_management.max_daily_loss == 500


@pytest.mark.parametrize("changes", [
    {"signal_aggregation": {"method": "median"}},
    {"signal_aggregation": {"method": "weighted"}},
    {"signal_aggregation": {"method": "weighted", "weights": {"a": -1}}},
    {"confidence_threshold": 1.5},
    {"risk_management": {"max_position_size": 0}},
    {"unknown": True},
])
def test_invalid_settings_rejected(changes):
    with pytest.raises(SettingsError):
        AutoTradingSettings().with_updates(changes)


def test_settings_round_trip_dict():
    settings = AutoTradingSettings.from_dict({"enabled": True, "execution": {"order_type": "market"}})
    assert AutoTradingSettings.from_dict(settings.to_dict()) == settings


def test_setup_logging_json_file(tmp_path):
    import json
    import logging

    from strategy_engine.core.logger import setup_logging

    root = setup_logging("debug", tmp_path, "engine.log", json_logs=True)
    logging.getLogger("strategy_engine.test").info("hello %s", "world")
    for handler in root.handlers:
        handler.flush()
    line = (tmp_path / "engine.log").read_text().strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "hello world"
    assert record["logger"] == "strategy_engine.test"
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def test_paper_trading_env_override(tmp_path, clean_env):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    clean_env.setenv("PAPER_TRADING", "yes")
    assert load_config(path, tmp_path).paper_trading is True


@pytest.mark.parametrize("value, expected", [
    (True, True), (False, False), ("true", True), ("Yes", True), ("1", True),
    ("false", False), ("0", False), ("", False), (None, False),
])
def test_as_bool(value, expected):
    assert as_bool(value) is expected


def test_string_flags_in_settings_are_parsed():
    settings = AutoTradingSettings(enabled=True).with_updates({"enabled": "false", "notifications": {"trades": "no"}})
    assert settings.enabled is False
    assert settings.notifications.trades is False
    assert settings.notifications.signals is True


def test_non_boolean_flag_rejected():
    with pytest.raises(SettingsError):
        AutoTradingSettings.from_dict({"enabled": ["yes"]})
