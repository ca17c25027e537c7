"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import copy
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from strategy_engine.core.errors import SettingsError
from strategy_engine.core.types import StrategyConfig

AGGREGATION_METHODS = ("majority", "unanimous", "weighted")


@dataclass
class RiskManagementSettings:
    max_position_size: float = 1000.0
    stop_loss_percent: float = 5.0
    take_profit_percent: float = 10.0
    max_daily_loss: float = 500.0


@dataclass
class SignalAggregationSettings:
    method: str = "majority"
    minimum_signals: int = 2
    weights: Dict[str, float] = field(default_factory=dict)


@dataclass
class ExecutionSettings:
    order_type: str = "market"
    time_in_force: str = "day"


@dataclass
class NotificationSettings:
    signals: bool = True
    trades: bool = True


@dataclass
class AutoTradingSettings:
    """User-owned auto-trading configuration. Changed only via update_settings()."""
    enabled: bool = False
    enable_risk_management: bool = True
    confidence_threshold: float = 0.7
    risk_management: RiskManagementSettings = field(default_factory=RiskManagementSettings)
    signal_aggregation: SignalAggregationSettings = field(default_factory=SignalAggregationSettings)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    def validate(self) -> "AutoTradingSettings":
        """Raise SettingsError for values the engine cannot honor."""
        agg = self.signal_aggregation
        if agg.method not in AGGREGATION_METHODS:
            raise SettingsError(
                f"signal_aggregation.method must be one of {', '.join(AGGREGATION_METHODS)}; got {agg.method!r}"
            )
        if agg.method == "weighted":
            if not agg.weights:
                raise SettingsError("weighted aggregation requires per-strategy weights")
            if any(w < 0 for w in agg.weights.values()):
                raise SettingsError("aggregation weights must be non-negative")
        if agg.minimum_signals < 1:
            raise SettingsError("signal_aggregation.minimum_signals must be >= 1")
        risk = self.risk_management
        if risk.max_position_size <= 0:
            raise SettingsError("risk_management.max_position_size must be > 0")
        if risk.stop_loss_percent <= 0 or risk.take_profit_percent <= 0:
            raise SettingsError("stop_loss_percent and take_profit_percent must be > 0")
        if risk.max_daily_loss < 0:
            raise SettingsError("risk_management.max_daily_loss must be >= 0")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise SettingsError("confidence_threshold must be within [0, 1]")
        return self

    def with_updates(self, changes: Dict[str, Any]) -> "AutoTradingSettings":
        """Return a validated copy with nested changes applied (e.g. {"risk_management": {"max_daily_loss": 200}})."""
        data = asdict(self)
        _deep_update(data, changes)
        return AutoTradingSettings.from_dict(data)

    def copy(self) -> "AutoTradingSettings":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AutoTradingSettings":
        data = data or {}
        agg = dict(data.get("signal_aggregation") or {})
        agg["weights"] = {str(k): float(v) for k, v in (agg.get("weights") or {}).items()}
        settings = cls(
            enabled=as_bool(data.get("enabled", False)),
            enable_risk_management=as_bool(data.get("enable_risk_management", True)),
            confidence_threshold=float(data.get("confidence_threshold", 0.7)),
            risk_management=RiskManagementSettings(**(data.get("risk_management") or {})),
            signal_aggregation=SignalAggregationSettings(**agg),
            execution=ExecutionSettings(**(data.get("execution") or {})),
            notifications=_notification_settings(data.get("notifications") or {}),
        )
        return settings.validate()


def as_bool(value: Any) -> bool:
    """Strings parse like env flags ("true", "1", "yes"); anything else must already be a bool or number."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (bool, int, float)) or value is None:
        return bool(value)
    raise SettingsError(f"Expected a boolean, got {value!r}")


def _notification_settings(data: dict) -> NotificationSettings:
    return NotificationSettings(**{k: as_bool(v) for k, v in data.items()})


def _deep_update(target: dict, changes: dict) -> None:
    for key, value in changes.items():
        if key not in target:
            raise SettingsError(f"Unknown setting: {key!r}")
        if isinstance(value, dict) and isinstance(target[key], dict) and key != "weights":
            _deep_update(target[key], value)
        else:
            target[key] = value


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    api = data.get("api", {})
    market = data.get("market", {})
    engine = data.get("engine", {})
    backtest = data.get("backtest", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})
    persistence = data.get("persistence", {})

    auto_trading = copy.deepcopy(data.get("auto_trading") or {})
    auto_trading["enabled"] = env_bool("AUTO_TRADING", auto_trading.get("enabled", False))
    risk = auto_trading.setdefault("risk_management", {})
    risk["max_daily_loss"] = env_float("MAX_DAILY_LOSS", risk.get("max_daily_loss", 500.0))

    use_testnet = env_bool("USE_TESTNET", api.get("use_testnet", True))
    # Dedicated testnet/mainnet keys so both can live in .env
    if use_testnet:
        binance_api_key = env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET")
    else:
        binance_api_key = env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET")

    symbols_env = env("SYMBOLS")
    symbols = [s.strip().upper() for s in symbols_env.split(",") if s.strip()] if symbols_env else [
        str(s).upper() for s in market.get("symbols", ["BTCUSDT"])
    ]

    return Config(
        binance_api_key=binance_api_key,
        binance_api_secret=binance_api_secret,
        use_testnet=use_testnet,
        symbols=symbols,
        timeframe=env("TIMEFRAME", market.get("timeframe", "1m")),
        window_bars=int(market.get("window_bars", 200)),
        initial_capital=float(engine.get("initial_capital", 10000.0)),
        market_tick_seconds=float(engine.get("market_tick_seconds", 1.0)),
        signal_seconds=float(engine.get("signal_seconds", 5.0)),
        risk_check_seconds=float(engine.get("risk_check_seconds", 10.0)),
        paper_trading=env_bool("PAPER_TRADING", engine.get("paper_trading", True)),
        auto_trading=AutoTradingSettings.from_dict(auto_trading),
        strategies=[StrategyConfig.from_dict(s) for s in data.get("strategies", [])],
        backtest_initial_capital=float(backtest.get("initial_capital", 10000.0)),
        backtest_position_fraction=float(backtest.get("position_fraction", 0.10)),
        backtest_csv_path=backtest.get("csv_path"),
        backtest_days=int(backtest.get("days", 365)),
        backtest_seed=int(backtest.get("seed", 42)),
        backtest_symbol=backtest.get("symbol"),
        backtest_template=backtest.get("template", "rsi-oversold"),
        backtest_parameters=dict(backtest.get("parameters") or {}),
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "strategy_engine.log"),
        json_logs=bool(logging_cfg.get("json", False)),
        persistence_dir=persistence.get("dir"),
    )


class Config:
    """Unified configuration. Immutable after load, except auto_trading which the engine owns."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet",
        "symbols", "timeframe", "window_bars",
        "initial_capital", "market_tick_seconds", "signal_seconds", "risk_check_seconds", "paper_trading",
        "auto_trading", "strategies",
        "backtest_initial_capital", "backtest_position_fraction", "backtest_csv_path",
        "backtest_days", "backtest_seed", "backtest_symbol", "backtest_template", "backtest_parameters",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file", "json_logs",
        "persistence_dir",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = True,
        symbols: Optional[List[str]] = None,
        timeframe: str = "1m",
        window_bars: int = 200,
        initial_capital: float = 10000.0,
        market_tick_seconds: float = 1.0,
        signal_seconds: float = 5.0,
        risk_check_seconds: float = 10.0,
        paper_trading: bool = True,
        auto_trading: Optional[AutoTradingSettings] = None,
        strategies: Optional[List[StrategyConfig]] = None,
        backtest_initial_capital: float = 10000.0,
        backtest_position_fraction: float = 0.10,
        backtest_csv_path: Optional[str] = None,
        backtest_days: int = 365,
        backtest_seed: int = 42,
        backtest_symbol: Optional[str] = None,
        backtest_template: str = "rsi-oversold",
        backtest_parameters: Optional[Dict[str, Any]] = None,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "strategy_engine.log",
        json_logs: bool = False,
        persistence_dir: Optional[str] = None,
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.symbols = symbols or ["BTCUSDT"]
        self.timeframe = timeframe
        self.window_bars = window_bars
        self.initial_capital = initial_capital
        self.market_tick_seconds = market_tick_seconds
        self.signal_seconds = signal_seconds
        self.risk_check_seconds = risk_check_seconds
        self.paper_trading = paper_trading
        self.auto_trading = auto_trading or AutoTradingSettings()
        self.strategies = strategies or []
        self.backtest_initial_capital = backtest_initial_capital
        self.backtest_position_fraction = backtest_position_fraction
        self.backtest_csv_path = backtest_csv_path
        self.backtest_days = backtest_days
        self.backtest_seed = backtest_seed
        self.backtest_symbol = backtest_symbol
        self.backtest_template = backtest_template
        self.backtest_parameters = backtest_parameters or {}
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
        self.json_logs = json_logs
        self.persistence_dir = persistence_dir
