"""
Persistence collaborators for signals, executed trades, backtest results and risk alerts.
Calls are made from the engine loop; implementations may raise, the engine logs and carries on.
"""

from __future__ import annotations
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List

from strategy_engine.core.types import Signal
from strategy_engine.notifications.base import Alert

logger = logging.getLogger("strategy_engine.persistence")


class Persistence(ABC):
    @abstractmethod
    def save_signal(self, signal: Signal) -> None:
        pass

    @abstractmethod
    def save_trade(self, trade: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_backtest(self, result: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def save_risk_alert(self, alert: Alert) -> None:
        pass


class NullPersistence(Persistence):
    """Discards everything."""

    def save_signal(self, signal: Signal) -> None:
        pass

    def save_trade(self, trade: Dict[str, Any]) -> None:
        pass

    def save_backtest(self, result: Dict[str, Any]) -> None:
        pass

    def save_risk_alert(self, alert: Alert) -> None:
        pass


class JsonFilePersistence(Persistence):
    """
    Appends one JSON object per line to signals.jsonl, trades.jsonl, backtests.jsonl and risk_alerts.jsonl
    under `directory`.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _append(self, name: str, record: Dict[str, Any]) -> None:
        path = self.directory / name
        with path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, ensure_ascii=False, sort_keys=True, default=str) + "\n")

    def read(self, name: str) -> List[Dict[str, Any]]:
        path = self.directory / name
        if not path.exists():
            return []
        with path.open("r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]

    def save_signal(self, signal: Signal) -> None:
        self._append("signals.jsonl", signal.to_dict())

    def save_trade(self, trade: Dict[str, Any]) -> None:
        self._append("trades.jsonl", trade)

    def save_backtest(self, result: Dict[str, Any]) -> None:
        self._append("backtests.jsonl", result)
        logger.info("Saved backtest result to %s", self.directory / "backtests.jsonl")

    def save_risk_alert(self, alert: Alert) -> None:
        self._append("risk_alerts.jsonl", alert.to_dict())
