"""Structured alerts and the notification sink interface. Delivery is fire-and-forget."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

logger = logging.getLogger("strategy_engine.notifications")


class AlertKind(str, Enum):
    SYSTEM = "system"
    SIGNAL = "signal"
    TRADE_EXECUTED = "trade_executed"
    TRADE_FAILED = "trade_failed"
    RISK_BREACH = "risk_breach"
    ORPHANED_ORDERS = "orphaned_orders"


class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Alert:
    kind: AlertKind
    title: str
    message: str
    priority: AlertPriority = AlertPriority.MEDIUM
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "message": self.message,
            "priority": self.priority.value,
            "data": self.data,
            "created_at": self.created_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"[{self.priority.value.upper()}] {self.title}: {self.message}"


class Notifier(ABC):
    """Notification sink for alerts (signals, trades, risk breaches)."""

    @abstractmethod
    def notify(self, alert: Alert) -> None:
        pass


class LogNotifier(Notifier):
    """Writes alerts to the engine log."""

    _LEVELS = {
        AlertPriority.LOW: logging.DEBUG,
        AlertPriority.MEDIUM: logging.INFO,
        AlertPriority.HIGH: logging.WARNING,
        AlertPriority.CRITICAL: logging.CRITICAL,
    }

    def notify(self, alert: Alert) -> None:
        logger.log(self._LEVELS[alert.priority], "%s", alert)


class MemoryNotifier(Notifier):
    """Keeps alerts in a list (UI polling, tests)."""

    def __init__(self) -> None:
        self.alerts: List[Alert] = []

    def notify(self, alert: Alert) -> None:
        self.alerts.append(alert)

    def of_kind(self, kind: AlertKind) -> List[Alert]:
        return [a for a in self.alerts if a.kind == kind]
