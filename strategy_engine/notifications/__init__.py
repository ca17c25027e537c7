"""Notifications: alerts and sinks (log, memory, Telegram)."""

from strategy_engine.notifications.base import (
    Alert,
    AlertKind,
    AlertPriority,
    Notifier,
    LogNotifier,
    MemoryNotifier,
)
from strategy_engine.notifications.telegram import TelegramNotifier, send_telegram

__all__ = [
    "Alert",
    "AlertKind",
    "AlertPriority",
    "Notifier",
    "LogNotifier",
    "MemoryNotifier",
    "TelegramNotifier",
    "send_telegram",
]
