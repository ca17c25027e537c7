"""Telegram notifications. Never log token or chat_id."""

from __future__ import annotations
import logging

import requests

from strategy_engine.notifications.base import Alert, AlertPriority, Notifier

logger = logging.getLogger("strategy_engine.notifications.telegram")


def send_telegram(text: str, bot_token: str = "", chat_id: str = "") -> bool:
    """Send message to Telegram. Returns True on success; False if not configured or on error."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    try:
        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        r = requests.post(url, json={"chat_id": chat_id, "text": text}, timeout=10)
        if r.status_code != 200:
            logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
            return False
        return True
    except requests.RequestException as e:
        logger.exception("Telegram error: %s", e)
        return False


class TelegramNotifier(Notifier):
    """Forwards alerts at or above min_priority to a Telegram chat."""

    _ORDER = [AlertPriority.LOW, AlertPriority.MEDIUM, AlertPriority.HIGH, AlertPriority.CRITICAL]

    def __init__(self, bot_token: str, chat_id: str, min_priority: AlertPriority = AlertPriority.MEDIUM):
        self._bot_token = bot_token
        self._chat_id = chat_id
        self.min_priority = min_priority

    def notify(self, alert: Alert) -> None:
        if self._ORDER.index(alert.priority) < self._ORDER.index(self.min_priority):
            return
        send_telegram(str(alert), self._bot_token, self._chat_id)
