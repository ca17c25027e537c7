"""Unit tests for persistence, notifications and execution adapters."""

import asyncio
import json

import pandas as pd
import pytest
from binance.exceptions import BinanceAPIException

from strategy_engine.backtesting import generate_synthetic_bars
from strategy_engine.core.errors import ExecutionError
from strategy_engine.core.types import OrderRequest, Signal, SignalAction
from strategy_engine.execution import BinanceClient, LotFilter, PaperExecutor, ReplayFeed, retry_on_rate_limit
from strategy_engine.notifications import Alert, AlertKind, AlertPriority, MemoryNotifier, TelegramNotifier
from strategy_engine.persistence import JsonFilePersistence


class FakeBinance:
    """Stands in for binance.client.Client."""

    def __init__(self):
        self.orders = []

    def futures_klines(self, symbol, interval, limit):
        return [
            [1704067200000 + i * 60000, "1.0", "2.0", "0.5", str(1.5 + i), "10",
             0, "0", 1, "0", "0", "0"]
            for i in range(limit)
        ]

    def futures_exchange_info(self):
        return {"symbols": [{"symbol": "BTCUSDT", "filters": [
            {"filterType": "LOT_SIZE", "minQty": "0.001", "stepSize": "0.001"},
        ]}]}

    def futures_create_order(self, **kwargs):
        self.orders.append(kwargs)
        return {"orderId": 42, "avgPrice": "101.5", "executedQty": kwargs["quantity"]}


def _http_error(status):
    response = type("Response", (), {"status_code": status, "text": json.dumps({"code": -1003, "msg": "slow down"})})()
    return BinanceAPIException(response, status, response.text)


def test_json_file_persistence(tmp_path):
    store = JsonFilePersistence(str(tmp_path / "data"))
    signal = Signal("BTCUSDT", SignalAction.BUY, 0.8, 100.0, pd.Timestamp("2024-01-01", tz="UTC"), "rsi")
    store.save_signal(signal)
    store.save_risk_alert(Alert(AlertKind.RISK_BREACH, "Breach", "too much", AlertPriority.CRITICAL))
    store.save_backtest({"final_capital": 10100.0})
    store.save_trade({"order_id": "abc", "side": "sell", "price": 99.5})
    assert store.read("signals.jsonl")[0]["action"] == "buy"
    assert store.read("risk_alerts.jsonl")[0]["priority"] == "critical"
    assert store.read("backtests.jsonl") == [{"final_capital": 10100.0}]
    assert store.read("trades.jsonl") == [{"order_id": "abc", "price": 99.5, "side": "sell"}]
    assert store.read("missing.jsonl") == []


def test_memory_notifier_filters_by_kind():
    notifier = MemoryNotifier()
    notifier.notify(Alert(AlertKind.SIGNAL, "s", "m"))
    notifier.notify(Alert(AlertKind.TRADE_FAILED, "f", "m", AlertPriority.HIGH))
    assert len(notifier.of_kind(AlertKind.TRADE_FAILED)) == 1
    assert str(notifier.alerts[1]) == "[HIGH] f: m"


def test_telegram_notifier_respects_priority(monkeypatch):
    sent = []
    monkeypatch.setattr("strategy_engine.notifications.telegram.send_telegram",
                        lambda text, token, chat: sent.append(text) or True)
    notifier = TelegramNotifier("token", "chat", min_priority=AlertPriority.HIGH)
    notifier.notify(Alert(AlertKind.SIGNAL, "low", "m", AlertPriority.LOW))
    notifier.notify(Alert(AlertKind.RISK_BREACH, "crit", "m", AlertPriority.CRITICAL))
    assert sent == ["[CRITICAL] crit: m"]


def test_lot_filter_rounding():
    lot = LotFilter.from_symbol_info({"filters": [{"filterType": "LOT_SIZE", "minQty": "0.01", "stepSize": "0.01"}]})
    assert lot.round(1.2345) == pytest.approx(1.23)
    assert lot.round(0.005) == 0.0
    assert LotFilter.from_symbol_info(None) == LotFilter()


def test_retry_on_rate_limit(monkeypatch):
    monkeypatch.setattr("strategy_engine.execution.binance.time.sleep", lambda s: None)
    attempts = []

    @retry_on_rate_limit(max_retries=3, base_delay=0.01)
    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise _http_error(429)
        return "ok"

    assert flaky() == "ok"
    assert len(attempts) == 3


def test_retry_gives_up_on_other_errors():
    @retry_on_rate_limit(max_retries=3)
    def broken():
        raise _http_error(400)

    with pytest.raises(BinanceAPIException):
        broken()


def test_binance_client_klines_and_orders():
    fake = FakeBinance()
    client = BinanceClient("k", "s", testnet=True, client=fake)

    df = asyncio.run(client.get_klines("BTCUSDT", "1m", limit=5))
    assert list(df.columns) == ["time", "open", "high", "low", "close", "volume"]
    assert df["close"].iloc[-1] == pytest.approx(5.5)

    order = OrderRequest("BTCUSDT", "buy", 0.12345, price=100.0)
    result = asyncio.run(client.submit_order(order))
    assert result.success
    assert result.avg_price == pytest.approx(101.5)
    assert fake.orders[0]["side"] == "BUY"
    assert fake.orders[0]["quantity"] == "0.123"

    with pytest.raises(ExecutionError):
        asyncio.run(client.submit_order(OrderRequest("BTCUSDT", "buy", 1.0, type="limit")))


def test_replay_feed_and_paper_executor():
    df = generate_synthetic_bars("BTCUSDT", bars=10, timeframe="1m")
    feed = ReplayFeed({"BTCUSDT": df}, warmup=5)
    first = asyncio.run(feed.get_klines("BTCUSDT", "1m", 3))
    second = asyncio.run(feed.get_klines("BTCUSDT", "1m", 100))
    assert len(first) == 3
    assert first["close"].iloc[-1] == df["close"].iloc[4]
    assert len(second) == 6
    assert feed.last_price("BTCUSDT") == df["close"].iloc[6]

    executor = PaperExecutor(feed, fail_symbols=["ETHUSDT"])
    filled = asyncio.run(executor.submit_order(OrderRequest("BTCUSDT", "sell", 1.0)))
    assert filled.success and filled.avg_price == df["close"].iloc[6]
    rejected = asyncio.run(executor.submit_order(OrderRequest("ETHUSDT", "buy", 1.0, price=10.0)))
    assert not rejected.success
    assert len(executor.orders) == 2
