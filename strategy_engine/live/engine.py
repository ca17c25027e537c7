"""
Live trading engine: market tick (mark-to-market, SL/TP), signal generation + aggregation + auto-execution,
periodic risk check. One instance owns its positions, signals and settings; collaborators are injected.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pandas as pd

from strategy_engine.core.config import AutoTradingSettings
from strategy_engine.core.types import (
    OrderRequest,
    Position,
    PositionSide,
    RiskMetrics,
    Signal,
    SignalAction,
    SignalMetadata,
    StrategyConfig,
)
from strategy_engine.execution.base import MarketDataFeed, OrderExecutor, OrderResult
from strategy_engine.indicators.technical import rsi, volatility_confidence
from strategy_engine.live.aggregation import AggregatedSignal, aggregate_signals
from strategy_engine.live.scheduler import Clock, Scheduler, SystemClock
from strategy_engine.notifications.base import Alert, AlertKind, AlertPriority, LogNotifier, Notifier
from strategy_engine.persistence import NullPersistence, Persistence
from strategy_engine.risk.manager import RiskManager
from strategy_engine.strategies.base import BaseStrategy
from strategy_engine.strategies.registry import create_strategy

logger = logging.getLogger("strategy_engine.live")

MARKET_TICK = "market_tick"
SIGNAL_GENERATION = "signal_generation"
RISK_CHECK = "risk_check"


class TradingEngine:
    def __init__(
        self,
        feed: MarketDataFeed,
        executor: OrderExecutor,
        settings: Optional[AutoTradingSettings] = None,
        strategies: Optional[List[StrategyConfig]] = None,
        symbols: Optional[List[str]] = None,
        clock: Optional[Clock] = None,
        persistence: Optional[Persistence] = None,
        notifier: Optional[Notifier] = None,
        timeframe: str = "1m",
        window_bars: int = 200,
        initial_capital: float = 10000.0,
        market_tick_seconds: float = 1.0,
        signal_seconds: float = 5.0,
        risk_check_seconds: float = 10.0,
    ):
        self.feed = feed
        self.executor = executor
        self.symbols = [s.upper() for s in (symbols or ["BTCUSDT"])]
        self.clock = clock or SystemClock()
        self.persistence = persistence or NullPersistence()
        self.notifier = notifier or LogNotifier()
        self.timeframe = timeframe
        self.window_bars = window_bars
        self.intervals = {
            MARKET_TICK: market_tick_seconds,
            SIGNAL_GENERATION: signal_seconds,
            RISK_CHECK: risk_check_seconds,
        }
        self.settings = (settings or AutoTradingSettings()).copy().validate()
        self.risk = RiskManager(self.settings, initial_capital)
        self.scheduler = Scheduler(self.clock)
        self.latest_risk_metrics: Optional[RiskMetrics] = None
        self.orphaned_orders: List[OrderRequest] = []
        self._strategies: Dict[str, Tuple[StrategyConfig, BaseStrategy]] = {}
        self._windows: Dict[str, pd.DataFrame] = {}
        self._active_signals: Dict[Tuple[str, str], Signal] = {}
        self._aggregates: Dict[str, AggregatedSignal] = {}
        self._inflight: Dict[str, OrderRequest] = {}
        for config in strategies or []:
            self.add_strategy(config)

    # --- lifecycle ---

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        if self.running:
            return
        self.orphaned_orders = []
        self.scheduler.every(MARKET_TICK, self.intervals[MARKET_TICK], self.market_tick)
        self.scheduler.every(SIGNAL_GENERATION, self.intervals[SIGNAL_GENERATION], self.generate_signals)
        self.scheduler.every(RISK_CHECK, self.intervals[RISK_CHECK], self.check_risk)
        self.scheduler.start()
        logger.info(
            "Engine started: symbols=%s strategies=%d auto_trading=%s",
            ",".join(self.symbols), len(self._strategies), self.settings.enabled,
        )

    async def run(self, tick: float = 0.1) -> None:
        """Start and drive the scheduler until stop()."""
        self.start()
        await self.scheduler.run_forever(tick)

    def stop(self) -> List[OrderRequest]:
        """
        Halt all jobs. Orders already submitted are not cancelled: they are reported as orphaned,
        and a late fill is still applied to the positions.
        """
        self.scheduler.stop()
        self.orphaned_orders = list(self._inflight.values())
        if self.orphaned_orders:
            ids = [o.id for o in self.orphaned_orders]
            logger.warning("Engine stopped with %d order(s) in flight: %s", len(ids), ", ".join(ids))
            self._notify(Alert(
                kind=AlertKind.ORPHANED_ORDERS,
                title="Orders In Flight At Stop",
                message=f"{len(ids)} order(s) were still pending when the engine stopped",
                priority=AlertPriority.HIGH,
                data={"orders": [{"id": o.id, "symbol": o.symbol, "side": o.side, "quantity": o.quantity}
                                 for o in self.orphaned_orders]},
            ))
        logger.info("Engine stopped")
        return self.orphaned_orders

    # --- strategies ---

    def add_strategy(self, config: Union[StrategyConfig, Mapping[str, Any]]) -> StrategyConfig:
        """Register a strategy. Raises UnknownStrategyTemplate / StrategyParameterError."""
        if not isinstance(config, StrategyConfig):
            config = StrategyConfig.from_dict(dict(config))
        else:
            config = replace(config, parameters=dict(config.parameters))
        if config.id in self._strategies:
            raise ValueError(f"Strategy id already registered: {config.id}")
        rule = create_strategy(config.template_id, config.parameters)
        self._strategies[config.id] = (config, rule)
        logger.info("Strategy %s registered (template=%s)", config.id, config.template_id)
        return config

    def remove_strategy(self, strategy_id: str) -> bool:
        removed = self._strategies.pop(strategy_id, None)
        for key in [k for k in self._active_signals if k[1] == strategy_id]:
            del self._active_signals[key]
        return removed is not None

    def set_strategy_enabled(self, strategy_id: str, enabled: bool) -> None:
        if strategy_id not in self._strategies:
            raise KeyError(f"Unknown strategy id: {strategy_id}")
        self._strategies[strategy_id][0].enabled = enabled

    def strategies(self) -> List[StrategyConfig]:
        return [config for config, _ in self._strategies.values()]

    # --- settings ---

    def update_settings(self, changes: Union[AutoTradingSettings, Mapping[str, Any]]) -> AutoTradingSettings:
        """
        Explicit user action. Rejected updates raise SettingsError and leave settings untouched.
        Setting enabled=True clears an engaged kill switch.
        """
        if isinstance(changes, AutoTradingSettings):
            new = changes.copy().validate()
            re_enable = new.enabled
        else:
            new = self.settings.with_updates(dict(changes))
            re_enable = "enabled" in changes and new.enabled
        self.settings = new
        self.risk.settings = new
        if re_enable:
            self.risk.release_kill_switch()
        logger.info("Auto-trading settings updated (enabled=%s, method=%s)", new.enabled, new.signal_aggregation.method)
        return new

    # --- queries ---

    def active_signals(self) -> List[Signal]:
        return list(self._active_signals.values())

    def positions(self) -> List[Position]:
        return self.risk.positions.values()

    def latest_aggregate(self, symbol: str) -> Optional[AggregatedSignal]:
        return self._aggregates.get(symbol.upper())

    def pending_orders(self) -> List[OrderRequest]:
        return list(self._inflight.values())

    # --- jobs ---

    async def _fetch_window(self, symbol: str) -> Optional[pd.DataFrame]:
        try:
            df = await self.feed.get_klines(symbol, self.timeframe, self.window_bars)
        except Exception:
            logger.exception("Market data fetch failed for %s", symbol)
            return None
        if df is None or df.empty:
            return None
        self._windows[symbol] = df
        return df

    async def market_tick(self) -> None:
        """Refresh bar windows, mark positions to market, fire stop-loss / take-profit."""
        for symbol in self.symbols:
            df = await self._fetch_window(symbol)
            if df is None:
                continue
            price = float(df["close"].iloc[-1])
            position = self.risk.mark_to_market(symbol, price)
            if position is None or self._has_inflight(symbol):
                continue
            if self.risk.should_trigger_stop_loss(position, price):
                reason = "stop_loss"
            elif self.risk.should_trigger_take_profit(position, price):
                reason = "take_profit"
            else:
                continue
            logger.info("%s triggered for %s %s at %.4f", reason, position.side.value, symbol, price)
            close_side = "sell" if position.side == PositionSide.LONG else "buy"
            await self._submit(self._order(symbol, close_side, position.quantity, price, [], reason))

    def _evaluate(self, config: StrategyConfig, rule: BaseStrategy, symbol: str, df: pd.DataFrame) -> Signal:
        point = rule.latest_signal(df)
        now = self.clock.utcnow()
        if point.action == SignalAction.NONE:
            return Signal(symbol, SignalAction.NONE, 0.0, point.price, now, config.id,
                          SignalMetadata(reasoning=point.reason or "no signal"))
        side = PositionSide.from_action(point.action)
        closes = df["close"].to_numpy(dtype=float)
        rsi_values = rsi(closes, 14)
        indicators = {"rsi": float(rsi_values[-1])} if len(rsi_values) else {}
        metadata = SignalMetadata(
            stop_loss=self.risk.stop_loss_price(side, point.price),
            take_profit=self.risk.take_profit_price(side, point.price),
            reasoning=point.reason,
            indicators=indicators,
        )
        return Signal(symbol, point.action, volatility_confidence(closes), point.price, now, config.id, metadata)

    async def generate_signals(self) -> None:
        """Evaluate every enabled strategy per symbol, aggregate, and auto-trade when allowed."""
        for symbol in self.symbols:
            df = self._windows.get(symbol)
            if df is None:
                df = await self._fetch_window(symbol)
                if df is None:
                    continue
            actionable: List[Signal] = []
            for config, rule in list(self._strategies.values()):
                if not config.enabled:
                    continue
                try:
                    signal = self._evaluate(config, rule, symbol, df)
                except Exception:
                    logger.exception("Strategy %s failed on %s", config.id, symbol)
                    continue
                key = (symbol, config.id)
                if signal.action == SignalAction.NONE:
                    self._active_signals.pop(key, None)
                    continue
                self._active_signals[key] = signal
                actionable.append(signal)
                self._save_signal(signal)
                if self.settings.notifications.signals:
                    self._notify(Alert(
                        kind=AlertKind.SIGNAL,
                        title=f"{signal.action.value.upper()} signal: {symbol}",
                        message=f"{config.id} at {signal.price:.4f} (confidence {signal.confidence:.2f})",
                        priority=AlertPriority.LOW,
                        data=signal.to_dict(),
                    ))
            aggregate = aggregate_signals(actionable, self.settings.signal_aggregation)
            self._aggregates[symbol] = aggregate
            if (
                aggregate.action != SignalAction.NONE
                and self.risk.auto_trading_enabled
                and aggregate.confidence > self.settings.confidence_threshold
            ):
                await self._execute_aggregate(symbol, aggregate)

    async def _execute_aggregate(self, symbol: str, aggregate: AggregatedSignal) -> Optional[OrderResult]:
        if self._has_inflight(symbol):
            logger.debug("Order already in flight for %s, skipping aggregate", symbol)
            return None
        signal = Signal(symbol, aggregate.action, aggregate.confidence, aggregate.price, self.clock.utcnow(), "aggregate")
        check = self.risk.validate_signal(signal)
        if not check.allowed:
            logger.info("Aggregate %s on %s rejected: %s", aggregate.action.value, symbol, check.reason)
            return None
        side = "buy" if aggregate.action == SignalAction.BUY else "sell"
        reason = f"{self.settings.signal_aggregation.method} aggregate of {aggregate.signal_count} signal(s)"
        order = self._order(symbol, side, check.quantity + check.close_quantity, aggregate.price,
                            aggregate.strategy_ids, reason)
        return await self._submit(order)

    async def check_risk(self) -> RiskMetrics:
        metrics = self.risk.calculate_risk_metrics(self.clock.utcnow().date())
        self.latest_risk_metrics = metrics
        alert = self.risk.check_risk_limits(metrics)
        if alert is not None:
            self._notify(alert)
            try:
                self.persistence.save_risk_alert(alert)
            except Exception:
                logger.exception("Failed to persist risk alert")
        return metrics

    # --- execution ---

    def _order(self, symbol: str, side: str, quantity: float, price: float, strategy_ids: List[str], reason: str) -> OrderRequest:
        return OrderRequest(
            symbol=symbol,
            side=side,
            quantity=quantity,
            type=self.settings.execution.order_type,
            time_in_force=self.settings.execution.time_in_force,
            strategy_ids=list(strategy_ids),
            reason=reason,
            price=price,
        )

    def _has_inflight(self, symbol: str) -> bool:
        return any(o.symbol == symbol for o in self._inflight.values())

    async def _submit(self, order: OrderRequest) -> OrderResult:
        """Submit once; failures alert and are not retried. Fills are applied even after stop()."""
        self._inflight[order.id] = order
        try:
            result = await self.executor.submit_order(order)
        except Exception as e:
            logger.exception("Order %s for %s raised", order.id, order.symbol)
            result = OrderResult(success=False, message=str(e))
        finally:
            self._inflight.pop(order.id, None)

        if not result.success:
            logger.error("Order %s %s %s failed: %s", order.side, order.quantity, order.symbol, result.message)
            self._notify(Alert(
                kind=AlertKind.TRADE_FAILED,
                title=f"Trade Failed: {order.symbol}",
                message=f"{order.side.upper()} {order.quantity:.6f} {order.symbol}: {result.message}",
                priority=AlertPriority.HIGH,
                data={"order_id": order.id, "reason": order.reason},
            ))
            return result

        price = result.avg_price or order.price
        quantity = result.quantity or order.quantity
        realized = self.risk.apply_fill(order.symbol, order.position_side, quantity, price)
        logger.info("Filled %s %s %s @ %.4f (%s) realized=%.2f", order.side, quantity, order.symbol, price,
                    order.reason, realized)
        self._save_trade({
            "order_id": order.id,
            "exchange_order_id": result.order_id,
            "symbol": order.symbol,
            "side": order.side,
            "quantity": quantity,
            "price": price,
            "reason": order.reason,
            "strategy_ids": list(order.strategy_ids),
            "realized_pnl": realized,
            "timestamp": self.clock.utcnow().isoformat(),
        })
        if self.settings.notifications.trades:
            self._notify(Alert(
                kind=AlertKind.TRADE_EXECUTED,
                title=f"Trade Executed: {order.symbol}",
                message=f"{order.side.upper()} {quantity:.6f} {order.symbol} @ {price:.4f}",
                priority=AlertPriority.MEDIUM,
                data={"order_id": result.order_id, "reason": order.reason, "realized_pnl": realized},
            ))
        return result

    # --- collaborators ---

    def _notify(self, alert: Alert) -> None:
        try:
            self.notifier.notify(alert)
        except Exception:
            logger.exception("Notifier failed for alert %s", alert.kind.value)

    def _save_signal(self, signal: Signal) -> None:
        try:
            self.persistence.save_signal(signal)
        except Exception:
            logger.exception("Failed to persist signal %s", signal.id)

    def _save_trade(self, trade: Dict[str, Any]) -> None:
        try:
            self.persistence.save_trade(trade)
        except Exception:
            logger.exception("Failed to persist trade %s", trade["order_id"])
