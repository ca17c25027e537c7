"""
Core data types for bars, signals, positions, trades, and orders.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import uuid

import pandas as pd


OHLCV_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


class SignalAction(str, Enum):
    BUY = "buy"
    SHORT = "short"  # also used as "sell"
    NONE = "none"


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"

    @classmethod
    def from_action(cls, action: SignalAction) -> "PositionSide":
        if action == SignalAction.BUY:
            return cls.LONG
        if action == SignalAction.SHORT:
            return cls.SHORT
        raise ValueError(f"No position side for action {action.value!r}")


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class PriceBar:
    """OHLCV candle. Immutable once recorded."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


def bars_to_frame(bars: Iterable[PriceBar]) -> pd.DataFrame:
    """Convert PriceBars to the OHLCV DataFrame used across the engine."""
    rows = [
        {"time": b.timestamp, "open": b.open, "high": b.high, "low": b.low, "close": b.close, "volume": b.volume}
        for b in bars
    ]
    return pd.DataFrame(rows, columns=OHLCV_COLUMNS)


@dataclass(frozen=True)
class SignalPoint:
    """One bar of a signal rule's output."""
    timestamp: Any
    action: SignalAction
    price: float
    index: int
    reason: str = ""


@dataclass(frozen=True)
class SignalMetadata:
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    reasoning: str = ""
    indicators: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Signal:
    """Trading recommendation from one strategy (or an aggregate) for one symbol."""
    symbol: str
    action: SignalAction
    confidence: float
    price: float
    timestamp: datetime
    strategy_id: str = ""
    metadata: SignalMetadata = field(default_factory=SignalMetadata)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "strategy_id": self.strategy_id,
            "action": self.action.value,
            "confidence": self.confidence,
            "price": self.price,
            "timestamp": _iso(self.timestamp),
            "stop_loss": self.metadata.stop_loss,
            "take_profit": self.metadata.take_profit,
            "reasoning": self.metadata.reasoning,
        }


@dataclass
class Position:
    """Open position state. Marked to market on every tick."""
    symbol: str
    side: PositionSide
    quantity: float
    entry_price: float
    current_price: float = 0.0
    unrealized_pnl: float = 0.0

    def __post_init__(self) -> None:
        if not self.current_price:
            self.current_price = self.entry_price

    def pnl_at(self, price: float) -> float:
        if self.side == PositionSide.LONG:
            return (price - self.entry_price) * self.quantity
        return (self.entry_price - price) * self.quantity

    def mark(self, price: float) -> None:
        self.current_price = price
        self.unrealized_pnl = self.pnl_at(price)

    @property
    def market_value(self) -> float:
        return abs(self.quantity * self.current_price)


@dataclass
class Trade:
    """Backtest trade. Open until an opposing or terminal signal closes it."""
    id: str
    entry_date: Any
    entry_price: float
    side: PositionSide
    quantity: int
    exit_date: Any = None
    exit_price: Optional[float] = None
    pnl: Optional[float] = None
    pnl_percent: Optional[float] = None
    status: TradeStatus = TradeStatus.OPEN
    exit_reason: str = ""  # "signal_reverse" | "end_of_data"

    def unrealized_pnl(self, price: float) -> float:
        if self.side == PositionSide.LONG:
            return (price - self.entry_price) * self.quantity
        return (self.entry_price - price) * self.quantity

    def close(self, date: Any, price: float, reason: str) -> float:
        """Close at price and return realized PnL."""
        self.exit_date = date
        self.exit_price = price
        self.pnl = self.unrealized_pnl(price)
        self.pnl_percent = self.pnl / (self.entry_price * self.quantity) * 100
        self.status = TradeStatus.CLOSED
        self.exit_reason = reason
        return self.pnl

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_date": _iso(self.entry_date),
            "entry_price": self.entry_price,
            "exit_date": _iso(self.exit_date),
            "exit_price": self.exit_price,
            "side": self.side.value,
            "quantity": self.quantity,
            "pnl": self.pnl,
            "pnl_percent": self.pnl_percent,
            "status": self.status.value,
            "exit_reason": self.exit_reason,
        }


@dataclass
class StrategyConfig:
    """User-owned strategy configuration. template_id selects the signal rule."""
    id: str
    template_id: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "StrategyConfig":
        template_id = data.get("template_id") or data.get("template", "")
        return cls(
            id=str(data.get("id") or template_id),
            template_id=template_id,
            parameters=dict(data.get("parameters") or {}),
            enabled=bool(data.get("enabled", True)),
            name=data.get("name", ""),
        )


@dataclass(frozen=True)
class RiskMetrics:
    portfolio_value: float
    total_exposure: float
    daily_pnl: float
    max_drawdown: float
    sharpe_ratio: float
    win_rate: float
    profit_factor: float


@dataclass(frozen=True)
class OrderRequest:
    """Order handed to the execution collaborator."""
    symbol: str
    side: str  # "buy" | "sell"
    quantity: float
    type: str = "market"
    time_in_force: str = "day"
    strategy_ids: List[str] = field(default_factory=list)
    reason: str = ""
    price: Optional[float] = None  # reference price at decision time
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def position_side(self) -> PositionSide:
        return PositionSide.LONG if self.side == "buy" else PositionSide.SHORT


def _iso(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
