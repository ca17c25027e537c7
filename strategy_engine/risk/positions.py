"""
Keyed store of live positions (symbol -> Position). At most one position per symbol.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterator, List, Optional

from strategy_engine.core.types import Position, PositionSide

logger = logging.getLogger("strategy_engine.risk.positions")


class PositionBook:
    """Owned by one engine instance; mutated only from its scheduler callbacks."""

    def __init__(self) -> None:
        self._positions: Dict[str, Position] = {}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._positions.values()))

    def get(self, symbol: str) -> Optional[Position]:
        return self._positions.get(symbol)

    def values(self) -> List[Position]:
        return list(self._positions.values())

    def insert(self, position: Position) -> Position:
        if position.symbol in self._positions:
            raise ValueError(f"Position already open for {position.symbol}")
        if position.quantity <= 0:
            raise ValueError("Position quantity must be > 0")
        self._positions[position.symbol] = position
        return position

    def update(self, symbol: str, quantity: Optional[float] = None, entry_price: Optional[float] = None) -> Position:
        position = self._positions[symbol]
        if quantity is not None:
            position.quantity = quantity
        if entry_price is not None:
            position.entry_price = entry_price
        position.mark(position.current_price)
        return position

    def remove(self, symbol: str) -> Position:
        return self._positions.pop(symbol)

    def mark(self, symbol: str, price: float) -> Optional[Position]:
        position = self._positions.get(symbol)
        if position is not None:
            position.mark(price)
        return position

    def apply_fill(self, symbol: str, side: PositionSide, quantity: float, price: float) -> float:
        """
        Net a fill into the book and return realized PnL.
        Same side: grows the position at the average entry price.
        Opposite side: closes up to the open quantity; any remainder opens a new position.
        """
        if quantity <= 0:
            return 0.0
        current = self._positions.get(symbol)
        if current is None:
            self.insert(Position(symbol=symbol, side=side, quantity=quantity, entry_price=price))
            return 0.0
        if current.side == side:
            total = current.quantity + quantity
            avg = (current.entry_price * current.quantity + price * quantity) / total
            current.current_price = price
            self.update(symbol, quantity=total, entry_price=avg)
            return 0.0

        closed = min(quantity, current.quantity)
        realized = Position(symbol, current.side, closed, current.entry_price).pnl_at(price)
        remaining = current.quantity - closed
        if remaining > 0:
            current.current_price = price
            self.update(symbol, quantity=remaining)
        else:
            self.remove(symbol)
            logger.info("Closed %s %s qty=%s at %.4f pnl=%.2f", current.side.value, symbol, closed, price, realized)
        leftover = quantity - closed
        if leftover > 0:
            self.insert(Position(symbol=symbol, side=side, quantity=leftover, entry_price=price))
        return realized
