"""
Combine per-strategy signals for one symbol into a single decision.
Methods: majority, unanimous, weighted (per-strategy weights).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Sequence

from strategy_engine.core.config import AGGREGATION_METHODS, SignalAggregationSettings
from strategy_engine.core.errors import UnsupportedAggregationMethod
from strategy_engine.core.types import Signal, SignalAction

_DIRECTION = {SignalAction.BUY: 1.0, SignalAction.SHORT: -1.0}


@dataclass(frozen=True)
class AggregatedSignal:
    action: SignalAction
    confidence: float
    signal_count: int
    signals: List[Signal] = field(default_factory=list)  # signals agreeing with action

    @property
    def price(self) -> float:
        return self.signals[-1].price if self.signals else 0.0

    @property
    def strategy_ids(self) -> List[str]:
        return [s.strategy_id for s in self.signals]


def _neutral(count: int) -> AggregatedSignal:
    return AggregatedSignal(action=SignalAction.NONE, confidence=0.0, signal_count=count)


def _mean_confidence(signals: Sequence[Signal]) -> float:
    return sum(s.confidence for s in signals) / len(signals)


def aggregate_signals(signals: Sequence[Signal], settings: SignalAggregationSettings) -> AggregatedSignal:
    """
    None-action signals are ignored. Fewer than minimum_signals actionable signals,
    a majority tie, disagreement under unanimous, or a zero weighted score give none.
    """
    method = settings.method
    if method not in AGGREGATION_METHODS:
        raise UnsupportedAggregationMethod(method)
    actionable = [s for s in signals if s.action != SignalAction.NONE]
    count = len(actionable)
    if count == 0 or count < settings.minimum_signals:
        return _neutral(count)

    if method == "majority":
        buys = [s for s in actionable if s.action == SignalAction.BUY]
        shorts = [s for s in actionable if s.action == SignalAction.SHORT]
        if len(buys) == len(shorts):
            return _neutral(count)
        winners = buys if len(buys) > len(shorts) else shorts
        return AggregatedSignal(winners[0].action, _mean_confidence(winners), count, winners)

    if method == "unanimous":
        if len({s.action for s in actionable}) != 1:
            return _neutral(count)
        return AggregatedSignal(actionable[0].action, _mean_confidence(actionable), count, actionable)

    # weighted
    score = 0.0
    total_weight = 0.0
    for s in actionable:
        weight = settings.weights.get(s.strategy_id, 0.0)
        score += weight * _DIRECTION[s.action] * s.confidence
        total_weight += weight
    if total_weight <= 0 or score == 0:
        return _neutral(count)
    action = SignalAction.BUY if score > 0 else SignalAction.SHORT
    winners = [s for s in actionable if s.action == action]
    return AggregatedSignal(action, abs(score) / total_weight, count, winners)
