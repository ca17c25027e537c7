"""Template registry: template id -> signal rule. Unknown ids are an error, never a fallback."""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Type

from strategy_engine.core.errors import UnknownStrategyTemplate
from strategy_engine.strategies.base import BaseStrategy
from strategy_engine.strategies.bollinger import BollingerBandsStrategy
from strategy_engine.strategies.ma_crossover import MovingAverageCrossoverStrategy
from strategy_engine.strategies.macd_momentum import MacdMomentumStrategy
from strategy_engine.strategies.rsi_oversold import RsiOversoldStrategy
from strategy_engine.strategies.volume_spike import VolumeSpikeStrategy

TEMPLATES: Dict[str, Type[BaseStrategy]] = {
    cls.template_id: cls
    for cls in (
        RsiOversoldStrategy,
        MovingAverageCrossoverStrategy,
        BollingerBandsStrategy,
        MacdMomentumStrategy,
        VolumeSpikeStrategy,
    )
}


def create_strategy(template_id: str, parameters: Optional[Mapping[str, Any]] = None) -> BaseStrategy:
    """Instantiate the rule for template_id. Raises UnknownStrategyTemplate."""
    try:
        cls = TEMPLATES[template_id]
    except KeyError:
        raise UnknownStrategyTemplate(template_id) from None
    return cls(parameters)


def list_templates() -> List[Dict[str, Any]]:
    return [
        {"id": cls.template_id, "name": cls.name, "description": cls.description, "parameters": dict(cls.defaults)}
        for cls in TEMPLATES.values()
    ]
