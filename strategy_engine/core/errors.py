"""Engine exceptions."""


class StrategyEngineError(Exception):
    """Base class for engine errors."""


class UnknownStrategyTemplate(StrategyEngineError):
    """Template id has no signal rule."""

    def __init__(self, template_id: str):
        super().__init__(f"Unknown strategy template: {template_id!r}")
        self.template_id = template_id


class StrategyParameterError(StrategyEngineError, ValueError):
    """Invalid parameter name or value for a template."""


class UnsupportedAggregationMethod(StrategyEngineError, ValueError):
    def __init__(self, method: str):
        super().__init__(f"Signal aggregation method not supported: {method!r}")
        self.method = method


class SettingsError(StrategyEngineError, ValueError):
    """Rejected auto-trading settings update."""


class ExecutionError(StrategyEngineError):
    """Order could not be placed."""
