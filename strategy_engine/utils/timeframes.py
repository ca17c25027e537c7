"""Bar interval strings ('30s', '5m', '1h', '1d', '1w') to minutes / seconds."""

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def timeframe_seconds(tf: str) -> int:
    """Convert an interval such as '5m' to seconds."""
    tf = tf.strip().lower()
    unit = tf[-1:]
    if unit not in _UNIT_SECONDS or not tf[:-1].isdigit() or int(tf[:-1]) <= 0:
        raise ValueError(f"Unsupported timeframe: {tf}")
    return int(tf[:-1]) * _UNIT_SECONDS[unit]


def timeframe_minutes(tf: str) -> float:
    """Convert an interval such as '1h' to minutes."""
    return timeframe_seconds(tf) / 60
