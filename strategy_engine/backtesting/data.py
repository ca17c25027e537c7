"""
Historical data for backtests: OHLCV CSV loading and a seeded synthetic random walk.
"""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from strategy_engine.core.types import OHLCV_COLUMNS
from strategy_engine.utils.timeframes import timeframe_minutes

BASE_PRICES = {"BTC": 40000.0, "ETH": 2500.0, "ADA": 0.5, "SOL": 25.0, "DOT": 7.0}


def load_price_csv(path: Path) -> pd.DataFrame:
    """Read OHLCV CSV (a `time`, `date` or `timestamp` column plus open/high/low/close/volume)."""
    df = pd.read_csv(path)
    df.columns = [c.strip().lower() for c in df.columns]
    for alias in ("date", "timestamp", "open_time"):
        if "time" not in df.columns and alias in df.columns:
            df = df.rename(columns={alias: "time"})
    missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")
    df["time"] = pd.to_datetime(df["time"])
    df[OHLCV_COLUMNS[1:]] = df[OHLCV_COLUMNS[1:]].astype(float)
    return df[OHLCV_COLUMNS].sort_values("time").reset_index(drop=True)


def generate_synthetic_bars(
    symbol: str,
    bars: int = 365,
    timeframe: str = "1d",
    seed: int = 42,
    start: Optional[datetime] = None,
) -> pd.DataFrame:
    """Reproducible random-walk OHLCV (about 3% volatility per bar) for demos without market data."""
    rng = np.random.default_rng(seed)
    base = next((p for key, p in BASE_PRICES.items() if key in symbol.upper()), 100.0)
    step = timedelta(minutes=timeframe_minutes(timeframe))
    start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    changes = (rng.random(bars) - 0.5) * 0.03 + (rng.random(bars) - 0.5) * 0.01
    closes = base * np.cumprod(1 + changes)
    opens = np.concatenate([[base], closes[:-1]])
    spread = np.abs(closes - opens) + rng.random(bars) * opens * 0.01
    return pd.DataFrame({
        "time": [start + step * i for i in range(bars)],
        "open": opens,
        "high": np.maximum(opens, closes) + spread / 2,
        "low": np.minimum(opens, closes) - spread / 2,
        "close": closes,
        "volume": rng.random(bars) * 1_000_000 + 500_000,
    })
