#!/usr/bin/env python3
"""
Strategy Engine CLI: backtest | live | templates
Usage:
  python main.py backtest [--config config.yaml] [--template rsi-oversold] [--symbol SOLUSDT] [--source synthetic|csv|binance]
  python main.py live [--config config.yaml] [--binance] [--duration 60]
  python main.py templates
"""

from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from strategy_engine.backtesting import BacktestEngine, generate_synthetic_bars, load_price_csv
from strategy_engine.core.config import Config, load_config
from strategy_engine.core.errors import StrategyEngineError
from strategy_engine.core.logger import setup_logging
from strategy_engine.execution import BinanceClient, PaperExecutor, ReplayFeed
from strategy_engine.live import TradingEngine
from strategy_engine.notifications import Alert, AlertKind, LogNotifier, Notifier, TelegramNotifier
from strategy_engine.persistence import JsonFilePersistence, NullPersistence, Persistence
from strategy_engine.strategies import list_templates

logger = logging.getLogger("strategy_engine")


def _persistence(config: Config) -> Persistence:
    return JsonFilePersistence(config.persistence_dir) if config.persistence_dir else NullPersistence()


def _notifier(config: Config) -> Notifier:
    if config.telegram_bot_token and config.telegram_chat_id:
        return TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    return LogNotifier()


def _binance(config: Config) -> Optional[BinanceClient]:
    if not config.binance_api_key or not config.binance_api_secret:
        logger.error("Missing BINANCE_API_KEY or BINANCE_API_SECRET in .env")
        return None
    return BinanceClient(config.binance_api_key, config.binance_api_secret, testnet=config.use_testnet)


def _backtest_data(config: Config, symbol: str, source: str) -> Optional[pd.DataFrame]:
    if source == "csv":
        if not config.backtest_csv_path:
            logger.error("backtest.csv_path is not set in config")
            return None
        return load_price_csv(Path(config.backtest_csv_path))
    if source == "binance":
        client = _binance(config)
        if client is None:
            return None
        return asyncio.run(client.get_klines(symbol, config.timeframe, limit=1000))
    return generate_synthetic_bars(symbol, bars=config.backtest_days, timeframe="1d", seed=config.backtest_seed)


def run_backtest(args: argparse.Namespace) -> int:
    """Run one template over historical bars and print the summary."""
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, config.json_logs)
    symbol = (args.symbol or config.backtest_symbol or config.symbols[0]).upper()
    template = args.template or config.backtest_template
    df = _backtest_data(config, symbol, args.source)
    if df is None:
        return 1
    engine = BacktestEngine(config.backtest_initial_capital, config.backtest_position_fraction)
    try:
        result = engine.run(df, template, config.backtest_parameters if not args.template else None, symbol=symbol)
    except StrategyEngineError as e:
        logger.error("Backtest rejected: %s", e)
        return 1
    try:
        _persistence(config).save_backtest(result.to_dict())
    except Exception:
        logger.exception("Could not save backtest result")
    m = result.performance
    print("\n--- Backtest Results ---")
    print(f"Strategy: {result.strategy['name']} ({template}) on {symbol}, {len(df)} bars")
    print(f"Total trades: {m.total_trades} (wins: {m.winning_trades}, losses: {m.losing_trades})")
    print(f"Final capital: {result.final_capital:.2f} (return {m.total_return:.2f}, {m.total_return_percent:.2f}%)")
    print(f"Sharpe ratio: {m.sharpe_ratio:.2f}")
    print(f"Max drawdown: {m.max_drawdown:.2f}%")
    print(f"Win rate: {m.win_rate*100:.1f}%")
    print(f"Profit factor: {m.profit_factor:.2f}")
    return 0


async def _run_live(engine: TradingEngine, duration: Optional[float]) -> None:
    runner = asyncio.create_task(engine.run())
    try:
        if duration:
            await asyncio.sleep(duration)
        else:
            await runner
    finally:
        engine.stop()
        await engine.scheduler.drain()
        await runner


def run_live(args: argparse.Namespace) -> int:
    """Run the live engine (paper replay unless --binance or engine.paper_trading is false)."""
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, config.json_logs)
    if not config.strategies:
        logger.error("No strategies configured")
        return 1
    use_binance = args.binance or not config.paper_trading
    if use_binance:
        client = _binance(config)
        if client is None:
            return 1
        feed, executor = client, client
    else:
        frames = {
            s: generate_synthetic_bars(s, bars=config.window_bars * 3, timeframe=config.timeframe, seed=config.backtest_seed)
            for s in config.symbols
        }
        feed = ReplayFeed(frames, warmup=config.window_bars)
        executor = PaperExecutor(feed)
    notifier = _notifier(config)
    try:
        engine = TradingEngine(
            feed,
            executor,
            settings=config.auto_trading,
            strategies=config.strategies,
            symbols=config.symbols,
            persistence=_persistence(config),
            notifier=notifier,
            timeframe=config.timeframe,
            window_bars=config.window_bars,
            initial_capital=config.initial_capital,
            market_tick_seconds=config.market_tick_seconds,
            signal_seconds=config.signal_seconds,
            risk_check_seconds=config.risk_check_seconds,
        )
    except StrategyEngineError as e:
        logger.error("Invalid strategy configuration: %s", e)
        return 1
    notifier.notify(Alert(AlertKind.SYSTEM, "Engine starting",
                          f"{','.join(config.symbols)} | testnet={config.use_testnet} | binance={use_binance}"))
    try:
        asyncio.run(_run_live(engine, args.duration))
    except KeyboardInterrupt:
        logger.info("Shutdown by user")
    for position in engine.positions():
        print(f"{position.symbol}: {position.side.value} {position.quantity:.6f} @ {position.entry_price:.4f} "
              f"(uPnL {position.unrealized_pnl:.2f})")
    if engine.orphaned_orders:
        print(f"Orphaned orders: {[o.id for o in engine.orphaned_orders]}")
    return 0


def run_templates(args: argparse.Namespace) -> int:
    print(json.dumps(list_templates(), indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Strategy Engine CLI")
    sub = parser.add_subparsers(dest="mode", required=True)

    bt = sub.add_parser("backtest", help="Backtest a strategy template")
    bt.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    bt.add_argument("--template", default=None, help="Template id (default: backtest.template)")
    bt.add_argument("--symbol", default=None, help="Symbol (default: backtest.symbol, else first market symbol)")
    bt.add_argument("--source", choices=["synthetic", "csv", "binance"], default="synthetic")
    bt.set_defaults(func=run_backtest)

    live = sub.add_parser("live", help="Run the live engine")
    live.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    live.add_argument("--binance", action="store_true", help="Use Binance Futures even when engine.paper_trading is true")
    live.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    live.set_defaults(func=run_live)

    tpl = sub.add_parser("templates", help="List strategy templates")
    tpl.set_defaults(func=run_templates)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    exit(main())
