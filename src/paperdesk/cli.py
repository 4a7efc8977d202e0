from __future__ import annotations

import argparse
import json
import logging

from paperdesk.config import Settings
from paperdesk.data.feeds import RandomWalkFeed, find_asset
from paperdesk.domain.models import Candle, Signal
from paperdesk.execution.ledger import PortfolioLedger
from paperdesk.execution.models import PortfolioState, Side
from paperdesk.execution.trading_engine import TradingEngine
from paperdesk.logging_config import configure_logging
from paperdesk.patterns import PATTERN_DESCRIPTIONS, classify
from paperdesk.portfolio import account_snapshot, allocation
from paperdesk.risk import max_drawdown, sharpe_ratio, total_return
from paperdesk.storage import (
    InMemoryPortfolioStore,
    PortfolioStore,
    PortfolioSync,
    SqlitePortfolioStore,
)
from paperdesk.strategy import RuleToggles, StrategyConfig

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PaperDesk CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    simulate = subparsers.add_parser("simulate", help="Run the strategy on a synthetic feed")
    simulate.add_argument("--symbol", default=None)
    simulate.add_argument("--ticks", type=int, default=60)
    simulate.add_argument("--seed", type=int, default=None)
    simulate.add_argument("--ma-period", type=int, default=10)
    simulate.add_argument("--rsi-period", type=int, default=14)
    simulate.add_argument("--quantity", type=int, default=5)
    simulate.add_argument("--no-auto-execute", action="store_true")
    simulate.add_argument("--no-ma-cross", action="store_true")
    simulate.add_argument("--no-rsi-sell", action="store_true")
    simulate.add_argument("--database-url", default=None)

    for side in ("buy", "sell"):
        order = subparsers.add_parser(side, help=f"Place a manual {side} order")
        order.add_argument("--symbol", required=True)
        order.add_argument("--quantity", type=int, required=True)
        order.add_argument("--price", type=float, required=True)
        order.add_argument("--fee-pct", type=float, default=None)
        order.add_argument("--database-url", default=None)

    portfolio = subparsers.add_parser("portfolio", help="Show cash, holdings and P/L")
    portfolio.add_argument(
        "--price",
        action="append",
        default=[],
        help="Mark price as SYMBOL=PRICE; repeatable",
    )
    portfolio.add_argument("--database-url", default=None)

    pattern = subparsers.add_parser("pattern", help="Classify a candle")
    pattern.add_argument("--open", type=float, required=True)
    pattern.add_argument("--high", type=float, required=True)
    pattern.add_argument("--low", type=float, required=True)
    pattern.add_argument("--close", type=float, required=True)
    pattern.add_argument(
        "--previous",
        default=None,
        help="Previous candle as OPEN,HIGH,LOW,CLOSE",
    )

    db_init = subparsers.add_parser("db-init", help="Initialize persistence schema")
    db_init.add_argument("--database-url", default=None)

    return parser


def _handle_simulate(args: argparse.Namespace, settings: Settings) -> int:
    symbol = find_asset(args.symbol or settings.default_symbol).symbol
    if args.ticks <= 0:
        raise SystemExit("ticks must be greater than zero")

    config = StrategyConfig(
        ma_period=args.ma_period,
        rsi_period=args.rsi_period,
        trade_quantity=args.quantity,
        rules=RuleToggles(ma_cross=not args.no_ma_cross, rsi_overbought=not args.no_rsi_sell),
        auto_execute=not args.no_auto_execute,
    )
    store = _get_store(settings, args.database_url)
    ledger = PortfolioLedger(
        store.read(settings.user_id),
        fee_pct=settings.transaction_cost_pct,
    )
    sync = PortfolioSync(store, settings.user_id)
    ledger.subscribe(sync)

    engine = TradingEngine(ledger, symbol, config, window=settings.history_window)
    try:
        result = engine.run_feed(RandomWalkFeed.for_asset(symbol, seed=args.seed), args.ticks)
    finally:
        sync.flush()
        sync.close()

    state = ledger.state
    latest = engine.timeline.history.latest
    last_price = latest.price if latest is not None else 0.0
    snapshot = account_snapshot(state, {symbol: last_price})
    payload = {
        "symbol": symbol,
        "ticks": int(len(result.equity_curve)),
        "trades_placed": result.trades_placed,
        "signals": sum(1 for step in result.steps if step.outcome.signal != Signal.NONE),
        "last_price": round(last_price, 2),
        "last_pattern": str(result.last_pattern),
        "cash_balance": round(state.cash_balance, 2),
        "realized_pl": round(state.realized_pl, 2),
        "unrealized_pl": round(snapshot.unrealized_pl, 2),
        "final_equity": round(float(result.equity_curve.iloc[-1]), 2),
        "total_return": round(total_return(result.equity_curve), 6),
        "max_drawdown": round(max_drawdown(result.equity_curve), 6),
        "sharpe": round(sharpe_ratio(result.equity_curve), 6),
    }
    print(json.dumps(payload))
    return 0


def _handle_order(args: argparse.Namespace, settings: Settings) -> int:
    store = _get_store(settings, args.database_url)
    ledger = PortfolioLedger(
        store.read(settings.user_id),
        fee_pct=settings.transaction_cost_pct,
    )
    trade = ledger.execute(
        Side(args.command),
        args.symbol.strip().upper(),
        args.quantity,
        args.price,
        fee_pct=args.fee_pct,
    )
    store.write(settings.user_id, ledger.state.to_dict())
    payload = trade.to_dict()
    payload["cash_balance"] = round(ledger.state.cash_balance, 2)
    payload["realized_pl"] = round(ledger.state.realized_pl, 2)
    print(json.dumps(payload))
    return 0


def _handle_portfolio(args: argparse.Namespace, settings: Settings) -> int:
    prices = _parse_prices(args.price)
    state = _get_store(settings, args.database_url).read(settings.user_id)
    payload = _portfolio_payload(state, prices)
    print(json.dumps(payload))
    return 0


def _handle_pattern(args: argparse.Namespace) -> int:
    current = Candle(open=args.open, close=args.close, high=args.high, low=args.low)
    previous = None
    if args.previous:
        parts = [float(part) for part in args.previous.split(",")]
        if len(parts) != 4:
            raise SystemExit("previous must be OPEN,HIGH,LOW,CLOSE")
        previous = Candle(open=parts[0], high=parts[1], low=parts[2], close=parts[3])
    pattern = classify(current, previous)
    print(json.dumps({"pattern": str(pattern), "description": PATTERN_DESCRIPTIONS[pattern]}))
    return 0


def _handle_db_init(args: argparse.Namespace, settings: Settings) -> int:
    database_url = args.database_url or settings.database_url
    if not database_url:
        raise SystemExit("database-url is required (or set PAPERDESK_DATABASE_URL)")
    SqlitePortfolioStore(database_url, initial_cash=settings.initial_cash).init_schema()
    print(json.dumps({"status": "ok"}))
    return 0


def _portfolio_payload(state: PortfolioState, prices: dict[str, float]) -> dict[str, object]:
    snapshot = account_snapshot(state, prices)
    return {
        "cash_balance": round(state.cash_balance, 2),
        "realized_pl": round(state.realized_pl, 2),
        "unrealized_pl": round(snapshot.unrealized_pl, 2),
        "market_value": round(snapshot.market_value, 2),
        "equity": round(snapshot.equity, 2),
        "holdings": [item.to_dict() for item in state.holdings],
        "allocation": {k: round(v, 2) for k, v in allocation(state, prices).items()},
        "trades": len(state.trade_history),
    }


def _parse_prices(raw: list[str]) -> dict[str, float]:
    prices: dict[str, float] = {}
    for item in raw:
        symbol, sep, value = item.partition("=")
        if not sep or not symbol.strip():
            raise SystemExit(f"Invalid price mark: {item}")
        prices[symbol.strip().upper()] = float(value)
    return prices


def _get_store(settings: Settings, override_database_url: str | None) -> PortfolioStore:
    database_url = override_database_url or settings.database_url
    if not database_url:
        logger.info("No database configured; using an in-memory portfolio")
        return InMemoryPortfolioStore(initial_cash=settings.initial_cash)
    store = SqlitePortfolioStore(database_url, initial_cash=settings.initial_cash)
    store.init_schema()
    return store


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        if args.command == "simulate":
            raise SystemExit(_handle_simulate(args, settings))
        if args.command in ("buy", "sell"):
            raise SystemExit(_handle_order(args, settings))
        if args.command == "portfolio":
            raise SystemExit(_handle_portfolio(args, settings))
        if args.command == "pattern":
            raise SystemExit(_handle_pattern(args))
        if args.command == "db-init":
            raise SystemExit(_handle_db_init(args, settings))
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    raise SystemExit("Unknown command")


if __name__ == "__main__":
    main()
