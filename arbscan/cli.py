from __future__ import annotations

import argparse
import asyncio
import json
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from tabulate import tabulate

from .app import App, open_app
from .config import Settings, settings
from .errors import ArbScanError
from .usecases import ArbitrageResult, BestPriceResult
from .utils import get_logger

logger = get_logger("cli")

PAIR_RE = re.compile(r"^[A-Z0-9]{2,10}/[A-Z0-9]{2,10}$", re.IGNORECASE)


def use_uvloop_if_available() -> None:
    try:
        import uvloop  # type: ignore
    except ImportError:
        return
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())


def pair_arg(value: str) -> str:
    if not PAIR_RE.match(value):
        raise argparse.ArgumentTypeError(
            f"Invalid pair format: '{value}'. Expected BASE/QUOTE (e.g. BTC/USDT, ETH/BTC)"
        )
    return value.upper()


def min_profit_arg(value: str) -> float:
    try:
        result = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid min-profit value: {value}") from None
    if result < 0:
        raise argparse.ArgumentTypeError("Invalid min-profit value. Must be >= 0")
    return result


def top_arg(value: str) -> int:
    try:
        result = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid top value: {value}") from None
    if result <= 0:
        raise argparse.ArgumentTypeError("Invalid top value. Must be > 0")
    return result


def _fmt_ts(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def render_best_price(result: BestPriceResult) -> str:
    rows = [
        ["Lowest", result.min.source, f"{result.min.price:.8f}", _fmt_ts(result.min.timestamp)],
        ["Highest", result.max.source, f"{result.max.price:.8f}", _fmt_ts(result.max.timestamp)],
    ]
    lines = [
        f"Best prices for {result.pair}",
        tabulate(rows, headers=["", "Exchange", "Price", "Time"], tablefmt="github"),
        f"Difference: {result.difference.absolute:.8f} ({result.difference.percent:.4f}%)",
        f"Exchanges checked: {result.sources_checked}",
    ]
    if result.sources_failed:
        lines.append("Failed exchanges: " + ", ".join(result.sources_failed))
    return "\n".join(lines)


def render_opportunities(result: ArbitrageResult) -> str:
    lines = [
        f"Min profit: {result.min_profit_filter}% | Top: {result.top_filter or 'All'} "
        f"| Pairs checked: {result.pairs_checked}",
    ]
    if result.sources_failed:
        lines.append("Failed exchanges: " + ", ".join(result.sources_failed))
    if not result.opportunities:
        lines.append("No arbitrage opportunities found matching the criteria.")
        return "\n".join(lines)

    headers = ["Pair", "Buy From", "Buy Price", "Sell To", "Sell Price", "Profit %"]
    rows = [
        [
            o.pair,
            o.buy_source,
            f"{o.buy_price:.8f}",
            o.sell_source,
            f"{o.sell_price:.8f}",
            f"{o.profit_percent:.2f}",
        ]
        for o in result.opportunities
    ]
    lines.append(f"Found {result.total_found} opportunities:")
    lines.append(tabulate(rows, headers=headers, tablefmt="github"))
    return "\n".join(lines)


async def cmd_price(args, app: App) -> int:
    logger.info("Fetching prices for %s...", args.pair)
    result = await app.best_price.execute(args.pair)
    if args.json:
        _print_json(result.to_dict())
    else:
        print(render_best_price(result))
    return 0


async def cmd_opportunities(args, app: App) -> int:
    logger.info("Searching for arbitrage opportunities...")
    result = await app.find_arbitrage.execute(args.min_profit, args.top)
    if args.json:
        _print_json(result.to_dict())
    else:
        print(render_opportunities(result))
    return 0


async def cmd_pairs(args, app: App) -> int:
    counts: Dict[str, int] = {}
    if args.refresh:
        catalog = await app.resolver.refresh()
        counts = {name: len(pairs) for name, pairs in catalog.pairs_by_source.items()}
        pairs: List[str] = list(catalog.common)
    else:
        pairs = await app.resolver.resolve_common_pairs()

    if args.json:
        payload: Dict[str, Any] = {"pairs": pairs}
        # per-exchange counts are only known when the catalog was rebuilt
        if args.refresh:
            payload["pairs_by_exchange"] = counts
        _print_json(payload)
        return 0
    for name, n in counts.items():
        print(f"{name}: {n} spot pairs")
    print(f"{len(pairs)} common pairs:")
    print(", ".join(pairs))
    return 0


async def cmd_clear_cache(args, app: App) -> int:
    app.resolver.clear_cache()
    print("Common pairs cache cleared")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="arbscan", description="Cross-exchange price and arbitrage scanner")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_price = sub.add_parser("price", help="Find the best price for a trading pair across all exchanges")
    p_price.add_argument("pair", type=pair_arg, help="Trading pair in BASE/QUOTE format (e.g., BTC/USDT)")
    p_price.add_argument("--json", action="store_true", help="Print the result as JSON")
    p_price.set_defaults(func=cmd_price)

    p_opp = sub.add_parser("opportunities", help="Find arbitrage opportunities across all exchanges")
    p_opp.add_argument("--min-profit", type=min_profit_arg, default=None, help="Minimum profit percentage threshold")
    p_opp.add_argument("--top", type=top_arg, default=None, help="Limit results to top N opportunities")
    p_opp.add_argument("--json", action="store_true", help="Print the result as JSON")
    p_opp.set_defaults(func=cmd_opportunities)

    p_pairs = sub.add_parser("pairs", help="List pairs tradable on every reachable exchange")
    p_pairs.add_argument("--refresh", action="store_true", help="Ignore the cache and query every exchange")
    p_pairs.add_argument("--json", action="store_true", help="Print the result as JSON")
    p_pairs.set_defaults(func=cmd_pairs)

    p_clear = sub.add_parser("clear-cache", help="Forget the cached common pairs")
    p_clear.set_defaults(func=cmd_clear_cache)

    return parser


def main(argv: Optional[List[str]] = None, cfg: Optional[Settings] = None) -> int:
    use_uvloop_if_available()
    cfg = cfg or settings

    args = build_parser().parse_args(argv)
    if args.cmd == "opportunities" and args.min_profit is None:
        args.min_profit = cfg.min_profit_pct

    async def runner() -> int:
        async with open_app(cfg) as app:
            return await args.func(args, app)

    try:
        return asyncio.run(runner())
    except ArbScanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
