"""
Crypto Price Tracker CLI
Run the API server, or manage favorites and look up market data on a running one.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import aiohttp
from loguru import logger

from pricetracker.client import TrackerAPIError, TrackerClient
from pricetracker.models import CandleInterval


def setup_logging():
    """Configure logging with loguru."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="INFO"
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="price-tracker",
        description="Crypto Price Tracker - favorites watchlist and market data",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default="http://localhost:8000",
        help="Base URL of a running tracker API"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", type=str, default=None, help="Bind address (default: API_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: API_PORT)")

    commands.add_parser("favorites", help="List favorite symbols")

    add = commands.add_parser("add", help="Add a favorite symbol")
    add.add_argument("symbol", type=str, help="Exchange symbol (e.g., BTCUSDT)")

    remove = commands.add_parser("remove", help="Remove a favorite symbol")
    remove.add_argument("symbol", type=str, help="Exchange symbol (e.g., BTCUSDT)")

    ticker = commands.add_parser("ticker", help="Show the 24h ticker for a symbol")
    ticker.add_argument("symbol", type=str, help="Exchange symbol (e.g., BTCUSDT)")
    ticker.add_argument("--watch", action="store_true", help="Keep polling the ticker")

    candles = commands.add_parser("candles", help="Show recent candles for a symbol")
    candles.add_argument("symbol", type=str, help="Exchange symbol (e.g., BTCUSDT)")
    candles.add_argument(
        "--interval",
        type=str,
        default=CandleInterval.ONE_HOUR.value,
        choices=[i.value for i in CandleInterval],
        help="Candle interval"
    )

    search = commands.add_parser("search", help="Search USDT pairs")
    search.add_argument("query", type=str, help="Part of a symbol (e.g., BTC)")

    return parser.parse_args(argv)


def serve(args: argparse.Namespace):
    import uvicorn

    from pricetracker.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "pricetracker.main:create_app",
        factory=True,
        host=args.host or settings.API_HOST,
        port=args.port or settings.API_PORT,
    )


async def run_command(args: argparse.Namespace, client: TrackerClient):
    """Execute one client command and print its result."""
    if args.command == "favorites":
        for favorite in await client.list_favorites():
            print(f"{favorite.symbol:<12} added {favorite.created_at:%Y-%m-%d %H:%M}")

    elif args.command == "add":
        favorite = await client.add_favorite(args.symbol)
        print(f"{favorite.symbol} is in favorites (id={favorite.id})")

    elif args.command == "remove":
        await client.remove_favorite(args.symbol)
        print(f"{args.symbol} removed from favorites")

    elif args.command == "ticker" and args.watch:
        async for ticker in client.watch_ticker(args.symbol):
            print(format_ticker(ticker))

    elif args.command == "ticker":
        print(format_ticker(await client.ticker(args.symbol)))

    elif args.command == "candles":
        for candle in await client.candles(args.symbol, args.interval):
            print(
                f"{candle.time} O:{candle.open} H:{candle.high} "
                f"L:{candle.low} C:{candle.close} V:{candle.volume}"
            )

    elif args.command == "search":
        for result in await client.search(args.query):
            print(f"{result.symbol:<12} {result.lastPrice:>16} {result.priceChangePercent:>8}%")


def format_ticker(ticker) -> str:
    return (
        f"{ticker.symbol} {ticker.lastPrice} ({ticker.priceChangePercent}%) "
        f"vol {ticker.volume} / {ticker.quoteVolume}"
    )


async def run_client(args: argparse.Namespace) -> int:
    async with TrackerClient(args.base_url) as client:
        try:
            await run_command(args, client)
        except TrackerAPIError as e:
            logger.error(f"{args.command} failed: {e.message}")
            return 1
        except aiohttp.ClientError as e:
            logger.error(f"Connection error: {e}")
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = parse_arguments(argv)

    if args.command == "serve":
        serve(args)
        return 0

    try:
        return asyncio.run(run_client(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
