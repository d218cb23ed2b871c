import time
from typing import Any, List, Optional

import ccxt.async_support as ccxt
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from pricetracker.core.config import Settings
from pricetracker.core.logging import get_market_logger
from pricetracker.models import (
    Candle,
    CandleInterval,
    SearchResult,
    Ticker,
    UpstreamKline,
    UpstreamTicker24h,
)

CANDLE_LIMIT = 100
SEARCH_LIMIT = 50
SEARCH_QUOTE_ASSET = "USDT"

_TICKER_LIST = TypeAdapter(List[UpstreamTicker24h])


class UpstreamError(Exception):
    """The exchange was unreachable, rejected the call, or sent a malformed payload."""


class SymbolNotFoundError(UpstreamError):
    """The exchange does not list the requested symbol."""


def create_exchange(settings: Settings):
    """Build the ccxt exchange used for public market data."""
    exchange_class = getattr(ccxt, settings.MARKET_EXCHANGE_ID)
    return exchange_class({
        "enableRateLimit": True,
        "timeout": settings.MARKET_TIMEOUT_MS,
    })


class MarketDataProxy:
    """
    Forwards candle, ticker and search requests to the exchange's public REST
    endpoints and reshapes the responses.

    The raw endpoints are called through ccxt's implicit API so the payloads
    keep the exchange's own field names. Every payload is validated against an
    explicit upstream model before it is reshaped.
    """

    def __init__(self, exchange, search_cache_seconds: float = 60.0, clock=time.monotonic):
        self.exchange = exchange
        self.search_cache_seconds = search_cache_seconds
        self._clock = clock
        self._tickers_cache: Optional[List[UpstreamTicker24h]] = None
        self._tickers_cached_at = 0.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "MarketDataProxy":
        return cls(create_exchange(settings), search_cache_seconds=settings.SEARCH_CACHE_SECONDS)

    async def close(self):
        if self.exchange is not None:
            await self.exchange.close()
            logger.info("Exchange connection closed.")

    async def candles(
        self,
        symbol: str,
        interval: CandleInterval = CandleInterval.ONE_HOUR,
        limit: int = CANDLE_LIMIT,
    ) -> List[Candle]:
        log = get_market_logger(symbol)
        interval = CandleInterval(interval)
        payload = await self._call(
            log,
            "public_get_klines",
            {"symbol": symbol, "interval": interval.value, "limit": limit},
        )
        if not isinstance(payload, list):
            raise UpstreamError(f"Expected a list of klines, got {type(payload).__name__}")
        try:
            return [UpstreamKline.from_row(row).to_candle() for row in payload]
        except (ValueError, ValidationError) as e:
            log.error(f"Malformed klines payload for {symbol}: {e}")
            raise UpstreamError("Malformed klines payload") from e

    async def ticker(self, symbol: str) -> Ticker:
        log = get_market_logger(symbol)
        payload = await self._call(log, "public_get_ticker_24hr", {"symbol": symbol})
        try:
            return UpstreamTicker24h.model_validate(payload).to_ticker()
        except ValidationError as e:
            log.error(f"Malformed ticker payload for {symbol}: {e}")
            raise UpstreamError("Malformed ticker payload") from e

    async def search(self, query: Optional[str] = None) -> List[SearchResult]:
        """
        USDT pairs whose symbol contains ``query`` (case-insensitive), most
        traded first by quote volume, at most SEARCH_LIMIT results.
        """
        needle = (query or "").upper()
        tickers = await self._all_tickers()
        matches = [
            t for t in tickers
            if t.symbol.endswith(SEARCH_QUOTE_ASSET) and needle in t.symbol
        ]
        matches.sort(key=_quote_volume, reverse=True)
        return [t.to_search_result() for t in matches[:SEARCH_LIMIT]]

    async def _all_tickers(self) -> List[UpstreamTicker24h]:
        now = self._clock()
        if (
            self._tickers_cache is not None
            and self.search_cache_seconds > 0
            and now - self._tickers_cached_at < self.search_cache_seconds
        ):
            return self._tickers_cache

        log = get_market_logger("*")
        payload = await self._call(log, "public_get_ticker_24hr", {})
        try:
            tickers = _TICKER_LIST.validate_python(payload)
        except ValidationError as e:
            log.error(f"Malformed bulk ticker payload: {e}")
            raise UpstreamError("Malformed bulk ticker payload") from e

        self._tickers_cache = tickers
        self._tickers_cached_at = now
        return tickers

    async def _call(self, log, method: str, params: dict) -> Any:
        try:
            return await getattr(self.exchange, method)(params)
        except ccxt.BadSymbol as e:
            log.warning(f"Exchange rejected symbol: {e}")
            raise SymbolNotFoundError(str(e)) from e
        except ccxt.BaseError as e:
            log.error(f"Exchange call {method} failed: {e}")
            raise UpstreamError(str(e)) from e


def _quote_volume(ticker: UpstreamTicker24h) -> float:
    try:
        return float(ticker.quoteVolume)
    except ValueError:
        return 0.0
