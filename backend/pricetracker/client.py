"""
Async client for the tracker API.

Every call goes through the shared route contract: URLs are built from the
route's path template and responses are validated against the route's
declared shapes before they are returned.
"""

import asyncio
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

import aiohttp
from loguru import logger
from pydantic import ValidationError

from pricetracker.api.contract import Route, api, build_url
from pricetracker.models import Candle, Favorite, InsertFavorite, SearchResult, Ticker

T = TypeVar("T")

# Polling policy, in seconds
REFRESH_INTERVALS = {
    "ticker": 5.0,
    "candles": 60.0,
}
SEARCH_STALE_SECONDS = 5 * 60
MIN_SEARCH_LENGTH = 2


class TrackerAPIError(Exception):
    """The API answered with a non-2xx status."""

    def __init__(self, status: int, message: str, field: Optional[str] = None):
        self.status = status
        self.message = message
        self.field = field
        super().__init__(f"{status}: {message}")


class TrackerClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._clock = clock
        self._sleep = sleep
        self._search_cache: Dict[str, Tuple[float, List[SearchResult]]] = {}

    async def __aenter__(self) -> "TrackerClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def list_favorites(self) -> List[Favorite]:
        return await self._request(api.favorites.list, error_message="Failed to fetch favorites")

    async def add_favorite(self, symbol: str) -> Favorite:
        body = InsertFavorite(symbol=symbol).model_dump()
        return await self._request(api.favorites.create, json=body, error_message="Failed to add favorite")

    async def remove_favorite(self, symbol: str) -> None:
        await self._request(
            api.favorites.delete,
            path_params={"symbol": symbol},
            error_message="Failed to remove favorite",
            status_messages={404: "Favorite not found"},
        )

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def candles(self, symbol: str, interval: str = "1h") -> List[Candle]:
        query = api.market.candles.parse_input({"interval": interval})
        return await self._request(
            api.market.candles,
            path_params={"symbol": symbol},
            params={"interval": query.interval.value},
            error_message="Failed to fetch candles",
        )

    async def ticker(self, symbol: str) -> Ticker:
        return await self._request(
            api.market.ticker,
            path_params={"symbol": symbol},
            error_message="Failed to fetch ticker",
        )

    async def search(self, query: str) -> List[SearchResult]:
        """
        Search the market. Queries shorter than MIN_SEARCH_LENGTH return no
        results without a request; answers are reused for SEARCH_STALE_SECONDS.
        """
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []

        cached = self._search_cache.get(query)
        now = self._clock()
        if cached and now - cached[0] < SEARCH_STALE_SECONDS:
            return cached[1]

        results = await self._request(
            api.market.search,
            params={"query": query},
            error_message="Failed to search market",
        )
        self._prune_search_cache(now)
        self._search_cache[query] = (now, results)
        return results

    def _prune_search_cache(self, now: float):
        stale = [key for key, (fetched_at, _) in self._search_cache.items()
                 if now - fetched_at >= SEARCH_STALE_SECONDS]
        for key in stale:
            del self._search_cache[key]

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def watch(self, fetch: Callable[[], Awaitable[T]], interval: float) -> AsyncIterator[T]:
        """Call ``fetch`` every ``interval`` seconds, yielding each result."""
        while True:
            yield await fetch()
            await self._sleep(interval)

    def watch_ticker(self, symbol: str) -> AsyncIterator[Ticker]:
        return self.watch(lambda: self.ticker(symbol), REFRESH_INTERVALS["ticker"])

    def watch_candles(self, symbol: str, interval: str = "1h") -> AsyncIterator[List[Candle]]:
        return self.watch(lambda: self.candles(symbol, interval), REFRESH_INTERVALS["candles"])

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        route: Route,
        path_params: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        error_message: str = "Request failed",
        status_messages: Optional[Dict[int, str]] = None,
    ) -> Any:
        url = self.base_url + build_url(route.path, path_params)
        kwargs: Dict[str, Any] = {}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if json is not None:
            kwargs["json"] = json

        async with self._get_session().request(route.method, url, **kwargs) as response:
            status = response.status
            payload = await _read_body(response)

        if 200 <= status < 300:
            return route.parse_response(status, payload)

        logger.debug(f"{route.name} failed with {status}: {payload!r}")
        raise _api_error(route, status, payload, error_message, status_messages or {})


async def _read_body(response) -> Any:
    if response.status == 204:
        return None
    try:
        return await response.json(content_type=None)
    except ValueError:
        return await response.text()


def _api_error(
    route: Route,
    status: int,
    payload: Any,
    default_message: str,
    status_messages: Dict[int, str],
) -> TrackerAPIError:
    if status in status_messages:
        return TrackerAPIError(status, status_messages[status])

    if status in route.responses:
        try:
            body = route.parse_response(status, payload)
        except ValidationError as e:
            logger.warning(f"{route.name} returned a malformed {status} body: {e}")
        else:
            return TrackerAPIError(status, body.message, getattr(body, "field", None))

    return TrackerAPIError(status, default_message)
