"""
Route contract shared by the server handlers and the client.

Each route binds a logical operation to its HTTP method, its path template
(``:name`` placeholders), its input model and one response validator per
status code. Server routes are registered from ``Route.fastapi_path`` and the
client parses every response through ``Route.parse_response``, so a shape
mismatch on either side fails at the boundary.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import SimpleNamespace
from typing import Any, Dict, List, Mapping, Optional, Type
from urllib.parse import quote

from pydantic import BaseModel, TypeAdapter

from pricetracker.models import (
    Candle,
    CandlesQuery,
    Favorite,
    InsertFavorite,
    SearchQuery,
    SearchResult,
    Ticker,
)

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")

SEARCH_RESULT_LIMIT = 50


class ValidationErrorBody(BaseModel):
    message: str
    field: Optional[str] = None


class NotFoundBody(BaseModel):
    message: str


class InternalErrorBody(BaseModel):
    message: str


class UndeclaredStatusError(Exception):
    """A response arrived with a status code the route does not declare."""

    def __init__(self, route: "Route", status: int):
        self.route = route
        self.status = status
        super().__init__(f"{route.name}: status {status} is not declared by the contract")


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


@dataclass(frozen=True)
class Route:
    name: str
    method: str
    path: str
    responses: Mapping[int, Any]
    input: Optional[Type[BaseModel]] = None
    summary: str = field(default="", compare=False)

    @property
    def fastapi_path(self) -> str:
        """The path template with ``{name}`` placeholders, as FastAPI expects."""
        return _PLACEHOLDER.sub(r"{\1}", self.path)

    @property
    def status_codes(self) -> List[int]:
        return sorted(self.responses)

    @property
    def success_status(self) -> int:
        return min(code for code in self.responses if 200 <= code < 300)

    def url(self, **params: Any) -> str:
        return build_url(self.path, params)

    def parse_input(self, data: Any) -> BaseModel:
        if self.input is None:
            raise TypeError(f"{self.name} takes no input")
        return self.input.model_validate(data)

    def parse_response(self, status: int, payload: Any) -> Any:
        """
        Validate ``payload`` against the validator declared for ``status``.

        Raises UndeclaredStatusError for a status the route does not list, and
        pydantic's ValidationError when the payload has the wrong shape.
        """
        if status not in self.responses:
            raise UndeclaredStatusError(self, status)
        return _adapter(self.responses[status]).validate_python(payload)


def build_url(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Substitute ``:name`` placeholders in ``path`` with URL-encoded values.

    Parameters without a matching placeholder are ignored; a placeholder left
    without a value is an error.
    """
    params = params or {}

    def substitute(match: "re.Match") -> str:
        name = match.group(1)
        if name not in params:
            raise ValueError(f"Missing value for path parameter '{name}' in {path}")
        return quote(str(params[name]), safe="")

    return _PLACEHOLDER.sub(substitute, path)


class FavoritesRoutes:
    list = Route(
        name="favorites.list",
        method="GET",
        path="/api/favorites",
        responses={200: List[Favorite], 500: InternalErrorBody},
        summary="List all favorite symbols",
    )
    create = Route(
        name="favorites.create",
        method="POST",
        path="/api/favorites",
        input=InsertFavorite,
        responses={201: Favorite, 400: ValidationErrorBody, 500: InternalErrorBody},
        summary="Add a favorite symbol (returns the existing one if present)",
    )
    delete = Route(
        name="favorites.delete",
        method="DELETE",
        path="/api/favorites/:symbol",
        responses={204: None, 404: NotFoundBody, 500: InternalErrorBody},
        summary="Remove a favorite symbol",
    )


class MarketRoutes:
    candles = Route(
        name="market.candles",
        method="GET",
        path="/api/market/candles/:symbol",
        input=CandlesQuery,
        responses={200: List[Candle], 400: ValidationErrorBody, 500: InternalErrorBody},
        summary="Recent candles for a symbol",
    )
    ticker = Route(
        name="market.ticker",
        method="GET",
        path="/api/market/ticker/:symbol",
        responses={200: Ticker, 404: NotFoundBody, 500: InternalErrorBody},
        summary="24h ticker for a symbol",
    )
    search = Route(
        name="market.search",
        method="GET",
        path="/api/market/search",
        input=SearchQuery,
        responses={200: List[SearchResult], 500: InternalErrorBody},
        summary="Search USDT pairs by symbol, most traded first",
    )


api = SimpleNamespace(favorites=FavoritesRoutes, market=MarketRoutes)

ROUTES: Dict[str, Route] = {
    route.name: route
    for group in (FavoritesRoutes, MarketRoutes)
    for route in vars(group).values()
    if isinstance(route, Route)
}
