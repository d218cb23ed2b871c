from .favorite import Favorite, InsertFavorite
from .market import (
    Candle,
    CandleInterval,
    CandlesQuery,
    SearchQuery,
    SearchResult,
    Ticker,
    UpstreamKline,
    UpstreamTicker24h,
)

__all__ = [
    "Favorite",
    "InsertFavorite",
    "Candle",
    "CandleInterval",
    "CandlesQuery",
    "SearchQuery",
    "SearchResult",
    "Ticker",
    "UpstreamKline",
    "UpstreamTicker24h",
]
