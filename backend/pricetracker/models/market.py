"""Market data shapes: what the API serves and what the exchange sends us."""

from enum import Enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field


class CandleInterval(str, Enum):
    """Candle bucket sizes accepted by the candles endpoint."""
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"
    ONE_WEEK = "1w"


class Candle(BaseModel):
    """One OHLCV bar; ``time`` is the bucket open time in epoch milliseconds."""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float


class Ticker(BaseModel):
    """Rolling 24h summary. Numbers stay strings, as the exchange sends them."""
    symbol: str
    lastPrice: str
    priceChangePercent: str
    volume: str
    quoteVolume: str


class SearchResult(BaseModel):
    symbol: str
    lastPrice: str
    priceChangePercent: str


class CandlesQuery(BaseModel):
    interval: CandleInterval = CandleInterval.ONE_HOUR


class SearchQuery(BaseModel):
    query: Optional[str] = None


# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------

class UpstreamKline(BaseModel):
    """
    A kline row from the exchange. Rows arrive as positional arrays:
    ``[open_time, open, high, low, close, volume, close_time, ...]`` with the
    prices and volume encoded as decimal strings.
    """
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_row(cls, row: Any) -> "UpstreamKline":
        if not isinstance(row, Sequence) or isinstance(row, str) or len(row) < 6:
            raise ValueError(f"Malformed kline row: {row!r}")
        open_time, open_, high, low, close, volume = row[:6]
        return cls.model_validate({
            "open_time": open_time,
            "open": open_,
            "high": high,
            "low": low,
            "close": close,
            "volume": volume,
        })

    def to_candle(self) -> Candle:
        return Candle(
            time=self.open_time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )


class UpstreamTicker24h(BaseModel):
    """The subset of the exchange's 24h ticker object we rely on."""
    symbol: str
    lastPrice: str
    priceChangePercent: str
    volume: str
    quoteVolume: str = Field(..., description="24h volume in the quote asset")

    def to_ticker(self) -> Ticker:
        return Ticker(
            symbol=self.symbol,
            lastPrice=self.lastPrice,
            priceChangePercent=self.priceChangePercent,
            volume=self.volume,
            quoteVolume=self.quoteVolume,
        )

    def to_search_result(self) -> SearchResult:
        return SearchResult(
            symbol=self.symbol,
            lastPrice=self.lastPrice,
            priceChangePercent=self.priceChangePercent,
        )
