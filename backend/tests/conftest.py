"""
Pytest configuration and fixtures for the price tracker tests.
"""
from typing import List, Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from hypothesis import strategies as st

from pricetracker.core.config import Settings
from pricetracker.db.session import create_engine, create_session_factory, init_db
from pricetracker.main import create_app
from pricetracker.models import Candle, CandleInterval, SearchResult, Ticker
from pricetracker.services.favorites import FavoritesStore
from pricetracker.services.market_data import MarketDataProxy

# ============================================================================
# HYPOTHESIS STRATEGIES
# ============================================================================

symbol_strategy = st.text(
    alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789",
    min_size=1,
    max_size=20,
)

# ============================================================================
# FIXTURES - Configuration and persistence
# ============================================================================

@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite file, no file logging, no seeding."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}",
        LOG_TO_FILE=False,
        LOG_LEVEL="WARNING",
        SEED_ON_STARTUP=False,
    )


@pytest.fixture
async def engine(settings):
    engine = create_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return FavoritesStore(create_session_factory(engine))


async def make_memory_store():
    """A store over a private in-memory database; returns (store, engine)."""
    engine = create_engine(Settings(DATABASE_URL="sqlite+aiosqlite://", LOG_TO_FILE=False))
    await init_db(engine)
    return FavoritesStore(create_session_factory(engine)), engine

# ============================================================================
# FIXTURES - Market data
# ============================================================================

def kline_row(open_time: int, open_: str = "100.0", high: str = "110.0", low: str = "90.0",
              close: str = "105.0", volume: str = "12.5") -> list:
    """A kline row shaped like the exchange's (12 positional fields)."""
    return [open_time, open_, high, low, close, volume, open_time + 3599999,
            "1312.5", 42, "6.0", "630.0", "0"]


def ticker_payload(symbol: str, last_price: str = "100.00", change: str = "1.50",
                   volume: str = "1000.0", quote_volume: str = "100000.0") -> dict:
    """A 24h ticker object shaped like the exchange's."""
    return {
        "symbol": symbol,
        "priceChange": "1.50",
        "priceChangePercent": change,
        "weightedAvgPrice": last_price,
        "lastPrice": last_price,
        "volume": volume,
        "quoteVolume": quote_volume,
        "openTime": 1700000000000,
        "closeTime": 1700086399999,
        "count": 1234,
    }


@pytest.fixture
def mock_exchange():
    """A ccxt-like exchange exposing the raw public endpoints as AsyncMocks."""
    exchange = AsyncMock()
    exchange.public_get_klines = AsyncMock(return_value=[kline_row(1700000000000)])
    exchange.public_get_ticker_24hr = AsyncMock(return_value=ticker_payload("BTCUSDT"))
    exchange.close = AsyncMock()
    return exchange


@pytest.fixture
def proxy(mock_exchange):
    return MarketDataProxy(mock_exchange, search_cache_seconds=60)


class FakeMarketProxy:
    """Stands in for MarketDataProxy in API tests; set ``error`` to make calls fail."""

    def __init__(self):
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self.candle_data = [
            Candle(time=1700000000000, open=100.0, high=110.0, low=90.0, close=105.0, volume=12.5),
        ]
        self.ticker_data = Ticker(
            symbol="BTCUSDT", lastPrice="100.00", priceChangePercent="1.50",
            volume="1000.0", quoteVolume="100000.0",
        )
        self.search_data = [SearchResult(symbol="BTCUSDT", lastPrice="100.00", priceChangePercent="1.50")]

    async def candles(self, symbol: str, interval: CandleInterval = CandleInterval.ONE_HOUR):
        self.calls.append(("candles", symbol, interval))
        if self.error:
            raise self.error
        return self.candle_data

    async def ticker(self, symbol: str):
        self.calls.append(("ticker", symbol))
        if self.error:
            raise self.error
        return self.ticker_data

    async def search(self, query: Optional[str] = None):
        self.calls.append(("search", query))
        if self.error:
            raise self.error
        return self.search_data

    async def close(self):
        pass

# ============================================================================
# FIXTURES - Application
# ============================================================================

@pytest.fixture
def fake_market():
    return FakeMarketProxy()


@pytest.fixture
def app(settings, fake_market):
    return create_app(settings, market_proxy=fake_market)


@pytest.fixture
def client(app):
    """TestClient with the lifespan running (tables created, store on app.state)."""
    with TestClient(app) as test_client:
        yield test_client
