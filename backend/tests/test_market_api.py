"""
Tests for the market data endpoints, with the exchange proxy replaced by a fake.
"""
from pricetracker.api.contract import api
from pricetracker.models import CandleInterval
from pricetracker.services.market_data import SymbolNotFoundError, UpstreamError


class TestCandlesEndpoint:

    def test_default_interval(self, client, fake_market):
        response = client.get(api.market.candles.url(symbol="BTCUSDT"))

        assert response.status_code == 200
        candles = api.market.candles.parse_response(200, response.json())
        assert candles[0].close == 105.0
        assert fake_market.calls == [("candles", "BTCUSDT", CandleInterval.ONE_HOUR)]

    def test_explicit_interval(self, client, fake_market):
        response = client.get("/api/market/candles/ETHUSDT", params={"interval": "15m"})

        assert response.status_code == 200
        assert fake_market.calls == [("candles", "ETHUSDT", CandleInterval.FIFTEEN_MINUTES)]

    def test_unknown_interval_is_400(self, client, fake_market):
        response = client.get("/api/market/candles/ETHUSDT", params={"interval": "2h"})

        assert response.status_code == 400
        assert response.json()["field"] == "interval"
        assert fake_market.calls == []

    def test_upstream_failure_is_generic_500(self, client, fake_market):
        fake_market.error = UpstreamError("HTTP 502 from api.binance.us: secret detail")

        response = client.get("/api/market/candles/BTCUSDT")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch candles"}


class TestTickerEndpoint:

    def test_ticker(self, client):
        response = client.get(api.market.ticker.url(symbol="BTCUSDT"))

        assert response.status_code == 200
        ticker = api.market.ticker.parse_response(200, response.json())
        assert ticker.lastPrice == "100.00"

    def test_unknown_symbol_is_404(self, client, fake_market):
        fake_market.error = SymbolNotFoundError("Invalid symbol.")

        response = client.get("/api/market/ticker/NOPEUSDT")

        assert response.status_code == 404
        assert response.json() == {"message": "Ticker not found"}

    def test_upstream_failure_is_generic_500(self, client, fake_market):
        fake_market.error = UpstreamError("connection reset")

        response = client.get("/api/market/ticker/BTCUSDT")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch ticker"}


class TestSearchEndpoint:

    def test_search_forwards_query(self, client, fake_market):
        response = client.get("/api/market/search", params={"query": "BTC"})

        assert response.status_code == 200
        results = api.market.search.parse_response(200, response.json())
        assert results[0].symbol == "BTCUSDT"
        assert fake_market.calls == [("search", "BTC")]

    def test_search_without_query(self, client, fake_market):
        response = client.get("/api/market/search")

        assert response.status_code == 200
        assert fake_market.calls == [("search", None)]

    def test_upstream_failure_is_generic_500(self, client, fake_market):
        fake_market.error = UpstreamError("boom")

        response = client.get("/api/market/search", params={"query": "BTC"})

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to search"}


class TestContractConformance:
    """Every status an endpoint emits is one its route declares."""

    def test_emitted_statuses_are_declared(self, client, fake_market):
        observed = [
            (api.favorites.list, client.get("/api/favorites")),
            (api.favorites.create, client.post("/api/favorites", json={"symbol": "BTCUSDT"})),
            (api.favorites.create, client.post("/api/favorites", json={})),
            (api.favorites.delete, client.delete("/api/favorites/BTCUSDT")),
            (api.favorites.delete, client.delete("/api/favorites/BTCUSDT")),
            (api.market.candles, client.get("/api/market/candles/BTCUSDT")),
            (api.market.candles, client.get("/api/market/candles/BTCUSDT?interval=9x")),
            (api.market.ticker, client.get("/api/market/ticker/BTCUSDT")),
            (api.market.search, client.get("/api/market/search?query=BTC")),
        ]
        fake_market.error = UpstreamError("down")
        observed += [
            (api.market.candles, client.get("/api/market/candles/BTCUSDT")),
            (api.market.ticker, client.get("/api/market/ticker/BTCUSDT")),
            (api.market.search, client.get("/api/market/search")),
        ]

        for route, response in observed:
            assert response.status_code in route.responses, (route.name, response.status_code)
            payload = None if response.status_code == 204 else response.json()
            route.parse_response(response.status_code, payload)
