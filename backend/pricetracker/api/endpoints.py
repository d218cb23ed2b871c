from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from loguru import logger

from pricetracker.api.contract import (
    InternalErrorBody,
    NotFoundBody,
    ValidationErrorBody,
    api,
)
from pricetracker.models import Candle, CandleInterval, Favorite, InsertFavorite, SearchResult, Ticker
from pricetracker.services.favorites import FavoritesStore
from pricetracker.services.market_data import MarketDataProxy, SymbolNotFoundError, UpstreamError

router = APIRouter()


# Dependencies: both are built once in the app lifespan and kept on app.state
def get_favorites_store(request: Request) -> FavoritesStore:
    return request.app.state.favorites_store


def get_market_proxy(request: Request) -> MarketDataProxy:
    return request.app.state.market_proxy


# Favorites endpoints
@router.get(
    api.favorites.list.fastapi_path,
    response_model=List[Favorite],
    summary=api.favorites.list.summary,
)
async def list_favorites(store: FavoritesStore = Depends(get_favorites_store)):
    return await store.list()


@router.post(
    api.favorites.create.fastapi_path,
    response_model=Favorite,
    status_code=201,
    summary=api.favorites.create.summary,
    responses={400: {"model": ValidationErrorBody}},
)
async def create_favorite(
    favorite: InsertFavorite,
    store: FavoritesStore = Depends(get_favorites_store),
):
    """Idempotent by symbol: posting a known symbol returns the stored favorite."""
    return await store.add(favorite)


@router.delete(
    api.favorites.delete.fastapi_path,
    status_code=204,
    response_class=Response,
    summary=api.favorites.delete.summary,
    responses={404: {"model": NotFoundBody}},
)
async def delete_favorite(symbol: str, store: FavoritesStore = Depends(get_favorites_store)):
    if not await store.remove(symbol):
        raise HTTPException(status_code=404, detail=f"Favorite {symbol} not found")
    return Response(status_code=204)


# Market data endpoints (proxied to the exchange)
@router.get(
    api.market.candles.fastapi_path,
    response_model=List[Candle],
    summary=api.market.candles.summary,
    responses={400: {"model": ValidationErrorBody}, 500: {"model": InternalErrorBody}},
)
async def get_candles(
    symbol: str,
    interval: CandleInterval = Query(CandleInterval.ONE_HOUR),
    proxy: MarketDataProxy = Depends(get_market_proxy),
):
    try:
        return await proxy.candles(symbol, interval)
    except UpstreamError as e:
        logger.error(f"Error fetching candles for {symbol} ({interval.value}): {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch candles")


@router.get(
    api.market.ticker.fastapi_path,
    response_model=Ticker,
    summary=api.market.ticker.summary,
    responses={404: {"model": NotFoundBody}, 500: {"model": InternalErrorBody}},
)
async def get_ticker(symbol: str, proxy: MarketDataProxy = Depends(get_market_proxy)):
    try:
        return await proxy.ticker(symbol)
    except SymbolNotFoundError:
        raise HTTPException(status_code=404, detail="Ticker not found")
    except UpstreamError as e:
        logger.error(f"Error fetching ticker for {symbol}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch ticker")


@router.get(
    api.market.search.fastapi_path,
    response_model=List[SearchResult],
    summary=api.market.search.summary,
    responses={500: {"model": InternalErrorBody}},
)
async def search_market(
    query: Optional[str] = Query(None),
    proxy: MarketDataProxy = Depends(get_market_proxy),
):
    try:
        return await proxy.search(query)
    except UpstreamError as e:
        logger.error(f"Error searching market for {query!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to search")
