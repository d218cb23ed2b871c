"""
Crypto Price Tracker - FastAPI application.
Serves the favorites watchlist and proxies market data from the exchange.
Run with: uvicorn pricetracker.main:create_app --factory
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from pricetracker.api import endpoints
from pricetracker.api.errors import register_exception_handlers
from pricetracker.core.config import Settings, get_settings
from pricetracker.core.logging import configure_logging, setup_standard_logging_intercept
from pricetracker.db.session import close_db_connection, create_engine, create_session_factory, init_db
from pricetracker.services.favorites import FavoritesStore, seed_favorites
from pricetracker.services.market_data import MarketDataProxy


def create_app(
    settings: Optional[Settings] = None,
    market_proxy: Optional[MarketDataProxy] = None,
) -> FastAPI:
    """
    Build the application. ``market_proxy`` replaces the exchange-backed proxy,
    which is otherwise created (and closed) by the lifespan.
    """
    settings = settings or get_settings()

    configure_logging(settings)
    setup_standard_logging_intercept()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Handles application startup and shutdown events.
        """
        logger.info(f"--- Starting {settings.APP_NAME} ---")

        engine = create_engine(settings)
        await init_db(engine)
        app.state.favorites_store = FavoritesStore(create_session_factory(engine))

        owns_proxy = market_proxy is None
        app.state.market_proxy = MarketDataProxy.from_settings(settings) if owns_proxy else market_proxy
        logger.info(f"Market data proxy ready ({settings.MARKET_EXCHANGE_ID}).")

        try:
            if settings.SEED_ON_STARTUP:
                await seed_favorites(app.state.favorites_store, settings.SEED_SYMBOLS)

            yield  # Application is now running
        finally:
            logger.info(f"--- Shutting Down {settings.APP_NAME} ---")
            if owns_proxy:
                await app.state.market_proxy.close()
            await close_db_connection(engine)
            logger.info("Shutdown complete.")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Favorites watchlist and market data proxy for the crypto price tracker.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(endpoints.router)

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "app": settings.APP_NAME}

    return app
