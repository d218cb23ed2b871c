from typing import List, Optional, Sequence

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricetracker.models import Favorite, InsertFavorite
from pricetracker.schemas import FavoriteSymbol

DEFAULT_SEED_SYMBOLS = ("BTCUSDT", "ETHUSDT", "SOLUSDT")

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class FavoritesStore:
    """
    Persistence gateway for favorite symbols.

    One instance is built at startup and shared by every request. Each call
    runs in its own session; the unique constraint on ``symbol`` is what keeps
    concurrent writers from creating duplicates.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def list(self) -> List[Favorite]:
        async with self._session_factory() as session:
            result = await session.scalars(select(FavoriteSymbol).order_by(FavoriteSymbol.id))
            return [Favorite.model_validate(row) for row in result]

    async def get(self, symbol: str) -> Optional[Favorite]:
        async with self._session_factory() as session:
            row = await self._get_row(session, symbol)
            return Favorite.model_validate(row) if row is not None else None

    async def add(self, favorite: InsertFavorite) -> Favorite:
        """
        Insert ``favorite`` unless its symbol already exists.

        Returns the new row, or the pre-existing one for a known symbol. Never
        raises a conflict.
        """
        async with self._session_factory() as session:
            insert = self._insert_for(session)
            stmt = (
                insert(FavoriteSymbol)
                .values(symbol=favorite.symbol)
                .on_conflict_do_nothing(index_elements=["symbol"])
                .returning(FavoriteSymbol)
            )
            row = (await session.scalars(stmt)).one_or_none()
            await session.commit()

            if row is not None:
                logger.info(f"Added favorite {favorite.symbol} (id={row.id})")
                return Favorite.model_validate(row)

            existing = await self._get_row(session, favorite.symbol)
            if existing is None:
                # Removed between our insert and the lookup
                raise LookupError(f"Favorite {favorite.symbol} vanished during insert")
            logger.debug(f"Favorite {favorite.symbol} already present (id={existing.id})")
            return Favorite.model_validate(existing)

    async def remove(self, symbol: str) -> bool:
        """Hard-delete ``symbol``. Returns False when there was nothing to delete."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(FavoriteSymbol).where(FavoriteSymbol.symbol == symbol)
            )
            removed = result.rowcount > 0
            await session.commit()

        if removed:
            logger.info(f"Removed favorite {symbol}")
        return removed

    @staticmethod
    async def _get_row(session: AsyncSession, symbol: str) -> Optional[FavoriteSymbol]:
        return await session.scalar(select(FavoriteSymbol).where(FavoriteSymbol.symbol == symbol))

    @staticmethod
    def _insert_for(session: AsyncSession):
        dialect = session.bind.dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise NotImplementedError(f"Favorites store does not support the {dialect} dialect") from None


async def seed_favorites(
    store: FavoritesStore,
    symbols: Sequence[str] = DEFAULT_SEED_SYMBOLS,
) -> List[Favorite]:
    """
    Populate an empty store with ``symbols``.

    A no-op once any favorite exists, so it is safe to run on every startup.
    Returns the favorites it added.
    """
    if await store.list():
        logger.debug("Favorites already present, skipping seed")
        return []

    added = [await store.add(InsertFavorite(symbol=symbol)) for symbol in symbols]
    logger.info(f"Seeded favorites: {', '.join(f.symbol for f in added)}")
    return added
