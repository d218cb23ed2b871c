from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from pricetracker.db.base import Base


class FavoriteSymbol(Base):
    """
    SQLAlchemy ORM model for favorite trading symbols.
    A single global collection; ``symbol`` is the business key.
    """
    __tablename__ = "favorites"

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Exchange symbol, stored as submitted (e.g. "BTCUSDT")
    symbol = Column(String(50), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("symbol", name="uq_favorites_symbol"),
        # ids are never reused after a delete, matching a PostgreSQL serial
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<FavoriteSymbol(id={self.id}, symbol='{self.symbol}')>"
