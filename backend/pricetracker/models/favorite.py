"""Favorite entity shapes shared by the server and the client."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class InsertFavorite(BaseModel):
    """
    Insertable projection of a favorite. ``id`` and ``createdAt`` are
    server-assigned and never accepted from callers.
    """
    symbol: str = Field(..., min_length=1, description="Exchange symbol, e.g. BTCUSDT")


class Favorite(BaseModel):
    """A persisted favorite symbol."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    symbol: str
    created_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
