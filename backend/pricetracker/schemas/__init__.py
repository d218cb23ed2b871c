from .favorite import FavoriteSymbol

__all__ = ["FavoriteSymbol"]
