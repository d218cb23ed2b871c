"""Crypto Price Tracker backend: favorites watchlist and market data proxy."""

__version__ = "1.0.0"
