"""
Data boundary: broker exports -> Orders, trade store persistence, remote sync.

Depends on trade_core for the data contracts; no dependency from trade_core back to data.
"""

from data.normalizer import NormalizerError, ParseResult, parse_orders
from data.remote import DirectoryRemote, HttpRemote, KeyValueRemote, RemoteSyncError
from data.trade_repository import PersistenceError, TradeRepository

__all__ = [
    "DirectoryRemote",
    "HttpRemote",
    "KeyValueRemote",
    "NormalizerError",
    "ParseResult",
    "parse_orders",
    "PersistenceError",
    "RemoteSyncError",
    "TradeRepository",
]


def get_remote(kind: str, location: str, token: str = "") -> KeyValueRemote | None:
    """Remote adapter for a ``remote`` config section; None when sync is disabled."""
    if kind == "directory" and location:
        return DirectoryRemote(location)
    if kind == "http" and location:
        return HttpRemote(location, token=token)
    return None
