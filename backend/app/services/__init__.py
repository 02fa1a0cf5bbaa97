"""Services exports."""
from app.services.read_cache import MemoryReadCache, ReadCache, RedisReadCache, create_read_cache
from app.services.transactions import TransactionRunner

__all__ = [
    "ReadCache",
    "MemoryReadCache",
    "RedisReadCache",
    "create_read_cache",
    "TransactionRunner",
]
