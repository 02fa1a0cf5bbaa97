"""Shared FastAPI dependencies."""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.read_cache import ReadCache
from app.services.transactions import TransactionRunner


def get_read_cache(request: Request) -> ReadCache:
    """The process-wide read cache created at application startup."""
    return request.app.state.read_cache


def get_transaction_runner(
    db: AsyncSession = Depends(get_db),
    cache: ReadCache = Depends(get_read_cache),
) -> TransactionRunner:
    return TransactionRunner(db, cache)
