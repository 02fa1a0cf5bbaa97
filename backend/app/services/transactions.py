"""Transactional request wrapper.

``TransactionRunner.run_mutation`` executes one logical create/update/delete
step inside a database transaction and retries it when the data store reports a
transient condition (connection loss, too many connections, timeout, deadlock,
serialization failure, aborted transaction). Per call the state goes
Idle -> TransactionOpen -> Committed | RolledBack; a transient rollback with
budget left sleeps and starts over, anything else is terminal.

``run_read`` serves GETs through the read cache. Every committed mutation clears
the cache entirely.

Operations are plain ``async`` callables taking the session. Raising an
``ApiError`` from inside one is the application-level failure signal: the
transaction is rolled back and the error propagates without retry.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import ApiError, BusinessRuleViolation, TransientStoreFailure
from app.services.read_cache import ReadCache
from app.utils.audit import log_db_event
from app.utils.db_errors import (
    FailureKind,
    classify_db_error,
    is_foreign_key_violation,
    is_unique_violation,
    sqlstate_of,
    violates_constraint,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Operation = Callable[[AsyncSession], Awaitable[T]]

DUPLICATE_REGION_MESSAGE = "A region with this name already exists."


def integrity_error_to_api_error(error: sa_exc.IntegrityError) -> ApiError:
    """Translate a constraint violation into a client error."""
    if is_unique_violation(error):
        if violates_constraint(error, "uq_regions_name", "regions.name"):
            return BusinessRuleViolation(DUPLICATE_REGION_MESSAGE)
        return BusinessRuleViolation("Duplicate entry.")
    if is_foreign_key_violation(error):
        return BusinessRuleViolation("Operation conflicts with related data.")
    return BusinessRuleViolation("Operation violates a data constraint.")


class TransactionRunner:
    """Runs operations with transaction, retry and cache-invalidation guarantees."""

    def __init__(
        self,
        db: AsyncSession,
        cache: ReadCache,
        *,
        max_retries: int | None = None,
        base_delay: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        settings = get_settings()
        self.db = db
        self.cache = cache
        self.max_retries = settings.DB_MAX_RETRIES if max_retries is None else max_retries
        self.base_delay = (
            settings.DB_RETRY_BASE_DELAY_MS / 1000 if base_delay is None else base_delay
        )
        self._sleep = sleep

    def backoff_delay(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based): base, 2*base, 4*base, ..."""
        return self.base_delay * (2 ** (retry_number - 1))

    async def _rollback_stale_transaction(self, name: str) -> None:
        if not self.db.in_transaction():
            return
        log_db_event(
            "stale_transaction_rollback",
            details={"operation": name},
        )
        await self.db.rollback()

    async def run_mutation(self, operation: Operation[T], *, name: str = "mutation") -> T:
        """Execute ``operation`` in a transaction; commit, or roll back and maybe retry."""
        max_attempts = self.max_retries + 1
        attempt = 0
        while True:
            attempt += 1
            await self._rollback_stale_transaction(name)
            try:
                async with self.db.begin():
                    result = await operation(self.db)
            except ApiError:
                raise
            except Exception as e:
                kind = classify_db_error(e)
                if kind is FailureKind.TRANSIENT and attempt < max_attempts:
                    delay = self.backoff_delay(attempt)
                    log_db_event(
                        "transaction_retry",
                        details={
                            "operation": name,
                            "attempt": attempt,
                            "max_attempts": max_attempts,
                            "delay_ms": int(delay * 1000),
                            "sqlstate": sqlstate_of(e),
                            "error": type(e).__name__,
                        },
                    )
                    await self._sleep(delay)
                    continue

                log_db_event(
                    "transaction_failed",
                    level=logging.ERROR,
                    details={
                        "operation": name,
                        "attempts": attempt,
                        "kind": kind.value,
                        "sqlstate": sqlstate_of(e),
                        "error": type(e).__name__,
                    },
                )
                if kind is FailureKind.TRANSIENT:
                    raise TransientStoreFailure(name, attempt) from e
                if isinstance(e, sa_exc.IntegrityError):
                    raise integrity_error_to_api_error(e) from e
                raise

            await self.cache.invalidate_all()
            if attempt > 1:
                logger.info(f"{name} committed after {attempt} attempts")
            return result

    async def run_read(self, operation: Operation[T], cache_key: str) -> T:
        """Serve ``operation`` from the read cache, populating it on a miss.

        The miss result is only stored if no mutation committed while the
        operation ran; otherwise it may predate that commit.
        """
        generation = await self.cache.generation()
        hit, cached = await self.cache.get(cache_key)
        if hit:
            return cached

        result = await operation(self.db)
        await self.cache.set(cache_key, result, generation=generation)
        return result
