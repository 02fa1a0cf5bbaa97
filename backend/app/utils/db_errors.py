"""Classification of data-store errors into transient and fatal failures."""
import asyncio
from enum import Enum
from typing import Optional

from sqlalchemy import exc as sa_exc

# SQLSTATE codes that are expected to succeed on retry
TRANSIENT_SQLSTATES = {
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "25P02",  # in_failed_sql_transaction ("current transaction is aborted")
    "53300",  # too_many_connections
    "57014",  # query_canceled (statement timeout)
    "55P03",  # lock_not_available (lock timeout)
    "57P01",  # admin_shutdown
    "57P02",  # crash_shutdown
    "57P03",  # cannot_connect_now
}
TRANSIENT_SQLSTATE_CLASSES = {"08"}  # connection_exception

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

# Last resort for drivers that expose no SQLSTATE. Message text is not a stable
# contract, so these only apply when no code is available.
TRANSIENT_MESSAGE_MARKERS = (
    "deadlock",
    "could not serialize",
    "serialization failure",
    "current transaction is aborted",
    "too many connections",
    "timeout",
    "timed out",
    "connection refused",
    "connection reset",
    "server closed the connection",
    "connection is closed",
    "lost connection",
    "database is locked",
)


class FailureKind(str, Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


def sqlstate_of(error: BaseException) -> Optional[str]:
    """SQLSTATE of a DB error if the driver exposes one (asyncpg, psycopg)."""
    orig = getattr(error, "orig", None) or error
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            code = getattr(candidate, attr, None)
            if isinstance(code, str) and code:
                return code
    return None


def _message_of(error: BaseException) -> str:
    orig = getattr(error, "orig", None)
    return str(orig if orig is not None else error).lower()


def classify_db_error(error: BaseException) -> FailureKind:
    """Tag an exception raised during a transaction as transient or fatal."""
    if isinstance(error, sa_exc.TimeoutError):  # connection pool exhausted
        return FailureKind.TRANSIENT
    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return FailureKind.TRANSIENT
    if not isinstance(error, sa_exc.DBAPIError):
        return FailureKind.FATAL
    if error.connection_invalidated:
        return FailureKind.TRANSIENT
    if isinstance(error, sa_exc.IntegrityError):
        return FailureKind.FATAL

    code = sqlstate_of(error)
    if code is not None:
        if code in TRANSIENT_SQLSTATES or code[:2] in TRANSIENT_SQLSTATE_CLASSES:
            return FailureKind.TRANSIENT
        return FailureKind.FATAL

    message = _message_of(error)
    if any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS):
        return FailureKind.TRANSIENT
    return FailureKind.FATAL


def is_unique_violation(error: BaseException) -> bool:
    if not isinstance(error, sa_exc.IntegrityError):
        return False
    code = sqlstate_of(error)
    if code is not None:
        return code == UNIQUE_VIOLATION
    message = _message_of(error)
    return "unique" in message or "duplicate" in message


def is_foreign_key_violation(error: BaseException) -> bool:
    if not isinstance(error, sa_exc.IntegrityError):
        return False
    code = sqlstate_of(error)
    if code is not None:
        return code == FOREIGN_KEY_VIOLATION
    return "foreign key" in _message_of(error)


def violates_constraint(error: BaseException, *names: str) -> bool:
    """True if the error message mentions any of the given constraint/column names."""
    message = _message_of(error)
    return any(name.lower() in message for name in names)
