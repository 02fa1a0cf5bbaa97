"""Transient/fatal classification of data-store errors."""
import asyncio

import pytest
from sqlalchemy import exc as sa_exc

from app.utils.db_errors import (
    FailureKind,
    classify_db_error,
    is_foreign_key_violation,
    is_unique_violation,
    sqlstate_of,
)


class DriverError(Exception):
    """Stand-in for a DBAPI exception that may carry a SQLSTATE."""

    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        if sqlstate is not None:
            self.sqlstate = sqlstate


def db_error(message, sqlstate=None, cls=sa_exc.OperationalError, **kwargs):
    return cls("UPDATE pins SET latitude=?", {}, DriverError(message, sqlstate), **kwargs)


@pytest.mark.parametrize(
    "sqlstate",
    ["40001", "40P01", "25P02", "53300", "57014", "55P03", "08006", "08003", "57P01"],
)
def test_transient_sqlstates(sqlstate):
    assert classify_db_error(db_error("boom", sqlstate)) is FailureKind.TRANSIENT


@pytest.mark.parametrize("sqlstate", ["42P01", "22003", "42601"])
def test_other_sqlstates_are_fatal(sqlstate):
    assert classify_db_error(db_error("boom", sqlstate)) is FailureKind.FATAL


def test_sqlstate_takes_precedence_over_message():
    error = db_error("deadlock mentioned in a syntax error", "42601", cls=sa_exc.ProgrammingError)

    assert classify_db_error(error) is FailureKind.FATAL


@pytest.mark.parametrize(
    "message",
    [
        "ERROR: deadlock detected",
        "could not serialize access due to concurrent update",
        "current transaction is aborted, commands ignored until end of transaction block",
        "FATAL: sorry, too many connections for role",
        "canceling statement due to statement timeout",
        "server closed the connection unexpectedly",
        "database is locked",
    ],
)
def test_message_fallback_without_sqlstate(message):
    assert classify_db_error(db_error(message)) is FailureKind.TRANSIENT


def test_invalidated_connection_is_transient():
    error = db_error("connection dropped", connection_invalidated=True)

    assert classify_db_error(error) is FailureKind.TRANSIENT


@pytest.mark.parametrize(
    "error",
    [
        sa_exc.TimeoutError("QueuePool limit of size 5 overflow 10 reached"),
        ConnectionResetError("reset by peer"),
        asyncio.TimeoutError(),
    ],
)
def test_timeouts_and_connection_errors_are_transient(error):
    assert classify_db_error(error) is FailureKind.TRANSIENT


def test_integrity_errors_are_fatal_even_with_retryable_words():
    error = db_error("duplicate key value; timeout", "23505", cls=sa_exc.IntegrityError)

    assert classify_db_error(error) is FailureKind.FATAL
    assert is_unique_violation(error)
    assert not is_foreign_key_violation(error)


def test_constraint_detection_by_message_when_no_sqlstate():
    unique = db_error("UNIQUE constraint failed: regions.name", cls=sa_exc.IntegrityError)
    foreign = db_error("FOREIGN KEY constraint failed", cls=sa_exc.IntegrityError)

    assert is_unique_violation(unique)
    assert is_foreign_key_violation(foreign)
    assert not is_unique_violation(foreign)


def test_application_errors_are_fatal():
    assert classify_db_error(ValueError("bad input")) is FailureKind.FATAL


def test_sqlstate_read_from_pgcode_or_cause():
    psycopg2_style = DriverError("deadlock")
    psycopg2_style.pgcode = "40P01"
    wrapped = DriverError("adapted")
    wrapped.__cause__ = DriverError("deadlock", "40P01")

    assert sqlstate_of(sa_exc.OperationalError("x", {}, psycopg2_style)) == "40P01"
    assert sqlstate_of(sa_exc.OperationalError("x", {}, wrapped)) == "40P01"
    assert sqlstate_of(sa_exc.OperationalError("x", {}, DriverError("no code"))) is None
