"""Structured JSON event logging helpers."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

audit_logger = logging.getLogger("app.audit")
db_logger = logging.getLogger("app.db")


def _to_serializable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): _to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_serializable(v) for v in value]
    return str(value)


def _build_payload(event_type: str, details: Mapping[str, Any] | None) -> str:
    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event_type,
    }
    if details:
        payload["details"] = _to_serializable(details)
    return json.dumps(payload, ensure_ascii=True)


def log_audit_event(
    event_type: str,
    *,
    details: Mapping[str, Any] | None = None,
) -> None:
    """Record a committed entity lifecycle change (region_created, pin_deleted, ...)."""
    audit_logger.info(_build_payload(event_type, details))


def log_db_event(
    event_type: str,
    *,
    level: int = logging.WARNING,
    details: Mapping[str, Any] | None = None,
) -> None:
    """Record a transaction-level event (retries, stale rollbacks, final failures)."""
    db_logger.log(level, _build_payload(event_type, details))
