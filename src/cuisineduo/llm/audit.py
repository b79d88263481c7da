"""
AI call audit trail.

One `ai_logs` row per handler invocation: who asked, which endpoint, what
went in, what came out, how long it took. Writing the row must never break
the request, so every failure here is logged and dropped.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from cuisineduo.config import settings
from cuisineduo.db.client import get_service_client

logger = logging.getLogger(__name__)


@dataclass
class AuditRecord:
    """Mutable record filled in by the handler while it runs."""

    endpoint: str
    household_id: str | None = None
    profile_id: str | None = None
    input: dict[str, Any] | None = None
    output: Any = None
    error: str | None = None
    duration_ms: int | None = None

    def to_row(self) -> dict[str, Any]:
        return {
            "household_id": self.household_id,
            "profile_id": self.profile_id,
            "endpoint": self.endpoint,
            "input": self.input,
            "output": self.output,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


def write_ai_log(record: AuditRecord) -> None:
    """Insert an ai_logs row. Silent on failure."""
    if not settings.cuisineduo_log_to_db:
        return
    try:
        get_service_client().table("ai_logs").insert(record.to_row()).execute()
    except Exception as e:
        logger.warning(f"ai_logs write failed for {record.endpoint}: {e}")


@asynccontextmanager
async def audit_ai_call(
    endpoint: str,
    *,
    household_id: str | None = None,
    profile_id: str | None = None,
    input: dict[str, Any] | None = None,
) -> AsyncIterator[AuditRecord]:
    """
    Time a handler's AI work and record it.

    Usage:
        async with audit_ai_call("chat-ai", household_id=hid, input={...}) as record:
            result = await chat_reply(...)
            record.output = result
    """
    record = AuditRecord(
        endpoint=endpoint,
        household_id=household_id,
        profile_id=profile_id,
        input=input,
    )
    start = time.monotonic()
    try:
        yield record
    except Exception as e:
        record.error = str(e)
        raise
    finally:
        record.duration_ms = int((time.monotonic() - start) * 1000)
        write_ai_log(record)
