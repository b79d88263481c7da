"""
Realtime with polling fallback.

Realtime delivery is best-effort. When the channel reports an error, a
timeout or a close, we poll on a fixed interval until the channel comes
back as SUBSCRIBED. While the session is still generating we poll
regardless, so the generating → voting move is seen even if the UPDATE
event is lost.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0

# Channel states that mean realtime can no longer be trusted
FALLBACK_STATUSES = frozenset({"CHANNEL_ERROR", "TIMED_OUT", "CLOSED"})


class SyncMode(str, Enum):
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    POLLING = "polling"


def _status_name(status: Any) -> str:
    # realtime's RealtimeSubscribeStates is a str enum; plain strings work too
    return str(getattr(status, "value", status)).upper()


class RealtimeFallbackController:
    """
    Two-state switch between realtime and interval polling.

    Call `on_channel_status` from the channel's subscribe callback. The
    controller owns one asyncio task that calls `poll` every `interval`
    seconds while polling is needed.
    """

    def __init__(
        self,
        poll: Callable[[], Awaitable[None]],
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self._poll = poll
        self.interval = interval
        self.mode = SyncMode.CONNECTING
        self._generating = False
        self._task: asyncio.Task | None = None

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_channel_status(self, status: Any, error: Exception | None = None) -> SyncMode:
        name = _status_name(status)

        if name == "SUBSCRIBED":
            if self.mode == SyncMode.POLLING:
                logger.info("Realtime resubscribed, leaving polling mode")
            self.mode = SyncMode.SUBSCRIBED
        elif name in FALLBACK_STATUSES:
            logger.warning(f"Realtime channel {name}{f': {error}' if error else ''}, polling every {self.interval}s")
            self.mode = SyncMode.POLLING

        self._sync_polling()
        return self.mode

    def set_session_generating(self, generating: bool) -> None:
        self._generating = generating
        self._sync_polling()

    def _should_poll(self) -> bool:
        return self.mode == SyncMode.POLLING or self._generating

    def _sync_polling(self) -> None:
        if self._should_poll():
            if not self.polling:
                self._task = asyncio.create_task(self._poll_loop())
        elif self._task is not None:
            self._task.cancel()
            self._task = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._poll()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Poll failed: {e}")

    async def stop(self) -> None:
        """Stop polling for good."""
        self._generating = False
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
