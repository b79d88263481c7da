"""
Swipe session watcher.

Bridges Supabase realtime channels to a queue of snapshots that the SSE
endpoint streams to clients. Channel status drives the polling fallback.
"""

import asyncio
import logging
from typing import Any, AsyncIterator

from supabase import AsyncClient

from cuisineduo.swipe.aggregator import SwipeSessionAggregator
from cuisineduo.swipe.models import SessionStatus
from cuisineduo.swipe.realtime import DEFAULT_POLL_INTERVAL, RealtimeFallbackController

logger = logging.getLogger(__name__)


def change_parts(payload: dict[str, Any]) -> tuple[str, dict | None, dict | None]:
    """
    Pull (event type, new row, old row) out of a postgres_changes payload.

    realtime nests the change under "data" with record/old_record; the JS
    client shape (eventType/new/old) is accepted too.
    """
    data = payload.get("data", payload) if isinstance(payload, dict) else {}
    event_type = str(data.get("type") or data.get("eventType") or "").upper()
    record = data.get("record") or data.get("new") or None
    old_record = data.get("old_record") or data.get("old") or None
    return event_type, record, old_record


class SwipeSessionWatcher:
    """Keeps one aggregator current and publishes each new snapshot."""

    def __init__(
        self,
        aggregator: SwipeSessionAggregator,
        realtime_client: AsyncClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.aggregator = aggregator
        self.realtime_client = realtime_client
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.controller = RealtimeFallbackController(self.refresh, interval=poll_interval)
        self._channel = None
        self._pending: set[asyncio.Task] = set()

    @property
    def session_id(self) -> str:
        return self.aggregator.session_id

    async def start(self) -> None:
        await self.refresh()

        channel = self.realtime_client.channel(f"swipe-session-{self.session_id}")
        channel.on_postgres_changes(
            "*", schema="public", table="swipe_votes", callback=self._on_vote_change
        )
        channel.on_postgres_changes(
            "*",
            schema="public",
            table="swipe_session_recipes",
            filter=f"session_id=eq.{self.session_id}",
            callback=self._on_recipe_change,
        )
        channel.on_postgres_changes(
            "UPDATE",
            schema="public",
            table="swipe_sessions",
            filter=f"id=eq.{self.session_id}",
            callback=self._on_session_change,
        )
        await channel.subscribe(self.controller.on_channel_status)
        self._channel = channel
        logger.info(f"Watching swipe session {self.session_id}")

    async def refresh(self) -> None:
        """Full reload; also the polling callback."""
        await self.aggregator.load()
        self._publish()

    def _publish(self) -> None:
        snapshot = self.aggregator.snapshot
        self.controller.set_session_generating(snapshot.session.status == SessionStatus.GENERATING)
        self.queue.put_nowait(snapshot.to_dict(self.aggregator.profile_id))

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # =========================================================================
    # Channel callbacks (invoked on the event loop by the realtime client)
    # =========================================================================

    def _on_vote_change(self, payload: dict[str, Any]) -> None:
        event_type, record, old_record = change_parts(payload)
        if self.aggregator.apply_vote_event(event_type, record, old_record):
            self._publish()

    def _on_session_change(self, payload: dict[str, Any]) -> None:
        _, record, old_record = change_parts(payload)
        if record:
            self._spawn(self._apply_session(record, old_record))

    def _on_recipe_change(self, payload: dict[str, Any]) -> None:
        _, record, _ = change_parts(payload)
        if record:
            self._spawn(self._apply_recipe(record))

    async def _apply_session(self, record: dict, old_record: dict | None) -> None:
        try:
            if await self.aggregator.apply_session_event(record, old_record):
                self._publish()
        except Exception as e:
            logger.warning(f"Session event for {self.session_id} failed: {e}")

    async def _apply_recipe(self, record: dict) -> None:
        try:
            if await self.aggregator.apply_recipe_event(record):
                self._publish()
        except Exception as e:
            logger.warning(f"Recipe event for {self.session_id} failed: {e}")

    # =========================================================================
    # Consumption
    # =========================================================================

    async def snapshots(self) -> AsyncIterator[dict[str, Any]]:
        """Yield snapshots until the session reaches a terminal status."""
        while True:
            snapshot = await self.queue.get()
            yield snapshot
            if not snapshot["is_active"]:
                return

    async def close(self) -> None:
        await self.controller.stop()
        for task in list(self._pending):
            task.cancel()
        if self._channel is not None:
            try:
                await self.realtime_client.remove_channel(self._channel)
            except Exception as e:
                logger.warning(f"Removing channel for {self.session_id} failed: {e}")
            self._channel = None
