from __future__ import annotations

import asyncio
import logging
import time

from hint_engine.metrics import increment_metric
from hint_engine.relay.bus import RelayBus

logger = logging.getLogger("hint_engine.relay.mirror")

TRANSCRIPT_UPDATE = "TRANSCRIPT_UPDATE"


class ConsoleMirror:
    """
    Mirrors session state to a remote viewer through the relay bus.

    Transcript updates are debounced and coalesced (latest wins). Every other
    event is published immediately. Delivery is best-effort: publish failures
    are logged and counted, never raised.
    """

    def __init__(self, bus: RelayBus, debounce_ms: int = 200):
        self.bus = bus
        self.debounce_sec = max(0, int(debounce_ms)) / 1000.0
        self._pending: tuple[str, dict] | None = None
        self._flush_task: asyncio.Task | None = None

    async def _publish(self, session_id: str, payload: dict) -> bool:
        try:
            await self.bus.publish(session_id, payload)
            return True
        except Exception as exc:
            increment_metric("relay_publish_failures")
            logger.warning("relay publish failed | session=%s type=%s err=%s", session_id, payload.get("type"), exc)
            return False

    async def publish_event(self, session_id: str | None, event_type: str, data: dict | None = None) -> bool:
        if not session_id:
            return False
        payload = {"type": event_type, "data": dict(data or {}), "timestamp": time.time() * 1000.0}
        return await self._publish(session_id, payload)

    def publish_transcript(self, session_id: str | None, state: dict) -> None:
        if not session_id:
            return
        self._pending = (session_id, dict(state or {}))
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.get_running_loop().create_task(self._flush_after_delay())

    async def _flush_after_delay(self) -> None:
        # updates that land while a publish is in flight are picked up by the next pass
        while self._pending is not None:
            await asyncio.sleep(self.debounce_sec)
            pending, self._pending = self._pending, None
            if pending is None:
                return
            session_id, state = pending
            await self.publish_event(session_id, TRANSCRIPT_UPDATE, state)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def cancel_pending(self) -> None:
        self._pending = None
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
        self._flush_task = None
