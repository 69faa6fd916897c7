from __future__ import annotations

import logging
from typing import Protocol

from hint_engine.relay.bus import RelayBus

logger = logging.getLogger("hint_engine.capture")

CAPTURE_START = "CAPTURE_START"
CAPTURE_STOP = "CAPTURE_STOP"


class CaptureController(Protocol):
    async def start(self, session_id: str, tab_id: int | None) -> None:
        ...

    async def stop(self, session_id: str) -> None:
        ...


class RelayCaptureController:
    """Asks the client that owns the audio to start or stop capture."""

    def __init__(self, bus: RelayBus):
        self.bus = bus

    async def start(self, session_id: str, tab_id: int | None) -> None:
        logger.info("capture start requested | session=%s tab=%s", session_id, tab_id)
        await self.bus.publish(session_id, {"type": CAPTURE_START, "data": {"tabId": tab_id}})

    async def stop(self, session_id: str) -> None:
        logger.info("capture stop requested | session=%s", session_id)
        await self.bus.publish(session_id, {"type": CAPTURE_STOP, "data": {}})
