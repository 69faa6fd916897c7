from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Awaitable, Callable, Protocol

logger = logging.getLogger("hint_engine.relay.bus")

RelayHandler = Callable[[str, dict, str], Awaitable[None]]


class RelayBus(Protocol):
    async def publish(self, session_id: str, payload: dict) -> None:
        ...

    async def listen(self, handler: RelayHandler) -> None:
        ...


class LocalRelayBus:
    """In-process fan-out to listeners registered on this instance."""

    def __init__(self, instance_id: str = "local"):
        self._instance_id = instance_id
        self._handlers: list[RelayHandler] = []

    async def publish(self, session_id: str, payload: dict) -> None:
        if not session_id:
            return
        for handler in list(self._handlers):
            try:
                await handler(session_id, dict(payload or {}), self._instance_id)
            except Exception as exc:
                logger.warning("local relay handler failed | session=%s err=%s", session_id, exc)

    async def listen(self, handler: RelayHandler) -> None:
        self._handlers.append(handler)
        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            self._handlers.remove(handler)


class RedisRelayBus:
    def __init__(self, redis_url: str, instance_id: str):
        try:
            import redis.asyncio as redis_async  # type: ignore
        except Exception as exc:
            raise RuntimeError("redis package not installed; install 'redis' to enable the relay bus") from exc

        self._redis = redis_async.from_url(redis_url, decode_responses=True)
        self._instance_id = str(instance_id or "instance-unknown")
        self._pattern = "session:*:events"

    @staticmethod
    def channel(session_id: str) -> str:
        return f"session:{session_id}:events"

    async def publish(self, session_id: str, payload: dict) -> None:
        if not session_id:
            return
        envelope = {
            "source_instance": self._instance_id,
            "published_at": time.time(),
            "payload": dict(payload or {}),
        }
        await self._redis.publish(self.channel(session_id), json.dumps(envelope))

    async def listen(self, handler: RelayHandler) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.psubscribe(self._pattern)
        try:
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if not message:
                    continue
                if str(message.get("type") or "") not in {"message", "pmessage"}:
                    continue

                parts = str(message.get("channel") or "").split(":")
                if len(parts) < 3:
                    continue
                session_id = parts[1]

                try:
                    data = json.loads(str(message.get("data") or "{}"))
                except ValueError:
                    continue

                source_instance = str(data.get("source_instance") or "")
                payload = data.get("payload") if isinstance(data.get("payload"), dict) else {}
                await handler(session_id, payload, source_instance)
        finally:
            await pubsub.close()


def build_relay_bus(instance_id: str, enabled: bool = False, redis_url: str = "") -> RelayBus:
    if not enabled:
        return LocalRelayBus(instance_id=instance_id)

    redis_url = str(redis_url or "").strip()
    if not redis_url:
        raise RuntimeError("RELAY_BUS_ENABLED=true requires REDIS_URL")

    return RedisRelayBus(redis_url=redis_url, instance_id=instance_id)
