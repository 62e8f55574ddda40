import json
import logging
from typing import Any, Dict, Iterable

from messaging.core.config import get_settings


logger = logging.getLogger(__name__)


class NoopBus:

    enabled = False

    async def publish(self, channel: str, message: str) -> None:
        return


class RedisBus:

    enabled = True

    def __init__(self, url: str) -> None:
        import redis.asyncio as redis

        self._redis = redis.from_url(url)

    async def publish(self, channel: str, message: str) -> None:
        await self._redis.publish(channel, message)

    async def close(self) -> None:
        await self._redis.aclose()


_bus = None


async def get_bus():
    global _bus
    if _bus is not None:
        return _bus
    url = get_settings().redis_url
    _bus = RedisBus(url) if url else NoopBus()
    return _bus


async def close_bus() -> None:
    global _bus
    if isinstance(_bus, RedisBus):
        await _bus.close()
    _bus = None


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


async def notify_participants(recipients: Iterable[str], event: str, data: Dict[str, Any]) -> None:
    """Best-effort fan-out of an event to each recipient's channel."""
    payload = json.dumps({"type": event, "data": data}, default=str)
    bus = await get_bus()
    for user_id in recipients:
        try:
            await bus.publish(user_channel(user_id), payload)
        except Exception as exc:
            logger.warning("failed to publish %s to user %s: %s", event, user_id, exc)
