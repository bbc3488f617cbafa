# services/broadcast_service.py
"""
Broadcast sinks: best-effort real-time fan-out of meetup events.

Every sink exposes `publish(event_id, event_name, payload)`. Failures surface as
BroadcastFailure; the ETA engine catches and counts them, they never reach the
caller of a location update.
"""
import logging
from typing import Any, Dict, Protocol

from core.exceptions import BroadcastFailure
from infra.rabbitmq_client import RabbitMQClient
from infra.redis_client import RedisClient

logger = logging.getLogger(__name__)

ETA_UPDATE = "eta-update"
LOCATION_UPDATE = "location-update"
MEMBER_ARRIVED = "member-arrived"


def event_channel(event_id) -> str:
    return f"event-{event_id}"


def _envelope(event_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"event": event_name, "data": payload}


class BroadcastSink(Protocol):
    async def publish(self, event_id: int, event_name: str, payload: Dict[str, Any]) -> None:
        ...

    async def close(self) -> None:
        ...


class RedisBroadcastSink:
    """Redis PUBLISH on `event-{id}`."""

    def __init__(self, client: RedisClient):
        self.client = client

    async def publish(self, event_id: int, event_name: str, payload: Dict[str, Any]) -> None:
        channel = event_channel(event_id)
        try:
            receivers = await self.client.publish(channel, _envelope(event_name, payload))
        except Exception as e:
            raise BroadcastFailure(channel, event_name, repr(e)) from e
        logger.debug("Broadcast %s on %s reached %s subscribers", event_name, channel, receivers)

    async def close(self) -> None:
        await self.client.disconnect()


class RabbitMQBroadcastSink:
    """Topic-exchange publish routed by `event-{id}`."""

    def __init__(self, client: RabbitMQClient):
        self.client = client

    async def publish(self, event_id: int, event_name: str, payload: Dict[str, Any]) -> None:
        channel = event_channel(event_id)
        try:
            await self.client.publish_event(channel, _envelope(event_name, payload))
        except Exception as e:
            raise BroadcastFailure(channel, event_name, repr(e)) from e

    async def close(self) -> None:
        await self.client.disconnect()


class NullBroadcastSink:
    """Broadcasting disabled: log and drop."""

    async def publish(self, event_id: int, event_name: str, payload: Dict[str, Any]) -> None:
        logger.debug("Broadcast not configured. Skipping %s on %s", event_name, event_channel(event_id))

    async def close(self) -> None:
        return None


def build_broadcast_sink(settings) -> BroadcastSink:
    backend = (settings.BROADCAST_BACKEND or "none").lower()
    if backend == "redis":
        return RedisBroadcastSink(RedisClient(settings.REDIS_URL))
    if backend == "rabbitmq":
        return RabbitMQBroadcastSink(RabbitMQClient(settings.RABBITMQ_URL, settings.BROADCAST_EXCHANGE))
    if backend != "none":
        logger.warning("Unknown BROADCAST_BACKEND=%s; real-time broadcast disabled", backend)
    return NullBroadcastSink()
