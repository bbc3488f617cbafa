"""
Redis client for real-time fan-out.

Purpose:
- Provide an async Redis connection for pub/sub publishing
- Publish meetup events (eta-update, location-update, member-arrived) on
  per-event channels so connected clients' gateways can relay them

Usage:
- await client.publish("event-42", {"event": "eta-update", "data": {...}})

Production notes:
- Pub/sub is fire-and-forget: subscribers that are offline miss messages
- Use a connection pool sized for the number of concurrent publishers
"""
import json
import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisClient:
    """Async Redis client wrapper."""

    def __init__(self, url: str):
        self.url = url
        self.redis: Optional[redis.Redis] = None

    async def connect(self) -> redis.Redis:
        """Lazily initialize the async Redis connection."""
        if self.redis is None:
            logger.info("[RedisClient] Connecting to %s", self.url)
            self.redis = redis.Redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self.redis

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            logger.info("[RedisClient] Disconnected from Redis")

    async def publish(self, channel: str, message: dict) -> int:
        """
        Publish a JSON message on a channel.

        Returns:
            number of subscribers that received it
        Raises:
            redis.RedisError on connection or command failure
        """
        client = await self.connect()
        body = json.dumps(message, ensure_ascii=False)
        receivers = await client.publish(channel, body)
        logger.debug("[RedisClient] PUBLISH %s receivers=%s", channel, receivers)
        return receivers
