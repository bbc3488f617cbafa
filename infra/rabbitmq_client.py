"""
RabbitMQ client for event fan-out.

Purpose:
- Publish meetup events to a topic exchange, routed by channel name
  (e.g. "event-42"), so any number of relays can bind per event or "event-*"
- Connect lazily and reuse one robust connection per process

Production notes:
- Messages are transient: a missed ETA update is superseded by the next one
- Monitor unroutable messages when no relay is bound
"""
import json
import logging
from typing import Optional

import aio_pika  # async RabbitMQ client

logger = logging.getLogger(__name__)


class RabbitMQClient:
    """
    Async RabbitMQ publisher bound to a single topic exchange.
    """
    def __init__(self, url: str, exchange_name: str = "meetup.events"):
        self.url = url
        self.exchange_name = exchange_name
        self._connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
        self._channel: Optional[aio_pika.abc.AbstractChannel] = None
        self._exchange: Optional[aio_pika.abc.AbstractExchange] = None

    async def _ensure_connection(self) -> aio_pika.abc.AbstractExchange:
        """
        Lazily connect to RabbitMQ, open a channel and declare the exchange.
        Returns the declared exchange.
        """
        if self._connection and not self._connection.is_closed and self._exchange is not None:
            return self._exchange
        logger.info("[RabbitMQClient] Connecting to %s", self.url)
        self._connection = await aio_pika.connect_robust(self.url)
        self._channel = await self._connection.channel()
        self._exchange = await self._channel.declare_exchange(
            self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True
        )
        logger.info("[RabbitMQClient] Connected and exchange %s declared", self.exchange_name)
        return self._exchange

    async def publish_event(self, routing_key: str, message: dict) -> bool:
        """
        Publish a JSON event to the exchange.

        Payload shape:
        {
          "event": "eta-update|location-update|member-arrived",
          "data": {...}
        }
        """
        exchange = await self._ensure_connection()
        body = json.dumps(message, ensure_ascii=False).encode("utf-8")
        await exchange.publish(
            aio_pika.Message(body=body, content_type="application/json"),
            routing_key=routing_key,
        )
        logger.debug("[RabbitMQClient] Published %s on %s", message.get("event"), routing_key)
        return True

    async def disconnect(self):
        if self._connection and not self._connection.is_closed:
            await self._connection.close()
        self._connection = None
        self._channel = None
        self._exchange = None
