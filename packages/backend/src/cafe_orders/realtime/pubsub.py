"""Redis pub/sub relay — shares hub events between app processes.

With several uvicorn workers each process has its own BroadcastHub, and a
WebSocket only sees events published in the process it is connected to.
The relay closes that gap:

- every local publish is also PUBLISHed on one Redis channel, tagged
  with this process's origin id
- every message from another origin is delivered to the local hub

Redis pub/sub is fire-and-forget: if Redis is down, events still reach
local subscribers, and remote ones simply miss them. Outgoing messages go
through a single queue so their order on the channel matches publish order.
"""

import asyncio
import json
import uuid
from typing import Optional

import redis.asyncio as aioredis
import structlog

from cafe_orders.realtime.hub import BroadcastHub

logger = structlog.get_logger()

CHANNEL = "cafe:orders:events"


async def connect_redis(url: str) -> aioredis.Redis:
    """Open a Redis connection pool and verify it answers."""
    r = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    await r.ping()
    return r


class RedisRelay:
    """Bridges a local BroadcastHub to a Redis channel."""

    def __init__(self, redis: aioredis.Redis, hub: BroadcastHub, channel: str = CHANNEL):
        self.redis = redis
        self.hub = hub
        self.channel = channel
        self.origin = uuid.uuid4().hex
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._pubsub = None
        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.channel)
        self._tasks = [
            asyncio.create_task(self._drain_outbox()),
            asyncio.create_task(self._listen()),
        ]
        self.hub.attach_relay(self)
        logger.info("relay.started", channel=self.channel, origin=self.origin)

    async def stop(self) -> None:
        self.hub.attach_relay(None)
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None
        logger.info("relay.stopped", origin=self.origin)

    # ─── Outgoing ────────────────────────────────────────

    def forward(self, message: str) -> None:
        """Queue a locally published message for Redis. Never blocks."""
        self._outbox.put_nowait(json.dumps({"origin": self.origin, "message": message}))

    async def _drain_outbox(self) -> None:
        while True:
            envelope = await self._outbox.get()
            try:
                await self.redis.publish(self.channel, envelope)
            except Exception as e:
                logger.warning("relay.publish_failed", error=str(e))

    # ─── Incoming ────────────────────────────────────────

    async def _listen(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message["type"] == "message":
                    self.handle(message["data"])
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("relay.listener_failed", channel=self.channel)

    def handle(self, raw: str) -> Optional[int]:
        """Deliver a message from another process to local subscribers.

        Returns the local delivery count, or None if the message was
        our own or unreadable.
        """
        try:
            envelope = json.loads(raw)
            origin = envelope["origin"]
            message = envelope["message"]
        except (json.JSONDecodeError, TypeError, KeyError):
            logger.warning("relay.bad_message", raw=str(raw)[:200])
            return None
        if origin == self.origin:
            return None
        return self.hub.deliver(message)
