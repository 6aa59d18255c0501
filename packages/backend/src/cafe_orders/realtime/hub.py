"""Broadcast hub — fans order events out to connected subscribers.

Each subscriber owns a FIFO queue drained by its own pump task, so:
- a subscriber sees events in exactly the order publish() was called
- a slow or broken subscriber never delays the publisher or the others
- publish() is synchronous and never waits on delivery

A subscriber whose send fails, or whose backlog exceeds max_pending, is
dropped from the registry. There is no replay: subscribers only see
events published after they registered.

The hub is created by create_app() and reached through app.state.hub.
"""

import asyncio
import json
import uuid
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog
from fastapi import Request

logger = structlog.get_logger()

Send = Callable[[str], Awaitable[Any]]


class Relay(Protocol):
    """Something that carries hub events to other processes."""

    def forward(self, message: str) -> None: ...


class Subscriber:
    """One registered receiver and its pending events."""

    def __init__(self, send: Send, max_pending: int = 0):
        self.id = uuid.uuid4().hex
        self.send = send
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending)
        self.task: Optional[asyncio.Task] = None

    def offer(self, message: str) -> bool:
        """Enqueue without waiting. False if the backlog is full."""
        try:
            self.queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            return False


class BroadcastHub:
    """Registry of live subscribers plus non-blocking fan-out."""

    def __init__(self, max_pending: int = 0):
        self.max_pending = max_pending
        self._subscribers: dict[str, Subscriber] = {}
        self._relay: Optional[Relay] = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def attach_relay(self, relay: Optional[Relay]) -> None:
        self._relay = relay

    # ─── Registry ────────────────────────────────────────

    def subscribe(self, send: Send) -> Subscriber:
        """Register send() as a subscriber. Must be called inside the event loop."""
        subscriber = Subscriber(send, self.max_pending)
        self._subscribers[subscriber.id] = subscriber
        subscriber.task = asyncio.create_task(self._pump(subscriber))
        logger.info("hub.subscribed", subscriber=subscriber.id,
                    subscribers=len(self._subscribers))
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove a subscriber and discard its backlog. Safe to call twice."""
        if self._subscribers.pop(subscriber.id, None) is None:
            return

        task = subscriber.task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        # Mark discarded events done so flush() never waits on them.
        while True:
            try:
                subscriber.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            subscriber.queue.task_done()

        logger.info("hub.unsubscribed", subscriber=subscriber.id,
                    subscribers=len(self._subscribers))

    # ─── Fan-out ─────────────────────────────────────────

    def publish(self, event_type: str, data: Any) -> int:
        """Broadcast an event to every current subscriber (and the relay).

        Returns the number of local subscribers it was queued for.
        """
        message = json.dumps({"type": event_type, "data": data}, default=str)
        delivered = self.deliver(message)
        if self._relay is not None:
            self._relay.forward(message)
        return delivered

    def deliver(self, message: str) -> int:
        """Queue an already-encoded message for local subscribers only."""
        delivered = 0
        # Snapshot: subscribers may come and go while we iterate.
        for subscriber in list(self._subscribers.values()):
            if self.enqueue(subscriber, message):
                delivered += 1
        return delivered

    def enqueue(self, subscriber: Subscriber, message: str) -> bool:
        """Queue a message for one subscriber, dropping it if the backlog is full."""
        if subscriber.offer(message):
            return True
        logger.warning(
            "hub.subscriber_overflow",
            subscriber=subscriber.id,
            max_pending=self.max_pending,
        )
        self.unsubscribe(subscriber)
        return False

    async def _pump(self, subscriber: Subscriber) -> None:
        while True:
            message = await subscriber.queue.get()
            try:
                await subscriber.send(message)
            except Exception as e:
                logger.warning(
                    "hub.subscriber_dropped",
                    subscriber=subscriber.id,
                    error=str(e),
                )
                self.unsubscribe(subscriber)
                return
            finally:
                subscriber.queue.task_done()

    # ─── Lifecycle ───────────────────────────────────────

    async def flush(self) -> None:
        """Wait until every current subscriber has drained its queue."""
        await asyncio.gather(
            *(s.queue.join() for s in list(self._subscribers.values()))
        )

    async def close(self) -> None:
        """Drop every subscriber and stop their pumps."""
        subscribers = list(self._subscribers.values())
        for subscriber in subscribers:
            self.unsubscribe(subscriber)
        tasks = [s.task for s in subscribers if s.task is not None]
        await asyncio.gather(*tasks, return_exceptions=True)


def get_hub(request: Request) -> BroadcastHub:
    """FastAPI dependency — the app's hub."""
    return request.app.state.hub
