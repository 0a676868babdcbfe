import asyncio
import json
import logging
from typing import Any, AsyncIterator, Set, Tuple

ADMIN_CHANNEL = "admin-updates"
EMAIL_QUEUE_EVENT = "email-queue-updated"
THRESHOLDS_EVENT = "thresholds-updated"

log = logging.getLogger(__name__)


class EventBroadcaster:
    """Fan-out of realtime notifications to Server-Sent Events subscribers.

    publish() is fire-and-forget and may be called from sync route handlers running
    in the threadpool, so each queue is fed through its owning loop.
    """

    def __init__(self, max_queue: int = 100):
        self._subscribers: Set[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = set()
        self._max_queue = max_queue

    async def subscribe(self, channel: str = ADMIN_CHANNEL) -> AsyncIterator[str]:  # pragma: no cover (async generator)
        q: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        sub = (asyncio.get_running_loop(), q)
        self._subscribers.add(sub)
        try:
            while True:
                msg_channel, msg = await q.get()
                if msg_channel in (channel, "*"):
                    yield msg
        finally:
            self._subscribers.discard(sub)

    def publish(self, channel: str, event: str, payload: Any = None):
        data = json.dumps({"channel": channel, "payload": payload or {}}, default=str)
        message = f"event: {event}\ndata: {data}\n\n"
        for loop, q in list(self._subscribers):
            try:
                loop.call_soon_threadsafe(self._offer, q, channel, message)
            except RuntimeError:
                # subscriber loop already closed
                self._subscribers.discard((loop, q))
        log.debug("event_published", extra={"channel": channel, "event": event})

    def keepalive(self):
        for loop, q in list(self._subscribers):
            try:
                loop.call_soon_threadsafe(self._offer, q, "*", "event: keepalive\ndata: {}\n\n")
            except RuntimeError:
                self._subscribers.discard((loop, q))

    @staticmethod
    def _offer(q: asyncio.Queue, channel: str, message: str):
        if not q.full():
            q.put_nowait((channel, message))

    def subscriber_count(self) -> int:
        return len(self._subscribers)


broadcaster = EventBroadcaster()


def notify(event: str, payload: Any = None, channel: str = ADMIN_CHANNEL):
    """Publish a state-change notification; failures never reach the caller."""
    try:
        broadcaster.publish(channel, event, payload)
    except Exception:
        log.warning("event_publish_failed", exc_info=True, extra={"channel": channel, "event": event})
