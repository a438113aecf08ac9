"""Fan-out of published payloads to subscriber queues.

The tracker is the only publisher; every SSE connection owns one
:class:`Subscription`. Each subscription buffers at most ``queue_size``
payloads, so a stalled client never blocks :meth:`Broadcaster.publish`.
Every method must be called from the event loop that owns the
subscriptions; none of them is thread-safe.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any

_logger = logging.getLogger(__name__)

_CLOSED = object()


class OverflowPolicy(StrEnum):
    """What :meth:`Broadcaster.publish` does when a subscriber's buffer is full."""

    DROP_OLDEST = "drop_oldest"
    DISCONNECT = "disconnect"


class Subscription:
    """Receive-only handle yielding published payloads until closed.

    Iterate with ``async for payload in subscription``; iteration ends once
    the subscription is unsubscribed (or the broadcaster closes) and the
    already-buffered payloads have been drained.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        # One extra slot so the close marker always fits.
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=capacity + 1)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Payloads buffered and not yet consumed."""
        return self._queue.qsize() - (1 if self._closed else 0)

    def _is_full(self) -> bool:
        return self._queue.qsize() >= self._capacity

    def _put(self, payload: bytes) -> None:
        self._queue.put_nowait(payload)

    def _drop_oldest(self) -> None:
        self._queue.get_nowait()
        self.dropped += 1

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> bytes | None:
        """Wait for the next payload; ``None`` once the subscription is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any later caller.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> bytes:
        payload = await self.get()
        if payload is None:
            raise StopAsyncIteration
        return payload


class Broadcaster:
    """Process-wide hub delivering every published payload to all live subscribers.

    Late subscribers only see payloads published after they subscribed.

    Parameters
    ----------
    queue_size : int
        Payloads buffered per subscriber.
    overflow_policy : OverflowPolicy
        ``DROP_OLDEST`` discards the subscriber's oldest buffered payload to
        make room; ``DISCONNECT`` unsubscribes the subscriber instead.
    """

    def __init__(
        self,
        *,
        queue_size: int = 256,
        overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
    ) -> None:
        if queue_size < 1:
            raise ValueError(f"queue_size must be at least 1, got {queue_size}")
        self._queue_size = queue_size
        self._overflow_policy = overflow_policy
        self._subscribers: dict[int, Subscription] = {}
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> Subscription:
        """Register a new subscriber.

        After :meth:`close` the returned subscription is already closed.
        """
        subscription = Subscription(self._queue_size)
        if self._closed:
            subscription._close()
            return subscription
        self._subscribers[id(subscription)] = subscription
        _logger.debug("Subscriber added (%d active)", len(self._subscribers))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove *subscription* and end its iteration. Idempotent."""
        removed = self._subscribers.pop(id(subscription), None)
        subscription._close()
        if removed is not None:
            _logger.debug("Subscriber removed (%d active)", len(self._subscribers))

    def publish(self, payload: bytes) -> int:
        """Queue *payload* for every registered subscriber without waiting.

        Returns
        -------
        int
            Number of subscribers the payload was queued for.
        """
        # Snapshot: the disconnect policy unsubscribes while iterating.
        subscribers = tuple(self._subscribers.values())
        delivered = 0
        for subscription in subscribers:
            if subscription.closed:
                continue
            if subscription._is_full():
                if self._overflow_policy is OverflowPolicy.DISCONNECT:
                    _logger.warning("Subscriber buffer full (%d payloads); disconnecting", self._queue_size)
                    self.unsubscribe(subscription)
                    continue
                subscription._drop_oldest()
                _logger.warning(
                    "Subscriber buffer full; dropped oldest payload (%d dropped so far)",
                    subscription.dropped,
                )
            subscription._put(payload)
            delivered += 1
        return delivered

    def close(self) -> None:
        """Unsubscribe everyone and refuse new subscribers."""
        self._closed = True
        subscribers = tuple(self._subscribers.values())
        self._subscribers.clear()
        for subscription in subscribers:
            subscription._close()
        if subscribers:
            _logger.info("Broadcaster closed; released %d subscribers", len(subscribers))
