"""In-process event bus keyed by client id."""

from __future__ import annotations

import asyncio
import logging

from dataclasses import dataclass, field

from diffsage.domain.review.events import ReviewEvent
from diffsage.shared.types import ClientId

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Subscription:
    """A client's view of the bus: an async iterator over its events.

    Events are delivered in publish order. Iteration ends once the
    subscription is closed and every event queued before the close has been
    consumed.
    """

    client_id: ClientId
    _bus: InMemoryEventBus
    _queue: asyncio.Queue[ReviewEvent | None] = field(default_factory=asyncio.Queue)
    _closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> ReviewEvent:
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def drain(self) -> list[ReviewEvent]:
        """Return every event currently queued, without waiting."""
        events: list[ReviewEvent] = []
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if event is None:
                self._queue.put_nowait(None)
                break
            events.append(event)
        return events

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def _deliver(self, event: ReviewEvent | None) -> None:
        self._queue.put_nowait(event)


@dataclass
class InMemoryEventBus:
    """Fan-out of review events to every subscription of the target client.

    Publishing never blocks; queues are unbounded. Events for a client with
    no subscribers are dropped.
    """

    _subscriptions: dict[ClientId, list[Subscription]] = field(default_factory=dict)

    def subscribe(self, client_id: ClientId) -> Subscription:
        subscription = Subscription(client_id=client_id, _bus=self)
        self._subscriptions.setdefault(client_id, []).append(subscription)
        logger.debug("Client %s subscribed", client_id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription.closed:
            return
        subscription._closed = True
        subscribers = self._subscriptions.get(subscription.client_id, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._subscriptions.pop(subscription.client_id, None)
        subscription._deliver(None)
        logger.debug("Client %s unsubscribed", subscription.client_id)

    def publish(self, event: ReviewEvent) -> int:
        """Deliver *event* to its client's subscriptions; returns how many."""
        subscribers = self._subscriptions.get(event.client_id, [])
        if not subscribers:
            logger.debug(
                "No subscribers for client %s, dropping %s", event.client_id, event.kind
            )
            return 0
        for subscription in subscribers:
            subscription._deliver(event)
        return len(subscribers)

    def subscriber_count(self, client_id: ClientId) -> int:
        return len(self._subscriptions.get(client_id, []))
