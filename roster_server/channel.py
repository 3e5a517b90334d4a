# roster_server/channel.py

import logging
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """Anything that can receive broadcast events without blocking."""

    connection_id: str

    def deliver(self, event: Dict[str, Any]) -> None:
        ...


class BroadcastChannel:
    """
    A named publish/subscribe group.

    Subscription follows the connection lifecycle. Publishing walks a copy of
    the current subscribers, so subscribe/unsubscribe during a publish is safe.
    """

    def __init__(self, name: str):
        self.name = name
        self._subscribers: Dict[str, Subscriber] = {}

    def subscribe(self, subscriber: Subscriber) -> bool:
        """Adds the subscriber. Returns False if it was already subscribed."""
        if subscriber.connection_id in self._subscribers:
            return False
        self._subscribers[subscriber.connection_id] = subscriber
        logger.debug("Connection %s joined channel '%s'", subscriber.connection_id, self.name)
        return True

    def unsubscribe(self, subscriber: Subscriber) -> bool:
        """Removes the subscriber. Returns False if it was not subscribed."""
        removed = self._subscribers.pop(subscriber.connection_id, None)
        return removed is not None

    def is_subscribed(self, subscriber: Subscriber) -> bool:
        return subscriber.connection_id in self._subscribers

    def subscribers(self) -> List[Subscriber]:
        return list(self._subscribers.values())

    def publish(self, event: Dict[str, Any]) -> int:
        """
        Delivers the event to every current subscriber, fire-and-forget.

        A subscriber that fails is logged and skipped. Returns the number of
        subscribers that accepted the event.
        """
        delivered = 0
        for subscriber in self.subscribers():
            try:
                subscriber.deliver(event)
                delivered += 1
            except Exception:
                logger.warning(
                    "Dropping '%s' for connection %s on channel '%s'",
                    event.get("type"), subscriber.connection_id, self.name,
                    exc_info=True,
                )
        return delivered

    def __len__(self) -> int:
        return len(self._subscribers)
