# roster_server/broadcaster.py

import logging
from typing import TYPE_CHECKING

from .protocol import LiveUsersUpdate, UserCreated

if TYPE_CHECKING:
    from .channel import BroadcastChannel, Subscriber
    from .models import UserSummary
    from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """
    Sends roster snapshots and user-created notices to the live channel.

    The broadcaster only reads the registry; it never mutates it.
    """

    def __init__(self, registry: "ConnectionRegistry", channel: "BroadcastChannel"):
        self.registry = registry
        self.channel = channel

    def _roster_event(self) -> LiveUsersUpdate:
        return LiveUsersUpdate(payload=[record.to_wire() for record in self.registry.snapshot()])

    def publish(self) -> int:
        """Broadcasts the current roster to every subscriber."""
        event = self._roster_event()
        delivered = self.channel.publish(event.model_dump())
        logger.info("Roster of %d published to %d subscriber(s)", len(event.payload), delivered)
        return delivered

    def send_snapshot(self, subscriber: "Subscriber") -> None:
        """Sends the current roster to a single subscriber only."""
        subscriber.deliver(self._roster_event().model_dump())

    def publish_user_created(self, summary: "UserSummary") -> int:
        """Announces a newly stored user. This is an append notice, not a roster."""
        event = UserCreated(payload=summary.to_wire())
        delivered = self.channel.publish(event.model_dump())
        logger.info("User '%s' announced to %d subscriber(s)", summary.email, delivered)
        return delivered
