# roster_server/lifecycle.py

import asyncio
import enum
import logging
from typing import TYPE_CHECKING, Any, Dict

from .models import Joined, JoinResult, PresenceRecord, Rejected, make_display_name, normalize_email

if TYPE_CHECKING:
    from .broadcaster import PresenceBroadcaster
    from .channel import BroadcastChannel, Subscriber
    from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNJOINED = "unjoined"
    VIEWER = "viewer"
    PARTICIPANT = "participant"
    CLOSED = "closed"


class SessionLifecycleHandler:
    """
    Drives the connection registry from transport events.

    Every mutation, the snapshot taken from it and the resulting publish run
    inside one lock with no await in between, so a broadcast never shows a
    half-applied roster.
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        channel: "BroadcastChannel",
        broadcaster: "PresenceBroadcaster",
    ):
        self.registry = registry
        self.channel = channel
        self.broadcaster = broadcaster
        self._states: Dict[str, SessionState] = {}
        self._lock = asyncio.Lock()

    def state_of(self, connection_id: str) -> SessionState:
        # Unknown ids have either never opened or were closed and forgotten.
        return self._states.get(connection_id, SessionState.CLOSED)

    async def open(self, subscriber: "Subscriber") -> None:
        async with self._lock:
            self._states[subscriber.connection_id] = SessionState.UNJOINED
        logger.info("Connection %s opened", subscriber.connection_id)

    async def viewer_join(self, subscriber: "Subscriber") -> bool:
        """Subscribes a read-only viewer and sends it the roster privately."""
        async with self._lock:
            state = self.state_of(subscriber.connection_id)
            if state is SessionState.CLOSED:
                return False
            self.channel.subscribe(subscriber)
            if state is SessionState.UNJOINED:
                self._states[subscriber.connection_id] = SessionState.VIEWER
            self.broadcaster.send_snapshot(subscriber)
        return True

    async def join_live_users(self, subscriber: "Subscriber", payload: Any) -> JoinResult:
        """Adds the connection to the roster and broadcasts the new roster."""
        connection_id = subscriber.connection_id
        if not isinstance(payload, dict):
            return self._reject(connection_id, "payload must be an object")
        email = payload.get("email")
        if not isinstance(email, str) or not email.strip():
            return self._reject(connection_id, "email is required")

        record = PresenceRecord(
            connection_id=connection_id,
            email=normalize_email(email),
            display_name=make_display_name(
                _as_text(payload.get("firstName")), _as_text(payload.get("lastName"))
            ),
        )

        async with self._lock:
            if self.state_of(connection_id) is SessionState.CLOSED:
                return self._reject(connection_id, "connection is closed")
            self.registry.upsert(connection_id, record)
            self.channel.subscribe(subscriber)
            self._states[connection_id] = SessionState.PARTICIPANT
            self.broadcaster.publish()

        logger.info("User joined: %s (%s)", record.email, connection_id)
        return Joined(record=record)

    async def close(self, subscriber: "Subscriber") -> bool:
        """
        Tears down the connection. Returns True if a roster broadcast followed,
        i.e. the connection had a presence record.
        """
        connection_id = subscriber.connection_id
        async with self._lock:
            if self.state_of(connection_id) is SessionState.CLOSED:
                return False
            self._states.pop(connection_id, None)
            self.channel.unsubscribe(subscriber)
            removed = self.registry.remove(connection_id)
            if removed is not None:
                self.broadcaster.publish()

        if removed is not None:
            logger.info("User disconnected: %s (%s)", removed.email, connection_id)
        else:
            logger.info("Connection %s closed", connection_id)
        return removed is not None

    def _reject(self, connection_id: str, reason: str) -> Rejected:
        logger.debug("Ignoring join from %s: %s", connection_id, reason)
        return Rejected(reason=reason)


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
