# roster_server/router.py

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict

from . import protocol
from .errors import DuplicateUserError, ValidationError

if TYPE_CHECKING:
    from .auth import Authenticator
    from .connection import ClientSession
    from .lifecycle import SessionLifecycleHandler
    from .users import UserService

logger = logging.getLogger(__name__)

Handler = Callable[["ClientSession", Any], Awaitable[None]]


class Router:
    """
    Dispatches inbound named events from a session to the right handler.
    """

    def __init__(
        self,
        lifecycle: "SessionLifecycleHandler",
        users: "UserService",
        authenticator: "Authenticator",
    ):
        self.lifecycle = lifecycle
        self.users = users
        self.authenticator = authenticator
        self._handlers: Dict[str, Handler] = {
            protocol.VIEWER_JOIN: self._viewer_join,
            protocol.JOIN_LIVE_USERS: self._join_live_users,
            protocol.REGISTER: self._register,
            protocol.LOGIN: self._login,
            protocol.LIST_USERS: self._list_users,
        }

    async def dispatch(self, session: "ClientSession", envelope: Dict[str, Any]) -> None:
        msg_type = envelope.get("type")
        handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            logger.warning("Unknown command type %r from %s", msg_type, session.connection_id)
            session.deliver(protocol.make_response(
                "error", str(msg_type), f"Unknown command type: {msg_type}"))
            return
        await handler(session, envelope.get("payload"))

    async def _viewer_join(self, session: "ClientSession", payload: Any) -> None:
        await self.lifecycle.viewer_join(session)

    async def _join_live_users(self, session: "ClientSession", payload: Any) -> None:
        # A rejected join is deliberately not answered.
        await self.lifecycle.join_live_users(session, payload)

    async def _register(self, session: "ClientSession", payload: Any) -> None:
        try:
            user = await self.users.register(payload if isinstance(payload, dict) else {})
        except (ValidationError, DuplicateUserError) as e:
            session.deliver(protocol.make_response("error", protocol.REGISTER, str(e)))
            return
        session.deliver(protocol.make_response("ok", protocol.REGISTER, "User saved", user=user))

    async def _login(self, session: "ClientSession", payload: Any) -> None:
        payload = payload if isinstance(payload, dict) else {}
        email, password = payload.get("email"), payload.get("password")
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            session.deliver(protocol.make_response(
                "error", protocol.LOGIN, "Email and Password required"))
            return

        user = await self.authenticator.authenticate(email, password)
        if user is None:
            session.deliver(protocol.make_response(
                "error", protocol.LOGIN, "Invalid email or password"))
            return
        session.deliver(protocol.make_response("ok", protocol.LOGIN, "Login successful", user=user))

    async def _list_users(self, session: "ClientSession", payload: Any) -> None:
        users = await self.users.list_users()
        session.deliver(protocol.make_response("ok", protocol.LIST_USERS, "Users", users=users))
