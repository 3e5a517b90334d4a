# roster_client/app_main.py

import argparse
import logging
import queue
from typing import Optional

from roster_server import protocol
from roster_server.logging_setup import configure_logging

from .config import settings
from .network_client import NetworkClient
from .roster_view import RosterView, render_table

logger = logging.getLogger(__name__)


class DashboardApp:
    """
    Console dashboard: watches the live roster and, if credentials are given,
    logs in and joins it.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, email: Optional[str] = None, password: Optional[str] = None):
        self.ui_queue: "queue.Queue[dict]" = queue.Queue()
        self.network_client = NetworkClient(self.ui_queue)
        self.view = RosterView()
        self.email = email
        self.password = password

    def run(self, host: str, port: int):
        self.network_client.start(host, port)
        try:
            while True:
                try:
                    message = self.ui_queue.get(timeout=self.POLL_INTERVAL)
                except queue.Empty:
                    continue
                if self.handle_message(message):
                    print(render_table(self.view.rows()), flush=True)
        except KeyboardInterrupt:
            logger.info("Application closing...")
        finally:
            self.network_client.stop()

    def handle_message(self, message: dict) -> bool:
        """Applies one incoming message. Returns True if the table changed."""
        mtype = message.get("type")
        payload = message.get("payload")

        if mtype == "network_connected":
            self.network_client.send(protocol.VIEWER_JOIN)
            self.network_client.send(protocol.LIST_USERS)
            if self.email and self.password:
                self.network_client.send(protocol.LOGIN, {"email": self.email, "password": self.password})
            return False

        try:
            event = protocol.parse_presence_event(message)
        except ValueError as e:
            logger.warning("Ignoring malformed %s: %s", mtype, e)
            return False

        if isinstance(event, protocol.LiveUsersUpdate):
            # Full roster: replaces the online state.
            self.view.apply_live_users(event.payload)
            return True

        if isinstance(event, protocol.UserCreated):
            # One new user: appended to the list.
            self.view.add_user(dict(event.payload))
            return True

        if mtype == protocol.RESPONSE:
            return self._handle_response(payload or {})

        if mtype in ("network_disconnected", "network_error", "network_stopped"):
            logger.warning("Network event: %s", message)
            return False

        logger.debug("Unhandled message: %s", message)
        return False

    def _handle_response(self, payload: dict) -> bool:
        request, status = payload.get("request"), payload.get("status")
        if status != "ok":
            logger.error("%s failed: %s", request, payload.get("message", "Server error"))
            return False

        if request == protocol.LIST_USERS:
            self.view.set_users(payload.get("users", []))
            return True

        if request == protocol.LOGIN:
            user = payload.get("user") or {}
            self.view.current_user = user
            self.network_client.send(protocol.JOIN_LIVE_USERS, {
                "email": user.get("email"),
                "firstName": user.get("firstName"),
                "lastName": user.get("lastName"),
            })
            logger.info("Logged in as %s", user.get("email"))
        return False


def main():
    ap = argparse.ArgumentParser(description="Live roster dashboard")
    ap.add_argument("--host", default=settings.SERVER_HOST, help="Server host")
    ap.add_argument("--port", type=int, default=settings.SERVER_PORT, help="Server port")
    ap.add_argument("--email", help="Log in and appear online as this user")
    ap.add_argument("--password", help="Password for --email")
    args = ap.parse_args()

    configure_logging(settings.LOG_LEVEL)
    DashboardApp(args.email, args.password).run(args.host, args.port)


if __name__ == "__main__":
    main()
