# roster_server/app.py

import asyncio
import logging
from typing import Optional

from .auth import Authenticator
from .broadcaster import PresenceBroadcaster
from .channel import BroadcastChannel
from .config import Settings, settings
from .connection import ClientSession
from .db_async import Database
from .lifecycle import SessionLifecycleHandler
from .logging_setup import configure_logging
from .registry import ConnectionRegistry
from .router import Router
from .secure_channel import ServerKeyPair
from .users import UserService

logger = logging.getLogger(__name__)


class Server:
    """
    The live roster server.
    Wires the presence core to storage and manages client connections.
    """

    def __init__(self, config: Settings = settings, db: Optional[Database] = None):
        self.host = config.SERVER_HOST
        self.port = config.SERVER_PORT

        logger.info("Generating RSA-%d key pair for secure key exchange...", config.RSA_KEY_SIZE)
        self.keypair = ServerKeyPair(config.RSA_KEY_SIZE)

        # Presence core
        self.registry = ConnectionRegistry()
        self.channel = BroadcastChannel(config.LIVE_CHANNEL)
        self.broadcaster = PresenceBroadcaster(self.registry, self.channel)
        self.lifecycle = SessionLifecycleHandler(self.registry, self.channel, self.broadcaster)

        # Storage and credentials
        self.db = db or Database(config.DATABASE_PATH)
        self.authenticator = Authenticator(self.db)
        self.users = UserService(self.db, on_created=self.broadcaster.publish_user_created)

        self.router = Router(self.lifecycle, self.users, self.authenticator)
        self._server: Optional[asyncio.AbstractServer] = None
        logger.info("Server components initialized.")

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Executed for each new client connection."""
        session = ClientSession(self, reader, writer)
        await session.handle_connection()

    async def listen(self) -> asyncio.AbstractServer:
        """Connects the database and starts accepting connections."""
        await self.db.connect()
        self._server = await asyncio.start_server(self.handle_client, self.host, self.port)
        addrs = ", ".join(str(sock.getsockname()) for sock in self._server.sockets)
        logger.info("Serving on %s", addrs)
        return self._server

    async def start(self):
        server = await self.listen()
        async with server:
            await server.serve_forever()

    async def stop(self):
        """Gracefully stops the server and closes the database connection."""
        logger.info("Shutting down server...")
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        await self.db.close()
        logger.info("Server shut down gracefully.")


async def main():
    configure_logging(settings.LOG_LEVEL)
    server = Server()
    try:
        await server.start()
    finally:
        await server.stop()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received.")


if __name__ == "__main__":
    run()
