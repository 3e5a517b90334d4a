# roster_server/connection.py

import asyncio
import json
import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, Optional

from . import protocol
from .errors import HandshakeError
from .secure_channel import SecureChannel

if TYPE_CHECKING:
    from .app import Server

logger = logging.getLogger(__name__)

_CLOSE = object()


class ClientSession:
    """
    One TCP connection: handshake, inbound event loop and outbound queue.

    Outbound events are queued by deliver() and written by a dedicated task,
    so broadcasting to this session never waits on its socket. A peer that
    stops reading fills its bounded outbox and is disconnected.
    """

    OUTBOX_LIMIT = 256

    def __init__(self, server: "Server", reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.server = server
        self.reader = reader
        self.writer = writer
        self.connection_id = uuid.uuid4().hex
        self.addr = writer.get_extra_info("peername")
        self.secure_channel: Optional[SecureChannel] = None
        self._outbox: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=self.OUTBOX_LIMIT)
        self._writer_task: Optional[asyncio.Task] = None
        self._closed = False

    def deliver(self, event: Dict[str, Any]) -> None:
        """Queues an event for this client. Never blocks."""
        if self._closed or self.secure_channel is None:
            raise ConnectionError(f"Session {self.connection_id} is not accepting events")
        try:
            self._outbox.put_nowait(event)
        except asyncio.QueueFull:
            self._closed = True
            logger.warning("Outbox full for %r; dropping slow connection %s", self.addr, self.connection_id)
            # Abort rather than close: a stalled peer would never let close() flush.
            self.writer.transport.abort()
            raise ConnectionError(f"Session {self.connection_id} is not reading its events") from None

    async def _send_plaintext(self, envelope: Dict[str, Any]) -> None:
        """Used ONLY for the initial handshake."""
        self.writer.write(protocol.encode_frame(envelope))
        await self.writer.drain()

    async def _write_loop(self) -> None:
        while True:
            event = await self._outbox.get()
            if event is _CLOSE:
                return
            try:
                self.writer.write(protocol.encode_frame(self.secure_channel.seal(event)))
                await self.writer.drain()
            except (ConnectionError, OSError) as e:
                logger.info("Write to %r failed: %s", self.addr, e)
                self._closed = True
                self.writer.close()
                return

    async def _perform_handshake(self) -> None:
        await self._send_plaintext(protocol.make_envelope(
            protocol.HANDSHAKE_START, {"public_key": self.server.keypair.public_key_pem}))

        line = await self.reader.readline()
        if not line:
            raise HandshakeError("Client disconnected during handshake")
        envelope = protocol.decode_frame(line)
        payload = envelope.get("payload")
        if envelope.get("type") != protocol.KEY_EXCHANGE or not isinstance(payload, dict):
            raise HandshakeError("Expected a key_exchange envelope")

        aes_key = self.server.keypair.unwrap_session_key(str(payload.get("key", "")))
        try:
            self.secure_channel = SecureChannel(aes_key)
        except ValueError as e:
            raise HandshakeError(str(e)) from e

        self.writer.write(protocol.encode_frame(self.secure_channel.seal(protocol.make_envelope(
            protocol.HANDSHAKE_COMPLETE, {"message": "Secure channel established."}))))
        await self.writer.drain()
        logger.debug("Secure channel established with %r", self.addr)

    async def handle_connection(self) -> None:
        """Manages the full lifecycle: handshake, events, close."""
        lifecycle = self.server.lifecycle
        opened = False
        try:
            await self._perform_handshake()
            await lifecycle.open(self)
            opened = True
            self._writer_task = asyncio.create_task(self._write_loop())

            while True:
                line = await self.reader.readline()
                if not line:
                    break
                envelope = self.secure_channel.unseal(protocol.decode_frame(line))
                await self.server.router.dispatch(self, envelope)

        except HandshakeError as e:
            logger.warning("Handshake failed for %r: %s", self.addr, e)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            logger.warning("Invalid message format from %r: %s", self.addr, e)
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            logger.info("Connection to %r lost: %s", self.addr, e)
        except Exception:
            logger.exception("An unexpected error occurred with client %r", self.addr)
        finally:
            if opened:
                await lifecycle.close(self)
            self._closed = True
            await self._shutdown_writer()
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            logger.info("Connection to %r closed.", self.addr)

    async def _shutdown_writer(self) -> None:
        if self._writer_task is None:
            return
        # Flush what is already queued, then stop.
        try:
            self._outbox.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            self._writer_task.cancel()
            return
        try:
            await asyncio.wait_for(self._writer_task, timeout=1.0)
        except asyncio.TimeoutError:
            self._writer_task.cancel()
