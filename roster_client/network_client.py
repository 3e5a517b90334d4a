# roster_client/network_client.py

import asyncio
import logging
import queue
import threading
from typing import Any, Dict, Optional

from roster_server import protocol
from roster_server.errors import HandshakeError
from roster_server.secure_channel import SecureChannel, new_session_key, wrap_session_key

from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_HOST = settings.SERVER_HOST
DEFAULT_PORT = settings.SERVER_PORT
SEND_POLL_INTERVAL = 0.05


async def perform_handshake(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> SecureChannel:
    """Runs the client side of the key exchange and returns the secure channel."""
    # 1. Receive the server's public key
    line = await reader.readline()
    if not line:
        raise HandshakeError("Server closed the connection before the handshake.")
    start = protocol.decode_frame(line)
    if start.get("type") != protocol.HANDSHAKE_START:
        raise HandshakeError("Server did not start handshake correctly.")

    # 2. Send a fresh AES key wrapped with that public key
    aes_key = new_session_key()
    writer.write(protocol.encode_frame(protocol.make_envelope(
        protocol.KEY_EXCHANGE,
        {"key": wrap_session_key(start["payload"]["public_key"], aes_key)},
    )))
    await writer.drain()

    # 3. Wait for the encrypted confirmation
    secure_channel = SecureChannel(aes_key)
    line = await reader.readline()
    if not line:
        raise HandshakeError("Server closed the connection during the handshake.")
    confirmation = secure_channel.unseal(protocol.decode_frame(line))
    if confirmation.get("type") != protocol.HANDSHAKE_COMPLETE:
        raise HandshakeError("Server did not confirm secure channel.")

    logger.debug("Cryptographic handshake successful. Secure channel established.")
    return secure_channel


class RosterConnection:
    """A single secured connection to the roster server, used from asyncio code."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, channel: SecureChannel):
        self.reader = reader
        self.writer = writer
        self.channel = channel

    @classmethod
    async def open(cls, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> "RosterConnection":
        reader, writer = await asyncio.open_connection(host, port)
        try:
            channel = await perform_handshake(reader, writer)
        except Exception:
            writer.close()
            raise
        return cls(reader, writer, channel)

    async def send(self, event_type: str, payload: Any = None) -> None:
        self.writer.write(protocol.encode_frame(
            self.channel.seal(protocol.make_envelope(event_type, payload))))
        await self.writer.drain()

    async def receive(self) -> Optional[Dict[str, Any]]:
        """Next decrypted envelope, or None once the server closes the stream."""
        line = await self.reader.readline()
        if not line:
            return None
        return self.channel.unseal(protocol.decode_frame(line))

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass


class NetworkClient:
    """
    Runs a RosterConnection on a background thread.

    Incoming envelopes and network status events are put on `ui_queue`;
    outgoing envelopes are taken from `outgoing`.
    """

    def __init__(self, ui_queue: "queue.Queue[dict]"):
        self.ui_queue = ui_queue
        self.outgoing: "queue.Queue[dict]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connection: Optional[RosterConnection] = None

    def start(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, args=(host, port), daemon=True)
        self._thread.start()

    def stop(self):
        self._stop_event.set()
        loop, connection = self._loop, self._connection
        if loop is not None and loop.is_running() and connection is not None:
            asyncio.run_coroutine_threadsafe(connection.close(), loop)
        if self._thread:
            self._thread.join(timeout=1)

    def send(self, event_type: str, payload: Any = None):
        self.outgoing.put(protocol.make_envelope(event_type, payload))

    def _run_loop(self, host: str, port: int):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._async_main(host, port))
        except Exception as e:
            logger.exception("Network loop error")
            self.ui_queue.put({"type": "network_error", "payload": f"network loop error: {e}"})
        finally:
            self._loop.close()
            self._loop = None

    async def _async_main(self, host: str, port: int):
        retry_delay = 1.0
        while not self._stop_event.is_set():
            try:
                self._connection = await RosterConnection.open(host, port)
                retry_delay = 1.0
                self.ui_queue.put({"type": "network_connected", "payload": {"host": host, "port": port}})
                await self._serve(self._connection)
            except (OSError, HandshakeError, ValueError) as e:
                self.ui_queue.put({"type": "network_error", "payload": f"connection/handshake error: {e}"})
                await asyncio.sleep(retry_delay)
                retry_delay = min(10.0, retry_delay * 2)
            finally:
                if self._connection is not None:
                    await self._connection.close()
                    self._connection = None
                if not self._stop_event.is_set():
                    self.ui_queue.put({"type": "network_disconnected", "payload": None})
        self.ui_queue.put({"type": "network_stopped", "payload": None})

    async def _serve(self, connection: RosterConnection):
        """
        Runs both directions of one connection until either ends, then
        cancels the other so nothing outlives the connection.
        """
        tasks = [
            asyncio.create_task(self._recv_loop(connection)),
            asyncio.create_task(self._send_loop(connection)),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            # Re-raise a failure of the loop that finished first.
            task.result()

    async def _recv_loop(self, connection: RosterConnection):
        while not self._stop_event.is_set():
            try:
                envelope = await connection.receive()
            except ValueError:
                self.ui_queue.put({"type": "network_error", "payload": "invalid/undecryptable message from server"})
                continue
            if envelope is None:
                return
            self.ui_queue.put(envelope)

    async def _send_loop(self, connection: RosterConnection):
        # Polls without blocking, so cancelling this loop never strands an
        # item in a worker thread.
        while not self._stop_event.is_set():
            try:
                item = self.outgoing.get_nowait()
            except queue.Empty:
                await asyncio.sleep(SEND_POLL_INTERVAL)
                continue
            await connection.send(item["type"], item.get("payload"))
