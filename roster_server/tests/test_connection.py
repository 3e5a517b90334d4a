"""
Tests for the per-connection session's outbound queue.
"""

import asyncio
import os
from unittest.mock import AsyncMock, Mock

import pytest

from ..connection import ClientSession
from ..secure_channel import SecureChannel


def stalled_session(outbox_limit: int = 8) -> ClientSession:
    """A session whose peer never reads: drain() blocks forever."""
    async def never_drains():
        await asyncio.Event().wait()

    writer = Mock()
    writer.get_extra_info.return_value = ("127.0.0.1", 50000)
    writer.drain = AsyncMock(side_effect=never_drains)

    class SmallOutboxSession(ClientSession):
        OUTBOX_LIMIT = outbox_limit

    session = SmallOutboxSession(Mock(), Mock(), writer)
    session.secure_channel = SecureChannel(os.urandom(32))
    return session


class TestClientSessionOutbox:

    @pytest.mark.asyncio
    async def test_stalled_reader_is_dropped_not_buffered(self):
        session = stalled_session(outbox_limit=8)
        session._writer_task = asyncio.create_task(session._write_loop())
        try:
            session.deliver({"type": "live_users_update", "payload": []})
            # Let the writer pick up the first event and block in drain().
            await asyncio.sleep(0)
            await asyncio.sleep(0)

            for _ in range(8):
                session.deliver({"type": "live_users_update", "payload": []})
            with pytest.raises(ConnectionError):
                session.deliver({"type": "live_users_update", "payload": []})

            assert session._outbox.qsize() <= 8
            session.writer.transport.abort.assert_called_once()
            with pytest.raises(ConnectionError):
                session.deliver({"type": "live_users_update", "payload": []})
        finally:
            session._writer_task.cancel()

    @pytest.mark.asyncio
    async def test_publish_skips_stalled_session(self, registry, channel, broadcaster):
        stalled = stalled_session(outbox_limit=4)
        healthy = stalled_session(outbox_limit=10_000)
        channel.subscribe(stalled)
        channel.subscribe(healthy)

        results = [broadcaster.publish() for _ in range(1000)]

        assert stalled._outbox.qsize() == 4
        assert healthy._outbox.qsize() == 1000
        assert results[:4] == [2, 2, 2, 2]
        assert results[4:] == [1] * 996
