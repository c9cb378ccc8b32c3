"""Test client disconnect detection."""

import asyncio

import pytest
from starlette.requests import ClientDisconnect

from token_proxy.core.disconnect import DisconnectWatcher


class TestDisconnectWatcher:
    """Test watching the receive channel while a token is obtained."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        queue = asyncio.Queue()
        watcher = DisconnectWatcher(queue.get)

        assert await watcher.run(asyncio.sleep(0.01, result="token")) == "token"
        watcher.close()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_awaitable(self):
        messages = [
            {"type": "http.request", "body": b"", "more_body": False},
            {"type": "http.disconnect"},
        ]

        async def receive():
            return messages.pop(0)

        cancelled = False

        async def obtain_token():
            nonlocal cancelled
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled = True
                raise

        watcher = DisconnectWatcher(receive)

        with pytest.raises(ClientDisconnect):
            await watcher.run(obtain_token())

        assert cancelled

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        async def obtain_token():
            raise LookupError("no token")

        watcher = DisconnectWatcher(asyncio.Queue().get)

        with pytest.raises(LookupError):
            await watcher.run(obtain_token())
        watcher.close()

    @pytest.mark.asyncio
    async def test_body_read_while_watching_is_replayed(self):
        body = {"type": "http.request", "body": b"payload", "more_body": False}
        queue = asyncio.Queue()
        queue.put_nowait(body)
        watcher = DisconnectWatcher(queue.get)

        await watcher.run(asyncio.sleep(0.01))

        assert await watcher.receive() == body
        queue.put_nowait({"type": "http.disconnect"})
        assert await watcher.receive() == {"type": "http.disconnect"}
