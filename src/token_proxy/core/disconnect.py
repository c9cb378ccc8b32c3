"""
Client disconnect detection while a request waits for its token.

Neither uvicorn nor Starlette cancels a route handler when the client goes
away, so token round trips would otherwise run to completion for a caller
that no longer waits for the answer.
"""
import asyncio
from collections import deque
from typing import Awaitable, Deque, Optional, TypeVar

from starlette.requests import ClientDisconnect
from starlette.types import Message, Receive

T = TypeVar("T")


class DisconnectWatcher:
    """
    Watches the ASGI receive channel while an awaitable runs.

    Messages read while watching (request body chunks) are buffered and
    handed out again by ``receive``, so the body can still be streamed
    upstream afterwards.

    Example:
        watcher = DisconnectWatcher(request.receive)
        token = await watcher.run(authenticator.authenticate(request.headers))
        forwarded = Request(request.scope, watcher.receive)
    """

    def __init__(self, receive: Receive):
        self._receive = receive
        self._buffered: Deque[Message] = deque()
        self._pending: Optional["asyncio.Future[Message]"] = None

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable``, cancelling it if the client disconnects first.

        Raises:
            ClientDisconnect: If the client disconnected before completion
        """
        task = asyncio.ensure_future(awaitable)
        try:
            while not task.done():
                if self._pending is None:
                    self._pending = asyncio.ensure_future(self._receive())
                await asyncio.wait({task, self._pending}, return_when=asyncio.FIRST_COMPLETED)

                if self._pending.done():
                    message = self._pending.result()
                    self._pending = None
                    self._buffered.append(message)
                    if message["type"] == "http.disconnect":
                        raise ClientDisconnect()
            return task.result()
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    async def receive(self) -> Message:
        """ASGI receive replaying buffered messages before reading new ones."""
        if self._buffered:
            return self._buffered.popleft()
        if self._pending is not None:
            pending, self._pending = self._pending, None
            return await pending
        return await self._receive()

    def close(self) -> None:
        """Stop waiting for a message nobody will read."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
