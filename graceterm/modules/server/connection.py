"""Connection and in-flight exchange handles for the aiohttp host server."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from aiohttp import web

from ...models.connection import ConnectionKind


class Exchange:
    """The response side of one request while it is being served.

    An exchange exists from the moment a request has been read off the
    connection. Headers set before the handler has produced its response are
    buffered and applied when the response is attached.
    """

    def __init__(self) -> None:
        self.request: Optional[web.BaseRequest] = None
        self._response: Optional[web.StreamResponse] = None
        self._pending: Dict[str, str] = {}

    @property
    def response(self) -> Optional[web.StreamResponse]:
        return self._response

    @property
    def headers_sent(self) -> bool:
        return self._response is not None and self._response.prepared

    def set_header(self, name: str, value: str) -> None:
        if self._response is None:
            self._pending[name] = value
        else:
            self._apply(self._response, name, value)

    def attach(self, response: web.StreamResponse) -> None:
        if self._response is response:
            return
        self._response = response
        pending, self._pending = self._pending, {}
        for name, value in pending.items():
            self._apply(response, name, value)

    @staticmethod
    def _apply(response: web.StreamResponse, name: str, value: str) -> None:
        response.headers[name] = value
        if name.lower() == "connection" and value.lower() == "close":
            # Without this aiohttp would keep the connection alive regardless of the header
            response.force_close()


EXCHANGE_KEY = web.RequestKey("exchange", Exchange)


def get_exchange(request: web.BaseRequest) -> Exchange:
    """Return the exchange the host server opened for ``request``."""
    return request[EXCHANGE_KEY]


class TrackedRequest(web.BaseRequest):
    """Request that hands every response it prepares to its exchange.

    aiohttp calls ``_prepare_hook`` from ``StreamResponse.prepare`` right
    before the headers are written, so handlers streaming the usual way are
    seen as having sent their headers.
    """

    async def _prepare_hook(self, response: web.StreamResponse) -> None:
        exchange = self.get(EXCHANGE_KEY)
        if exchange is not None:
            exchange.attach(response)
        await super()._prepare_hook(response)


class ServerConnection:
    """One accepted connection of a HostServer."""

    def __init__(self, server: Any, kind: ConnectionKind, transport: asyncio.Transport, handler: Any = None):
        self.server = server
        self.kind = kind
        self.transport = transport
        self.handler = handler
        self.response: Optional[Exchange] = None
        self.peername = transport.get_extra_info("peername")
        self._closed = False
        self._close_callbacks: List[Callable[[], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_queued_requests(self) -> bool:
        """Whether requests have been read that no handler has picked up yet."""
        return self.handler is not None and self.handler.queued_requests > 0

    def request_received(self) -> None:
        """Mark the connection busy as soon as a whole request has been read."""
        if not self._closed and self.response is None:
            self.response = Exchange()

    def add_close_callback(self, callback: Callable[[], None]) -> None:
        if self._closed:
            callback()
        else:
            self._close_callbacks.append(callback)

    def destroy(self) -> None:
        if not self._closed:
            self.transport.abort()

    def notify_closed(self) -> None:
        """Run the close callbacks once; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self.response = None
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback()
