"""HTTP host server built on aiohttp's low-level server.

The listener is a plain ``asyncio`` server; aiohttp handles HTTP on each
connection. Connection lifecycle is observed through the low-level server's
``connection_made``/``connection_lost`` hooks so that every accepted
connection can be tracked and terminated individually.
"""

import asyncio
import ssl
from typing import Any, Awaitable, Callable, Dict, List, Optional

from aiohttp import web

from ...models.connection import ConnectionKind, ConnectionListener
from ..logging import BaseLogger, PassthroughLogger
from ..terminator.errors import ListenerCloseError
from .config import ServerConfig
from .connection import EXCHANGE_KEY, Exchange, ServerConnection, TrackedRequest

RequestHandler = Callable[[web.BaseRequest], Awaitable[web.StreamResponse]]


class TrackingRequestHandler(web.RequestHandler):
    """aiohttp request handler that reports each request as soon as it is parsed.

    aiohttp queues parsed requests and picks them up a few loop iterations
    later; the host has to know about them before that.
    """

    @property
    def queued_requests(self) -> int:
        return len(self._messages)

    def data_received(self, data: bytes) -> None:
        super().data_received(data)
        if self._messages and self._manager is not None:
            self._manager.request_received(self)


class TrackingServer(web.Server):
    """aiohttp low-level server that reports connection events to its host."""

    def __init__(self, host: 'HostServer', handler: RequestHandler, **kwargs: Any):
        super().__init__(handler, **kwargs)
        self._host = host

    def __call__(self) -> TrackingRequestHandler:
        return TrackingRequestHandler(self, loop=self._loop, **self._kwargs)

    def _make_request(self, message: Any, payload: Any, protocol: Any, writer: Any, task: Any) -> web.BaseRequest:
        return TrackedRequest(message, payload, protocol, writer, task, self._loop)

    def connection_made(self, handler: Any, transport: asyncio.Transport) -> None:
        super().connection_made(handler, transport)
        self._host._connection_made(handler, transport)

    def connection_lost(self, handler: Any, exc: Optional[BaseException] = None) -> None:
        super().connection_lost(handler, exc)
        self._host._connection_lost(handler)

    def request_received(self, handler: TrackingRequestHandler) -> None:
        self._host._request_received(handler)


class HostServer:
    """A listening HTTP(S) server whose connections can be observed and terminated."""

    def __init__(
        self,
        handler: RequestHandler,
        config: Optional[ServerConfig] = None,
        logger: Optional[BaseLogger] = None,
        ssl_context: Optional[ssl.SSLContext] = None
    ):
        """
        Initialize the host server.

        Args:
            handler: Coroutine function answering each request
            config: Listening address and connection settings
            logger: Logger for lifecycle events
            ssl_context: Server TLS context; connections are secure when given
        """
        self.handler = handler
        self.config = config or ServerConfig()
        self.logger = logger or PassthroughLogger()
        self.ssl_context = ssl_context
        self._listeners: List[ConnectionListener] = []
        self._by_handler: Dict[Any, ServerConnection] = {}
        self._listener: Optional[asyncio.AbstractServer] = None
        self._drained: Optional[asyncio.Event] = None
        self._port: Optional[int] = None

    @property
    def kind(self) -> ConnectionKind:
        return ConnectionKind.SECURE if self.ssl_context is not None else ConnectionKind.PLAIN

    @property
    def is_serving(self) -> bool:
        return self._listener is not None and self._listener.is_serving()

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def url(self) -> str:
        scheme = "https" if self.kind is ConnectionKind.SECURE else "http"
        return f"{scheme}://{self.config.host}:{self._port}"

    @property
    def connections(self) -> List[ServerConnection]:
        return list(self._by_handler.values())

    def add_connection_listener(self, listener: ConnectionListener) -> None:
        """Call ``listener(connection, kind)`` for every connection accepted from now on."""
        self._listeners.append(listener)

    async def start(self) -> None:
        if self._listener is not None:
            raise RuntimeError("Server is already running")

        loop = asyncio.get_running_loop()
        self._drained = asyncio.Event()
        self._drained.set()
        low_level = TrackingServer(
            self,
            self._dispatch,
            handler_cancellation=True,
            keepalive_timeout=self.config.keepalive_timeout
        )
        self._listener = await loop.create_server(
            low_level,
            host=self.config.host,
            port=self.config.port,
            ssl=self.ssl_context,
            backlog=self.config.backlog
        )
        self._port = self._listener.sockets[0].getsockname()[1]
        self.logger.log_info(f"Listening on {self.url}")

    async def close(self) -> None:
        """
        Stop accepting connections and wait until every connection is gone.

        Open connections are not touched; they keep the close pending until
        they end on their own or are destroyed.

        Raises:
            ListenerCloseError: If the server is not running
        """
        if self._listener is None:
            raise ListenerCloseError("Server is not running")

        listener, self._listener = self._listener, None
        listener.close()
        self.logger.log_info(f"Stopped accepting connections on {self.url}")

        if self._by_handler:
            self.logger.log_debug(f"Waiting for {len(self._by_handler)} connection(s) to close")
        await self._drained.wait()
        await listener.wait_closed()
        self.logger.log_info("Server closed")

    def _connection_made(self, handler: Any, transport: asyncio.Transport) -> None:
        connection = ServerConnection(self, self.kind, transport, handler)
        self._by_handler[handler] = connection
        self._drained.clear()
        for listener in list(self._listeners):
            listener(connection, self.kind)

    def _connection_lost(self, handler: Any) -> None:
        connection = self._by_handler.pop(handler, None)
        if connection is None:
            return

        connection.notify_closed()
        if not self._by_handler:
            self._drained.set()

    def _request_received(self, handler: Any) -> None:
        connection = self._by_handler.get(handler)
        if connection is not None:
            connection.request_received()

    async def _dispatch(self, request: web.BaseRequest) -> web.StreamResponse:
        """Run the user handler inside an exchange visible on the connection."""
        connection = self._by_handler.get(request.protocol)
        if connection is None:
            exchange = Exchange()
        else:
            # claim the exchange opened when the request was read
            if connection.response is None or connection.response.request is not None:
                connection.response = Exchange()
            exchange = connection.response
        exchange.request = request
        request[EXCHANGE_KEY] = exchange

        try:
            response = await self.handler(request)
            exchange.attach(response)
            # Finish sending here so the exchange only ends once the response is out
            await response.prepare(request)
            await response.write_eof()
            return response
        finally:
            if connection is not None and connection.response is exchange:
                connection.response = None
                if connection.has_queued_requests:
                    connection.request_received()
