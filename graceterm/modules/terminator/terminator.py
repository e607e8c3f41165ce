"""Two-phase graceful termination of a listening server.

The cooperative phase stops the listener, asks in-flight exchanges to close
their connection once the response is out, and destroys idle connections.
If the listener has not reported closed within the timeout, every remaining
connection owned by the server is destroyed.
"""

import asyncio
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from ...models.connection import Connection, ConnectionKind, ManagedServer
from ..logging import BaseLogger, PassthroughLogger
from ..registry import ConnectionRegistry, describe_peer
from .config import TerminatorOptions
from .errors import DeadlineExceededError, InvalidArgumentError, ListenerCloseError

# seconds to wait for the listener to report closed once connections are destroyed
FORCED_CLOSE_GRACE = 1.0

CLOSE_DIRECTIVE = ("connection", "close")


class ServerTerminator:
    """Closes one server and all of its connections, bounded by a timeout.

    Instances are returned by ``create_server_terminator`` and are awaited by
    calling them with no arguments.
    """

    def __init__(
        self,
        server: ManagedServer,
        options: TerminatorOptions,
        registry: ConnectionRegistry,
        logger: BaseLogger
    ):
        self.server = server
        self.options = options
        self.registry = registry
        self.logger = logger

    @property
    def timeout(self) -> float:
        return self.options.timeout

    async def __call__(self) -> None:
        await self.terminate()

    async def terminate(self) -> None:
        """Close the server, escalating to forced destruction on timeout.

        Raises:
            Any error raised by the server's close operation.
            ListenerCloseError: If the server still has not closed after its
                connections were destroyed.
        """
        self.logger.log_phase("listener-closing", f"timeout {self.timeout}s")
        closing = asyncio.ensure_future(self.server.close())

        self._cooperative_pass()

        try:
            await self._race(closing)
        except DeadlineExceededError as e:
            self.logger.log_phase("deadline-hit", str(e))
            self._forced_pass()
            await self._await_forced_close(closing)

        self.logger.log_phase("resolved")

    def _owns(self, connection: Connection) -> bool:
        return getattr(connection, "server", None) is self.server

    def _cooperative_pass(self) -> None:
        """Flag busy connections to close after their response and drop idle ones."""
        self.logger.log_phase("cooperative-pass")
        for kind in (ConnectionKind.SECURE, ConnectionKind.PLAIN):
            for connection in self.registry.snapshot(kind):
                if self._owns(connection):
                    self._close_connection(connection, kind)

    def _close_connection(self, connection: Connection, kind: ConnectionKind) -> None:
        response = connection.response
        if response is not None:
            if not response.headers_sent:
                response.set_header(*CLOSE_DIRECTIVE)
                self.logger.log_connection("flagged", kind.value, describe_peer(connection))
            return

        self.registry.remove(connection, kind)
        self._destroy(connection, kind)

    def _forced_pass(self) -> None:
        self.logger.log_phase("forced-destroy")
        destroyed = 0
        for kind in (ConnectionKind.PLAIN, ConnectionKind.SECURE):
            for connection in self.registry.snapshot(kind):
                if not self._owns(connection):
                    continue
                self._destroy(connection, kind)
                self.registry.remove(connection, kind)
                destroyed += 1

        if destroyed:
            self.logger.log_warning(f"Forcefully destroyed {destroyed} connection(s) after {self.timeout} seconds")

    def _destroy(self, connection: Connection, kind: ConnectionKind) -> None:
        try:
            connection.destroy()
            self.logger.log_connection("destroyed", kind.value, describe_peer(connection))
        except Exception as e:
            self.logger.log_warning(f"Failed to destroy {kind.value} connection: {str(e)}")

    async def _deadline(self) -> None:
        await asyncio.sleep(self.timeout)
        raise DeadlineExceededError(self.timeout)

    async def _race(self, closing: 'asyncio.Future[Any]') -> None:
        """Wait for the listener to close or the deadline to fire, whichever is first."""
        deadline = asyncio.ensure_future(self._deadline())
        try:
            done, _ = await asyncio.wait({closing, deadline}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not deadline.done():
                deadline.cancel()

        if closing in done:
            if deadline.done() and not deadline.cancelled():
                # close wins ties with the deadline
                deadline.exception()
            closing.result()
            return

        deadline.result()

    async def _await_forced_close(self, closing: 'asyncio.Future[Any]') -> None:
        try:
            await asyncio.wait_for(closing, FORCED_CLOSE_GRACE)
        except asyncio.TimeoutError:
            raise ListenerCloseError(
                f"Server did not report closed within {FORCED_CLOSE_GRACE} seconds of forced termination"
            )


def create_server_terminator(
    server: Any,
    options: Optional[Union[TerminatorOptions, Mapping[str, Any]]] = None,
    *,
    registry: Optional[ConnectionRegistry] = None,
    logger: Optional[BaseLogger] = None
) -> ServerTerminator:
    """
    Register connection tracking on a server and return its terminator.

    Args:
        server: The server to be terminated
        options: Terminator options; only ``timeout`` (seconds) is recognized
        registry: Registry to track connections in, defaults to the process-wide one
        logger: Logger for shutdown events

    Returns:
        A zero-argument coroutine function that closes the server

    Raises:
        InvalidArgumentError: If the server or the options are invalid
    """
    if not isinstance(server, ManagedServer):
        raise InvalidArgumentError(
            f"Expected a server exposing add_connection_listener() and close(), got {type(server).__name__}"
        )

    if options is None:
        options = TerminatorOptions()
    elif not isinstance(options, TerminatorOptions):
        try:
            options = TerminatorOptions.model_validate(options)
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid terminator options: {str(e)}") from e

    if registry is None:
        registry = ConnectionRegistry.get_default()
    server.add_connection_listener(registry.track)

    return ServerTerminator(
        server=server,
        options=options,
        registry=registry,
        logger=logger or PassthroughLogger()
    )
