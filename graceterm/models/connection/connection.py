from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable


class ConnectionKind(str, Enum):
    PLAIN = "plain"
    SECURE = "secure"


@runtime_checkable
class InflightResponse(Protocol):
    """The response half of an exchange that is still being served."""

    @property
    def headers_sent(self) -> bool: ...

    def set_header(self, name: str, value: str) -> None: ...


@runtime_checkable
class Connection(Protocol):
    """One accepted network connection, as exposed by the host server.

    ``response`` is only set while an exchange is in flight. ``server`` is the
    server instance that accepted the connection.
    """

    server: Any
    kind: ConnectionKind
    response: Optional[InflightResponse]

    @property
    def closed(self) -> bool: ...

    def destroy(self) -> None: ...

    def add_close_callback(self, callback: Callable[[], None]) -> None: ...


ConnectionListener = Callable[[Connection, ConnectionKind], None]


@runtime_checkable
class ManagedServer(Protocol):
    """A listening server whose connections can be observed and terminated."""

    def add_connection_listener(self, listener: ConnectionListener) -> None: ...

    def close(self) -> Awaitable[None]: ...
