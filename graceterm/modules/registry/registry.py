"""Process-wide bookkeeping of open connections, partitioned by transport kind."""

from functools import partial
from typing import Dict, List, Optional, Union

from ...models.connection import Connection, ConnectionKind
from ..logging import BaseLogger, PassthroughLogger


class ConnectionRegistry:
    """Tracks every open connection in either the plain or the secure set.

    Connections remove themselves through a close observer registered in
    ``track``. Mutations never suspend, so on a single event loop they cannot
    interleave mid-update; iteration must still go through ``snapshot``
    because close observers fire between any two suspension points.
    """

    _default: Optional['ConnectionRegistry'] = None

    def __init__(self, logger: Optional[BaseLogger] = None):
        self.logger = logger or PassthroughLogger()
        self._sets: Dict[ConnectionKind, Dict[int, Connection]] = {
            ConnectionKind.PLAIN: {},
            ConnectionKind.SECURE: {},
        }

    @classmethod
    def get_default(cls) -> 'ConnectionRegistry':
        """Get or create the registry shared by the whole process."""
        if cls._default is None:
            cls._default = cls()
        return cls._default

    def track(self, connection: Connection, kind: Union[ConnectionKind, str]) -> None:
        """Add a connection to the set for ``kind`` until it reports closure.
        
        Args:
            connection: The freshly accepted connection
            kind: Which set the connection belongs to
        """
        kind = ConnectionKind(kind)
        if connection.closed:
            return

        members = self._sets[kind]
        key = id(connection)
        if key in members:
            return

        members[key] = connection
        connection.add_close_callback(partial(self.remove, connection, kind))
        self.logger.log_connection("tracked", kind.value, describe_peer(connection))

    def remove(self, connection: Connection, kind: Union[ConnectionKind, str]) -> None:
        """Drop a connection from its set. Absent connections are ignored."""
        members = self._sets[ConnectionKind(kind)]
        if members.get(id(connection)) is connection:
            del members[id(connection)]

    def snapshot(self, kind: Union[ConnectionKind, str]) -> List[Connection]:
        """Return a copy of the current members of the set for ``kind``."""
        return list(self._sets[ConnectionKind(kind)].values())

    def count(self, kind: Optional[Union[ConnectionKind, str]] = None) -> int:
        if kind is None:
            return sum(len(members) for members in self._sets.values())
        return len(self._sets[ConnectionKind(kind)])

    def __contains__(self, connection: object) -> bool:
        return any(members.get(id(connection)) is connection for members in self._sets.values())

    def clear(self) -> None:
        """Forget every tracked connection without touching the connections."""
        for members in self._sets.values():
            members.clear()


def describe_peer(connection: Connection) -> Optional[str]:
    """Render a connection's remote address for logging, if it has one."""
    peer = getattr(connection, "peername", None)
    if isinstance(peer, tuple) and len(peer) >= 2:
        return f"{peer[0]}:{peer[1]}"
    return str(peer) if peer is not None else None
