"""Graceful shutdown for asyncio HTTP(S) servers.

Connections are tracked in a ``ConnectionRegistry``; ``create_server_terminator``
returns a coroutine function that stops the listener, lets in-flight
exchanges finish and destroys whatever is left once the timeout expires.
"""

from graceterm.models.connection import ConnectionKind
from graceterm.modules.registry import ConnectionRegistry
from graceterm.modules.terminator import (
    InvalidArgumentError,
    ListenerCloseError,
    ServerTerminator,
    TerminatorOptions,
    create_server_terminator,
)

__all__ = [
    'ConnectionKind',
    'ConnectionRegistry',
    'InvalidArgumentError',
    'ListenerCloseError',
    'ServerTerminator',
    'TerminatorOptions',
    'create_server_terminator',
]
