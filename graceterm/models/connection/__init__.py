from .connection import (
    Connection,
    ConnectionKind,
    ConnectionListener,
    InflightResponse,
    ManagedServer,
)

__all__ = ['Connection', 'ConnectionKind', 'ConnectionListener', 'InflightResponse', 'ManagedServer']
