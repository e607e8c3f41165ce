"""Connection registry shared by server terminators."""

from .registry import ConnectionRegistry, describe_peer

__all__ = ['ConnectionRegistry', 'describe_peer']
