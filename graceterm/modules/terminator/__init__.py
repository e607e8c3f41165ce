"""Graceful, deadline-bounded termination of listening servers."""

from .config import DEFAULT_TIMEOUT, TerminatorOptions
from .errors import DeadlineExceededError, InvalidArgumentError, ListenerCloseError
from .terminator import FORCED_CLOSE_GRACE, ServerTerminator, create_server_terminator

__all__ = [
    'DEFAULT_TIMEOUT',
    'FORCED_CLOSE_GRACE',
    'DeadlineExceededError',
    'InvalidArgumentError',
    'ListenerCloseError',
    'ServerTerminator',
    'TerminatorOptions',
    'create_server_terminator',
]
