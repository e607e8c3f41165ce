"""aiohttp host server whose connections can be tracked and terminated."""

from .config import ServeConfig, ServerConfig, create_ssl_context, load_serve_config, validate_serve_config
from .connection import EXCHANGE_KEY, Exchange, ServerConnection, TrackedRequest, get_exchange
from .host import HostServer, TrackingRequestHandler, TrackingServer

__all__ = [
    'EXCHANGE_KEY',
    'Exchange',
    'HostServer',
    'ServeConfig',
    'ServerConfig',
    'ServerConnection',
    'TrackedRequest',
    'TrackingRequestHandler',
    'TrackingServer',
    'create_ssl_context',
    'get_exchange',
    'load_serve_config',
    'validate_serve_config',
]
