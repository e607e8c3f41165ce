import asyncio
from typing import Optional

from aiohttp import web

from ...logging import BaseLogger
from ...registry import ConnectionRegistry
from ...shutdown import ShutdownCoordinator
from ...terminator import FORCED_CLOSE_GRACE, create_server_terminator
from ..config import ServeConfig, create_ssl_context
from ..host import HostServer


class ServeCommand:
    """Command class for running a demo server that shuts down gracefully on SIGINT/SIGTERM."""

    def __init__(self, logger: BaseLogger, config: ServeConfig, registry: Optional[ConnectionRegistry] = None):
        """
        Initialize the serve command.

        Args:
            logger: Logger instance
            config: Server, shutdown and handler settings
            registry: Connection registry; a private one is used when omitted
        """
        self.logger = logger
        self.config = config
        self.registry = registry or ConnectionRegistry(logger)

    async def _handle(self, request: web.BaseRequest) -> web.StreamResponse:
        if self.config.delay:
            await asyncio.sleep(self.config.delay)
        return web.Response(text="ok")

    def create_server(self) -> HostServer:
        return HostServer(
            self._handle,
            config=self.config.server,
            logger=self.logger,
            ssl_context=create_ssl_context(self.config.server)
        )

    async def _serve(self, coordinator: ShutdownCoordinator) -> None:
        server = self.create_server()
        terminate = create_server_terminator(
            server,
            self.config.shutdown,
            registry=self.registry,
            logger=self.logger
        )
        coordinator.register_handler("terminate-server", terminate)

        await server.start()
        self.logger.log_info("Press Ctrl+C to stop")
        await asyncio.Event().wait()

    def run(self) -> None:
        # leave room for the forced pass and the close that follows it
        coordinator = ShutdownCoordinator(
            self.logger,
            shutdown_timeout=self.config.shutdown.timeout + FORCED_CLOSE_GRACE + 1.0
        )
        coordinator.run_async_with_signals(self._serve(coordinator))
