from typing import Optional
from .base import BaseLogger


class PassthroughLogger(BaseLogger):
    """Logger for library use: writes through loguru's existing handlers.

    Unlike the CLI loggers it never calls ``logger.configure``, so embedding
    applications keep control of sinks and levels.
    """

    def __init__(self, log_level: str = "INFO"):
        super().__init__(log_level)
        self.logger = self.logger.bind(component="graceterm")

    def log_phase(self, phase: str, detail: Optional[str] = None):
        if detail:
            self.logger.info("Shutdown phase: {} ({})", phase, detail)
        else:
            self.logger.info("Shutdown phase: {}", phase)

    def log_connection(self, action: str, kind: str, peer: Optional[str] = None):
        self.logger.debug("Connection {}: {} {}", action, kind, peer or "-")

    def log_error(self, message: str):
        self.logger.error(message)

    def log_warning(self, message: str):
        self.logger.warning(message)

    def log_info(self, message: str):
        self.logger.info(message)

    def log_debug(self, message: str):
        self.logger.debug(message)
