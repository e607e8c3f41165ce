import sys
from typing import Optional
from .base import BaseLogger


class PlainLogger(BaseLogger):
    """Logger that outputs plain text, suitable for CI/file output."""
    
    def __init__(self, log_level: str = "INFO"):
        super().__init__(log_level)
        # Configure loguru for plain output
        self.logger.configure(
            handlers=[{
                "sink": sys.stdout,
                "format": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
                "colorize": False,
                "level": log_level
            }]
        )
    
    def log_phase(self, phase: str, detail: Optional[str] = None):
        if detail:
            self.logger.info(f"Shutdown phase: {phase} ({detail})")
        else:
            self.logger.info(f"Shutdown phase: {phase}")

    def log_connection(self, action: str, kind: str, peer: Optional[str] = None):
        self.logger.debug(f"Connection {action}: {kind} {peer or '-'}")

    def log_error(self, message: str):
        self.logger.error(message)

    def log_warning(self, message: str):
        self.logger.warning(message)

    def log_info(self, message: str):
        self.logger.info(message)

    def log_debug(self, message: str):
        self.logger.debug(message)
