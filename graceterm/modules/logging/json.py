import sys
from typing import Optional
from .base import BaseLogger


class JsonLogger(BaseLogger):
    """Logger that outputs JSON for machine parsing."""
    
    def __init__(self, log_level: str = "INFO"):
        super().__init__(log_level)
        # Configure loguru for JSON output
        self.logger.configure(
            handlers=[{
                "sink": sys.stdout,
                "serialize": True,  # JSON output
                "format": "{time} | {level} | {message}",
                "level": log_level
            }]
        )
    
    def log_phase(self, phase: str, detail: Optional[str] = None):
        self.logger.bind(type="phase", phase=phase, detail=detail).info(phase)

    def log_connection(self, action: str, kind: str, peer: Optional[str] = None):
        self.logger.bind(type="connection", action=action, kind=kind, peer=peer).debug(action)

    def log_error(self, message: str):
        self.logger.bind(type="error").error(message)

    def log_warning(self, message: str):
        self.logger.bind(type="warning").warning(message)

    def log_info(self, message: str):
        self.logger.bind(type="info").info(message)

    def log_debug(self, message: str):
        self.logger.bind(type="debug").debug(message)
