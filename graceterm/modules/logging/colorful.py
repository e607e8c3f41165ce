import click
from typing import Optional
from .base import BaseLogger
import sys


class ColorfulLogger(BaseLogger):
    """Logger that outputs colorful text for CLI usage."""
    
    ACTION_COLORS = {
        "tracked": "blue",
        "flagged": "yellow",
        "destroyed": "red",
        "closed": "white",
    }

    def __init__(self, log_level: str = "INFO"):
        super().__init__(log_level)
        # Configure loguru for colored output
        self.logger.configure(
            handlers=[{
                "sink": sys.stdout,
                "colorize": True,
                "format": "<cyan>{time:YYYY-MM-DD HH:mm:ss.SSS}</cyan> | "
                         "<level>{level: <8}</level> | "
                         "<white>{message}</white>",
                "level": log_level
            }]
        )
    
    def log_phase(self, phase: str, detail: Optional[str] = None):
        message = click.style(f"Shutdown phase: {phase}", fg="cyan", bold=True)
        if detail:
            message += click.style(f" ({detail})", fg="white")
        self.logger.info(message)

    def log_connection(self, action: str, kind: str, peer: Optional[str] = None):
        color = self.ACTION_COLORS.get(action, "white")
        self.logger.debug(click.style(f"Connection {action}: {kind} {peer or '-'}", fg=color))

    def log_error(self, message: str):
        self.logger.error(click.style(message, fg="red", bold=True))

    def log_warning(self, message: str):
        self.logger.warning(click.style(message, fg="yellow", bold=True))

    def log_info(self, message: str):
        self.logger.info(click.style(message, fg="white"))

    def log_debug(self, message: str):
        self.logger.debug(click.style(message, fg="blue"))
