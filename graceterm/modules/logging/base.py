from abc import ABC, abstractmethod
from typing import Optional
from loguru import logger


class BaseLogger(ABC):
    """Abstract base class for loggers."""
    
    def __init__(self, log_level: str = "INFO"):
        self.logger = logger
        self.log_level = log_level
    
    @abstractmethod
    def log_phase(self, phase: str, detail: Optional[str] = None):
        """Log a shutdown phase transition."""
        pass

    @abstractmethod
    def log_connection(self, action: str, kind: str, peer: Optional[str] = None):
        """Log something that happened to a single connection."""
        pass

    @abstractmethod
    def log_error(self, message: str):
        """Log an error message."""
        pass

    @abstractmethod
    def log_warning(self, message: str):
        """Log a warning message."""
        pass

    @abstractmethod
    def log_info(self, message: str):
        """Log an info message."""
        pass

    @abstractmethod
    def log_debug(self, message: str):
        """Log a debug message."""
        pass
