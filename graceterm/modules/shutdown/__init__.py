"""Shutdown coordination module for managing graceful shutdown of application components."""

from .coordinator import ShutdownCoordinator

__all__ = ['ShutdownCoordinator'] 