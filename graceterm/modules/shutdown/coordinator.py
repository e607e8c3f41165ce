"""Signal-driven shutdown for processes that host servers."""

import asyncio
from asyncio import AbstractEventLoop, Task
import signal
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar, Any, Coroutine, Union
import types

from ..logging import BaseLogger

T = TypeVar('T')

# Type for signal handlers
SignalHandlerType = Union[Callable[[int, Optional[types.FrameType]], Any], int, None]

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

@dataclass
class ShutdownHandler:
    """Handler for shutdown operations."""
    name: str
    handler: Callable
    priority: int = 0

class ShutdownCoordinator:
    """Runs a main coroutine until a termination signal, then runs shutdown handlers.

    Server terminators are registered as handlers; they run in priority
    order, each one awaited before the next starts, and the whole sequence
    is bounded by ``shutdown_timeout``.
    """

    def __init__(self, logger: BaseLogger, shutdown_timeout: float = 15.0):
        """
        Initialize the shutdown coordinator.

        Args:
            logger: Logger instance for logging shutdown events
            shutdown_timeout: Seconds to wait for all handlers together
        """
        self._handlers: List[ShutdownHandler] = []
        self._is_shutting_down = False
        self._shutdown_done: Optional[asyncio.Event] = None
        self.logger = logger
        self.shutdown_timeout = shutdown_timeout
        self._main_task: Optional[Task] = None
        self._active_loop: Optional[AbstractEventLoop] = None
        self._original_handlers: dict[int, SignalHandlerType] = {}

    def setup_signal_handlers(self) -> None:
        """
        Install SIGINT/SIGTERM handlers, remembering the previous ones.
        This must be called from the main thread.
        """
        for sig in HANDLED_SIGNALS:
            self._original_handlers[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        for sig, original in self._original_handlers.items():
            if original is not None:
                signal.signal(sig, original)
        self._original_handlers.clear()

    def _handle_signal(self, sig_num: int, frame: Optional[types.FrameType]) -> None:
        """
        Cancel the main task from the signal handler.

        Args:
            sig_num: The signal number that was received
            frame: The current stack frame
        """
        sig_name = signal.Signals(sig_num).name
        self.logger.log_warning(f"Received {sig_name}, shutting down gracefully")

        if self._main_task and not self._main_task.done() and self._active_loop:
            self._active_loop.call_soon_threadsafe(self._main_task.cancel)

    @property
    def is_shutting_down(self) -> bool:
        """Check if shutdown is in progress."""
        return self._is_shutting_down

    def register_handler(self, name: str, handler: Callable, priority: int = 0) -> None:
        """Register a shutdown handler.

        Args:
            name: Name of the handler
            handler: Callable to execute during shutdown, sync or async
            priority: Priority of the handler (lower numbers execute first)
        """
        for existing in self._handlers:
            if existing.name == name:
                existing.handler = handler
                existing.priority = priority
                self._handlers.sort(key=lambda h: h.priority)
                return

        self._handlers.append(ShutdownHandler(name, handler, priority))
        self._handlers.sort(key=lambda h: h.priority)

    async def _run_handlers(self) -> None:
        for handler in self._handlers:
            try:
                self.logger.log_info(f"Executing shutdown handler: {handler.name}")
                result = handler.handler()
                if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
                    await result
            except Exception as e:
                self.logger.log_error(f"Error in shutdown handler {handler.name}: {str(e)}")

    async def shutdown(self) -> None:
        """
        Execute all registered shutdown handlers in order of priority.
        Only the first call does anything.
        """
        if self._is_shutting_down:
            return

        self._is_shutting_down = True
        self.logger.log_info("Starting graceful shutdown...")

        try:
            await asyncio.wait_for(self._run_handlers(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            self.logger.log_warning(
                f"Shutdown timed out after {self.shutdown_timeout} seconds. "
                "Some handlers may not have completed gracefully."
            )

        self.logger.log_info("Graceful shutdown completed")
        self._get_done_event().set()

    async def wait_for_shutdown(self) -> None:
        """Wait until ``shutdown`` has finished."""
        await self._get_done_event().wait()

    def _get_done_event(self) -> asyncio.Event:
        if self._shutdown_done is None:
            self._shutdown_done = asyncio.Event()
        return self._shutdown_done

    def run_async_with_signals(self, coroutine: Coroutine[Any, Any, T]) -> Optional[T]:
        """
        Run a coroutine on a new event loop until it finishes or a signal arrives.

        Shutdown handlers run in both cases, on the same loop, before it is
        closed.

        Args:
            coroutine: The coroutine to execute

        Returns:
            The result of the coroutine, or None if it was cancelled by a signal

        Raises:
            Any exception raised by the coroutine
        """
        result: Optional[T] = None

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._active_loop = loop
        self.setup_signal_handlers()

        try:
            self._main_task = loop.create_task(coroutine)
            try:
                result = loop.run_until_complete(self._main_task)
            except asyncio.CancelledError:
                self.logger.log_info("Main task was cancelled, performing graceful shutdown")
            finally:
                loop.run_until_complete(self.shutdown())

        finally:
            self._main_task = None
            self._active_loop = None
            self.restore_signal_handlers()

            try:
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                if pending:
                    loop.run_until_complete(
                        asyncio.gather(*pending, return_exceptions=True)
                    )
            except Exception as e:
                self.logger.log_warning(f"Error cleaning up pending tasks: {str(e)}")

            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
                loop.close()
            except Exception as e:
                self.logger.log_warning(f"Error closing event loop: {str(e)}")
            asyncio.set_event_loop(None)

        return result
