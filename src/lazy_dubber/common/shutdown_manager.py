"""Signal handling and ordered cleanup for the translator worker."""

import asyncio
import inspect
import logging
import signal
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownState(Enum):
    NOT_STARTED = "not_started"
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ShutdownManager:
    """
    Turns SIGINT/SIGTERM into a shutdown request and runs cleanup once.

    Signal listeners are plain callables run when shutdown is first requested;
    the worker uses one to pause translation. Cleanup callbacks may be sync or
    async and run last-registered-first.

    Example:
        ```python
        manager = ShutdownManager("translator")
        manager.setup_signal_handlers()
        manager.add_signal_listener(scheduler.pause_translation)
        manager.register_cleanup_callback(redis_client.disconnect)
        try:
            ...
        finally:
            await manager.execute_cleanup()
        ```
    """

    def __init__(self, service_name: str):
        self.service_name = service_name
        self._requested = asyncio.Event()
        self._listeners: List[Callable[[], None]] = []
        self._cleanups: List[Callable] = []
        self._state = ShutdownState.NOT_STARTED
        self._signals_seen = 0

    def _on_signal(self, signum: int) -> None:
        self._signals_seen += 1
        name = signal.Signals(signum).name

        if self._signals_seen > 1:
            logger.warning(
                f"⚠️  {name} received again ({self._signals_seen}x), "
                f"{self.service_name} is already stopping"
            )
            return

        logger.info(f"🛑 {name} received, stopping {self.service_name}...")
        self.request_shutdown()

    def setup_signal_handlers(self) -> None:
        """Install handlers on the running loop, or via ``signal.signal`` where unsupported."""
        loop = asyncio.get_running_loop()
        for signum in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(signum, self._on_signal, signum)
            except NotImplementedError:
                signal.signal(signum, lambda s, _frame: self._on_signal(s))
        logger.debug(f"Signal handlers installed for {self.service_name}")

    def add_signal_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def request_shutdown(self) -> None:
        """Mark shutdown as requested and notify listeners; later calls do nothing."""
        if self._requested.is_set():
            return
        self._state = ShutdownState.INITIATED
        self._requested.set()
        for listener in self._listeners:
            listener()

    def is_shutdown_requested(self) -> bool:
        return self._requested.is_set()

    def get_state(self) -> ShutdownState:
        return self._state

    def register_cleanup_callback(self, callback: Callable) -> None:
        self._cleanups.append(callback)

    async def execute_cleanup(self) -> None:
        """
        Run every cleanup callback, newest first.

        A failing callback is logged and does not stop the others. Only the
        first call does any work.
        """
        if self._state == ShutdownState.COMPLETED:
            return

        self._state = ShutdownState.IN_PROGRESS
        logger.info(f"🧹 Running {len(self._cleanups)} cleanup step(s) for {self.service_name}")

        for callback in reversed(self._cleanups):
            try:
                outcome = callback()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                name = getattr(callback, "__name__", repr(callback))
                logger.error(f"❌ Cleanup step {name} failed: {e}", exc_info=True)

        self._state = ShutdownState.COMPLETED
        logger.info(f"✅ {self.service_name} cleanup finished")
