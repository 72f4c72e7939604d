"""Periodic timers on the asyncio event loop."""

import asyncio
from collections.abc import Awaitable, Callable

from spotify_flexbar.exceptions import MissingKeyStateError
from spotify_flexbar.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


class PeriodicTask:
    """Runs an async callback every ``interval_ms`` until cancelled.

    The first run happens one interval after ``start()``. Exceptions from the
    callback are logged and the timer keeps going, except
    MissingKeyStateError, which stops it: the key it served is gone.
    """

    def __init__(self, name: str, interval_ms: int, callback: Callable[[], Awaitable[None]]):
        self.name = name
        self.interval_ms = interval_ms
        self._callback = callback
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        interval = self.interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                await self._callback()
            except MissingKeyStateError as e:
                log_with_context(
                    logger,
                    "info",
                    "Key no longer active, stopping timer",
                    timer=self.name,
                    key_id=e.key_id,
                    event_type="timer_stopped",
                )
                self._task = None
                return
            except Exception as e:
                log_with_context(
                    logger,
                    "error",
                    "Timer callback failed",
                    timer=self.name,
                    error=str(e),
                    error_type=type(e).__name__,
                    event_type="timer_error",
                )
