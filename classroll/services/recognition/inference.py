"""Serialized execution of blocking model inference."""
import asyncio
from typing import Any, Callable, TypeVar

from classroll.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _consume_outcome(task: "asyncio.Future[Any]") -> None:
    # Marks the exception of an abandoned run as retrieved.
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Abandoned inference failed", error=str(task.exception()))


class InferenceGate:
    """Runs blocking model calls one at a time in a worker thread.

    The face models keep mutable state and must not be invoked concurrently,
    so detection and enrollment extraction share one gate. A caller that is
    cancelled while waiting does not cancel the inference itself: the run
    finishes in the background, its result is discarded, and the gate is
    released only once the model is idle again.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def _run_locked(self, fn: Callable[..., T], *args: Any) -> T:
        async with self._lock:
            return await asyncio.to_thread(fn, *args)

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn(*args)`` in a worker thread once the gate is free."""
        task = asyncio.ensure_future(self._run_locked(fn, *args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_consume_outcome)
            raise
