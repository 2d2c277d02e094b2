"""One-time asynchronous model loading with shared in-flight initialization."""
import asyncio
from typing import Callable, Generic, Optional, TypeVar

from classroll.core.exceptions import ModelLoadError, ModelNotReadyError
from classroll.core.logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M")


class AsyncModelLoader(Generic[M]):
    """Loads a model once, off the event loop, for any number of callers.

    - After a successful load, ``load()`` returns the cached model immediately.
    - Callers arriving while a load is running await that same load instead
      of starting another one.
    - A failed load is reported to every caller waiting on it and then
      forgotten, so a later ``load()`` retries.

    Args:
        load_fn: Blocking function that builds the model; runs in a worker thread
        name: Model name used in log events and error messages
    """

    def __init__(self, load_fn: Callable[[], M], name: str) -> None:
        self._load_fn = load_fn
        self.name = name
        self._model: Optional[M] = None
        self._task: Optional["asyncio.Task[M]"] = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> M:
        """
        Raises:
            ModelNotReadyError: If the model has not been loaded
        """
        if self._model is None:
            raise ModelNotReadyError(
                f"Model {self.name} is not loaded",
                details={"model": self.name},
            )
        return self._model

    async def load(self) -> M:
        """
        Raises:
            ModelLoadError: If this load attempt fails
        """
        if self._model is not None:
            return self._model

        task = self._task
        if task is None:
            logger.info("Loading model", model=self.name)
            task = asyncio.ensure_future(asyncio.to_thread(self._load_fn))
            self._task = task

        try:
            model = await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._task is task:
                self._task = None
                logger.error("Model load failed", model=self.name, error=str(e), exc_info=True)
            if isinstance(e, ModelLoadError):
                raise
            raise ModelLoadError(
                f"Failed to load model {self.name}: {e}",
                details={"model": self.name},
            ) from e

        if self._task is task:
            self._model = model
            self._task = None
            logger.info("Model loaded", model=self.name)
        elif self._model is None:
            # Unloaded while this load was running
            logger.debug("Discarding model loaded after unload", model=self.name)
            return model
        return self._model

    def unload(self) -> None:
        """Drop the cached model; the next ``load()`` loads it again.

        A load still running is not cached when it completes.
        """
        self._model = None
        self._task = None
