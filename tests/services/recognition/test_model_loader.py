"""Tests for one-time asynchronous model loading."""
import asyncio
import time

import pytest

from classroll.core.exceptions import ModelLoadError, ModelNotReadyError
from classroll.services.recognition.model_loader import AsyncModelLoader


class SlowBuilder:
    """Blocking model factory that counts its invocations."""

    def __init__(self, failures: int = 0, delay: float = 0.05):
        self.calls = 0
        self.failures = failures
        self.delay = delay

    def __call__(self):
        self.calls += 1
        time.sleep(self.delay)
        if self.calls <= self.failures:
            raise RuntimeError("weights missing")
        return {"model": self.calls}


async def test_concurrent_callers_share_one_load():
    builder = SlowBuilder()
    loader = AsyncModelLoader(builder, "detector")

    models = await asyncio.gather(*(loader.load() for _ in range(5)))

    assert builder.calls == 1
    assert all(model is models[0] for model in models)
    assert loader.is_loaded


async def test_loaded_model_is_cached():
    builder = SlowBuilder()
    loader = AsyncModelLoader(builder, "detector")

    first = await loader.load()
    second = await loader.load()

    assert first is second
    assert builder.calls == 1


async def test_failure_is_reported_to_every_waiter():
    builder = SlowBuilder(failures=1)
    loader = AsyncModelLoader(builder, "detector")

    results = await asyncio.gather(*(loader.load() for _ in range(3)), return_exceptions=True)

    assert builder.calls == 1
    assert all(isinstance(result, ModelLoadError) for result in results)
    assert not loader.is_loaded


async def test_retry_after_failure():
    builder = SlowBuilder(failures=1)
    loader = AsyncModelLoader(builder, "detector")

    with pytest.raises(ModelLoadError):
        await loader.load()

    model = await loader.load()

    assert model == {"model": 2}
    assert builder.calls == 2


async def test_cancelled_caller_does_not_abort_the_load():
    builder = SlowBuilder(delay=0.1)
    loader = AsyncModelLoader(builder, "detector")

    first = asyncio.ensure_future(loader.load())
    await asyncio.sleep(0.02)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    await loader.load()

    assert builder.calls == 1


async def test_model_before_load():
    loader = AsyncModelLoader(SlowBuilder(), "detector")

    with pytest.raises(ModelNotReadyError):
        loader.model


async def test_unload():
    builder = SlowBuilder(delay=0)
    loader = AsyncModelLoader(builder, "detector")
    await loader.load()

    loader.unload()

    assert not loader.is_loaded
    await loader.load()
    assert builder.calls == 2


async def test_unload_during_load_is_not_undone():
    builder = SlowBuilder(delay=0.1)
    loader = AsyncModelLoader(builder, "detector")

    pending = asyncio.ensure_future(loader.load())
    await asyncio.sleep(0.02)
    loader.unload()

    assert await pending == {"model": 1}
    assert not loader.is_loaded
    assert await loader.load() == {"model": 2}
    assert loader.is_loaded
