"""Shared fixtures."""
from typing import Dict

import numpy as np
import pytest

from classroll.services.identity_registry import IdentityRegistry

from tests.fakes import (
    ALICE,
    BOB,
    CAROL,
    DIM,
    STRANGER,
    FakeExtractor,
    FakeLocator,
    MemoryAttendanceStore,
    MemoryIdentityStore,
    axis,
)


@pytest.fixture
def embeddings() -> Dict[int, np.ndarray]:
    return {
        ALICE: axis(0),
        BOB: axis(1),
        CAROL: axis(2),
        STRANGER: axis(3),
    }


@pytest.fixture
def locator() -> FakeLocator:
    return FakeLocator({ALICE: 0.99, BOB: 0.95, CAROL: 0.9, STRANGER: 0.7})


@pytest.fixture
def extractor(embeddings) -> FakeExtractor:
    return FakeExtractor(embeddings)


@pytest.fixture
def identity_store() -> MemoryIdentityStore:
    return MemoryIdentityStore()


@pytest.fixture
def attendance_store() -> MemoryAttendanceStore:
    return MemoryAttendanceStore()


@pytest.fixture
def registry() -> IdentityRegistry:
    return IdentityRegistry(embedding_dimension=DIM)
