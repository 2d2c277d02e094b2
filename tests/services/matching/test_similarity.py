"""Tests for similarity conversions."""
import numpy as np
import pytest

from classroll.core.exceptions import EmbeddingDimensionError
from classroll.services.matching.similarity import similarity, similarity_matrix, stack_embeddings


def test_cosine_bounds():
    a = np.array([1.0, 0.0, 0.0])

    assert similarity(a, a) == pytest.approx(1.0)
    assert similarity(a, np.array([0.0, 1.0, 0.0])) == pytest.approx(0.0)
    # Opposite vectors floor at zero instead of going negative
    assert similarity(a, -a) == 0.0


def test_cosine_ignores_magnitude():
    assert similarity(np.array([2.0, 2.0]), np.array([0.5, 0.5])) == pytest.approx(1.0)


def test_euclidean_conversion():
    a = np.zeros(3)

    assert similarity(a, np.array([0.3, 0.0, 0.0]), "euclidean") == pytest.approx(0.7)
    assert similarity(a, np.array([3.0, 0.0, 0.0]), "euclidean") == 0.0


def test_matrix_shape_and_range():
    rng = np.random.default_rng(0)
    faces = rng.normal(size=(5, 8))
    identities = rng.normal(size=(3, 8))

    for metric in ("cosine", "euclidean"):
        matrix = similarity_matrix(faces, identities, metric)
        assert matrix.shape == (5, 3)
        assert np.all((matrix >= 0.0) & (matrix <= 1.0))


def test_empty_side_gives_empty_matrix():
    assert similarity_matrix(np.zeros((0, 4)), np.ones((2, 4))).shape == (0, 2)
    assert similarity_matrix(np.ones((2, 4)), np.zeros((0, 4))).shape == (2, 0)


def test_dimension_mismatch():
    with pytest.raises(EmbeddingDimensionError):
        similarity_matrix(np.ones((1, 4)), np.ones((1, 5)))


def test_unknown_metric():
    with pytest.raises(ValueError):
        similarity_matrix(np.ones((1, 4)), np.ones((1, 4)), "manhattan")


def test_stack_embeddings_checks_dimension():
    with pytest.raises(EmbeddingDimensionError):
        stack_embeddings([np.ones(4), np.ones(3)])
    with pytest.raises(EmbeddingDimensionError):
        stack_embeddings([np.ones(4)], dimension=512)

    assert stack_embeddings([], dimension=4).shape == (0, 4)
    assert stack_embeddings([]).shape == (0, 0)
    assert stack_embeddings([np.ones(3)]).shape == (1, 3)
