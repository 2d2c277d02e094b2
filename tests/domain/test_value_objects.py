"""Tests for face and recognition domain objects."""
import numpy as np
import pytest
from pydantic import ValidationError

from classroll.domain.entities.face import BoundingBox, DetectedFace
from classroll.domain.entities.identity import Identity
from classroll.domain.value_objects.recognition import ConfidenceLevel, Match, RecognizedFace


def test_embedding_is_stored_read_only():
    source = np.array([1.0, 2.0, 3.0])
    identity = Identity(id="S1", embedding=source)
    source[0] = 99.0

    assert identity.embedding.dtype == np.float32
    assert identity.embedding[0] == 1.0
    with pytest.raises(ValueError):
        identity.embedding[0] = 5.0


@pytest.mark.parametrize("embedding", [[], [1.0, float("nan")], [float("inf")]])
def test_unusable_embeddings_are_rejected(embedding):
    with pytest.raises(ValidationError):
        Identity(id="S1", embedding=embedding)


def test_identity_id_must_not_be_empty():
    with pytest.raises(ValidationError):
        Identity(id="")


def test_detection_score_range():
    box = BoundingBox(x=0, y=0, width=10, height=10)

    with pytest.raises(ValidationError):
        DetectedFace(box=box, detection_score=1.2)


def test_box_scaling():
    box = BoundingBox(x=10, y=20, width=30, height=40).scaled(2.0)

    assert (box.x, box.y, box.width, box.height) == (20, 40, 60, 80)

    stretched = BoundingBox(x=10, y=20, width=30, height=40).scaled(2.0, 0.5)

    assert (stretched.x, stretched.y, stretched.width, stretched.height) == (20, 10, 60, 20)


def test_match_consistency():
    with pytest.raises(ValidationError):
        Match(face_index=0, similarity=0.9)
    with pytest.raises(ValidationError):
        Match(face_index=0, identity_id="S1")

    manual = Match(face_index=0, identity_id="S1", manual=True)
    assert manual.matched
    assert manual.similarity is None


@pytest.mark.parametrize(
    "similarity, level",
    [
        (0.95, ConfidenceLevel.HIGH),
        (0.8, ConfidenceLevel.HIGH),
        (0.79, ConfidenceLevel.MEDIUM),
        (0.6, ConfidenceLevel.MEDIUM),
        (0.59, ConfidenceLevel.LOW),
    ],
)
def test_confidence_levels(similarity, level):
    assert ConfidenceLevel.from_similarity(similarity) is level


def test_confidence_cutoffs_are_configurable():
    assert ConfidenceLevel.from_similarity(0.75, high=0.7, medium=0.5) is ConfidenceLevel.HIGH


def test_recognized_face_from_unmatched_face():
    face = DetectedFace(box=BoundingBox(x=0, y=0, width=10, height=10), detection_score=0.4)

    record = RecognizedFace.from_match(face, Match.unmatched(3))

    assert record.face_index == 3
    assert not record.has_embedding
    assert record.identity_id is None
    assert record.confidence_level is None
