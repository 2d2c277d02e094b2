"""Tests for face detection with per-face embedding extraction."""
import numpy as np
import pytest

from classroll.services.recognition import face_detection
from classroll.services.recognition.face_detection import FaceDetectionService

from tests.fakes import ALICE, BOB, CAROL, FakeExtractor, FakeLocator, axis, make_image

# Three faces far enough apart that their crop margins do not overlap
CLASS_IMAGE = make_image([
    (10, 100, 40, 40, CAROL),
    (110, 100, 40, 40, ALICE),
    (210, 100, 40, 40, BOB),
])


@pytest.fixture
async def detector(locator, extractor):
    service = FaceDetectionService(locator, extractor)
    await service.initialize()
    return service


async def test_faces_are_ordered_by_detection_score(extractor):
    locator = FakeLocator({CAROL: 0.5, ALICE: 0.9, BOB: 0.7})
    detector = FaceDetectionService(locator, extractor)
    await detector.initialize()

    faces = detector.detect(CLASS_IMAGE)

    assert [face.detection_score for face in faces] == [0.9, 0.7, 0.5]
    assert [face.box.x for face in faces] == [110, 210, 10]
    assert np.array_equal(faces[0].embedding, axis(0))
    assert np.array_equal(faces[1].embedding, axis(1))
    assert np.array_equal(faces[2].embedding, axis(2))


async def test_extraction_failure_is_isolated(locator, embeddings):
    extractor = FakeExtractor(embeddings, failing_levels=[BOB])
    detector = FaceDetectionService(locator, extractor)
    await detector.initialize()

    faces = detector.detect(CLASS_IMAGE)

    assert len(faces) == 3
    assert [face.has_embedding for face in faces] == [True, False, True]


async def test_region_without_face_is_kept_without_embedding(locator, extractor):
    locator.scores[30] = 0.4
    image = make_image([(110, 100, 40, 40, ALICE), (250, 20, 30, 30, 30)])
    detector = FaceDetectionService(locator, extractor)
    await detector.initialize()

    faces = detector.detect(image)

    assert [face.has_embedding for face in faces] == [True, False]
    assert faces[1].detection_score == 0.4


async def test_max_faces_keeps_the_strongest(locator, extractor):
    detector = FaceDetectionService(locator, extractor, max_faces=2)
    await detector.initialize()

    faces = detector.detect(CLASS_IMAGE)

    assert [face.detection_score for face in faces] == [0.99, 0.95]


async def test_min_detection_score(locator, extractor):
    detector = FaceDetectionService(locator, extractor, min_detection_score=0.92)
    await detector.initialize()

    faces = detector.detect(CLASS_IMAGE)

    assert [face.detection_score for face in faces] == [0.99, 0.95]


def test_unloaded_model_detects_nothing(locator, extractor):
    detector = FaceDetectionService(locator, extractor)

    assert not detector.is_ready
    assert detector.detect(CLASS_IMAGE) == []


async def test_crashing_locator_detects_nothing(detector, locator):
    locator.broken = True

    assert detector.detect(CLASS_IMAGE) == []


async def test_empty_image(detector):
    assert detector.detect(make_image([])) == []


async def test_lifecycle(detector, locator, extractor):
    assert detector.is_ready

    await detector.dispose()

    assert not locator.is_ready
    assert not extractor.is_ready
    assert not detector.is_ready


# BOB's padded crop reaches into ALICE's face
NEIGHBOURS_IMAGE = make_image([
    (100, 100, 40, 40, ALICE),
    (145, 100, 40, 40, BOB),
])


async def test_landmarks_embed_from_the_photo(embeddings):
    locator = FakeLocator({ALICE: 0.9, BOB: 0.8}, landmarks=True)
    extractor = FakeExtractor(embeddings, align=True)
    detector = FaceDetectionService(locator, extractor)
    await detector.initialize()

    faces = detector.detect(NEIGHBOURS_IMAGE)

    assert extractor.calls == []
    assert extractor.aligned_calls == [ALICE, BOB]
    assert np.array_equal(faces[0].embedding, axis(0))
    assert np.array_equal(faces[1].embedding, axis(1))


async def test_crop_is_used_without_landmark_support(embeddings):
    locator = FakeLocator({ALICE: 0.9, BOB: 0.8}, landmarks=True)
    extractor = FakeExtractor(embeddings)
    detector = FaceDetectionService(locator, extractor)
    await detector.initialize()

    faces = detector.detect(NEIGHBOURS_IMAGE)

    assert extractor.aligned_calls == []
    assert len(extractor.calls) == 2
    # The padded crop sees the brighter neighbour
    assert np.array_equal(faces[1].embedding, axis(0))


class RecordingLogger:
    def __init__(self):
        self.events = []

    def __getattr__(self, level):
        return lambda event, **kw: self.events.append((level, event))


def test_unloaded_model_is_reported_once(monkeypatch, locator, extractor):
    log = RecordingLogger()
    monkeypatch.setattr(face_detection, "logger", log)
    detector = FaceDetectionService(locator, extractor)

    for _ in range(3):
        assert detector.detect(CLASS_IMAGE) == []

    assert [level for level, _ in log.events if level == "warning"] == ["warning"]


async def test_unloaded_model_is_reported_again_after_recovery(monkeypatch, locator, extractor):
    log = RecordingLogger()
    monkeypatch.setattr(face_detection, "logger", log)
    detector = FaceDetectionService(locator, extractor)

    detector.detect(CLASS_IMAGE)
    await detector.initialize()
    assert len(detector.detect(CLASS_IMAGE)) == 3
    await detector.dispose()
    detector.detect(CLASS_IMAGE)

    assert [level for level, _ in log.events if level == "warning"] == ["warning", "warning"]
