"""Tests for class photo recognition."""
import pytest

from classroll.core.exceptions import InvalidImageError
from classroll.domain.entities.identity import Identity
from classroll.domain.value_objects.recognition import ConfidenceLevel
from classroll.services.matching.matcher import Matcher
from classroll.services.recognition.face_detection import FaceDetectionService
from classroll.services.recognition.inference import InferenceGate
from classroll.services.recognition_pipeline import PhotoRecognitionService

from tests.fakes import ALICE, BOB, CAROL, DIM, STRANGER, axis, make_photo, towards

CLASS_PHOTO = make_photo([
    (10, 20, 40, 40, ALICE),
    (110, 20, 40, 40, BOB),
    (210, 20, 40, 40, CAROL),
    (110, 140, 40, 40, STRANGER),
])


def build_service(locator, extractor, registry, **kwargs) -> PhotoRecognitionService:
    return PhotoRecognitionService(
        detector=FaceDetectionService(locator, extractor),
        registry=registry,
        matcher=Matcher(default_threshold=0.6, embedding_dimension=DIM),
        gate=InferenceGate(),
        **kwargs,
    )


@pytest.fixture
async def service(locator, extractor, registry):
    await locator.initialize()
    await extractor.initialize()
    await registry.add(Identity(id="alice", embedding=axis(0), group_key="5A"))
    await registry.add(Identity(id="bob", embedding=axis(1), group_key="5A"))
    await registry.add(Identity(id="carol", embedding=axis(2), group_key="6B"))
    await registry.add(Identity(id="dave", group_key="5A"))
    return build_service(locator, extractor, registry)


async def test_recognize_class_photo(service):
    result = await service.recognize(CLASS_PHOTO)

    assert result.threshold == 0.6
    assert [face.face_index for face in result.faces] == [0, 1, 2, 3]
    assert [face.identity_id for face in result.faces] == ["alice", "bob", "carol", None]
    assert result.faces[0].similarity == 1.0
    assert result.faces[0].confidence_level == ConfidenceLevel.HIGH
    assert result.faces[3].has_embedding
    assert result.faces[3].confidence_level is None


async def test_recognize_scoped_to_group(service):
    result = await service.recognize(CLASS_PHOTO, group_key="5A")

    assert [face.identity_id for face in result.faces] == ["alice", "bob", None, None]
    assert result.group_key == "5A"


async def test_boxes_are_in_source_pixels(service):
    result = await service.recognize(CLASS_PHOTO)

    box = result.faces[1].box
    assert (box.x, box.y, box.width, box.height) == (110, 20, 40, 40)


async def test_medium_confidence(locator, extractor, registry):
    await locator.initialize()
    await extractor.initialize()
    await registry.add(Identity(id="alice", embedding=towards(0, 1, 0.7)))
    service = build_service(locator, extractor, registry)

    result = await service.recognize(make_photo([(10, 20, 40, 40, ALICE)]))

    assert result.faces[0].identity_id == "alice"
    assert result.faces[0].similarity == pytest.approx(0.7, abs=1e-6)
    assert result.faces[0].confidence_level == ConfidenceLevel.MEDIUM


async def test_threshold_override(service):
    result = await service.recognize(CLASS_PHOTO, threshold=1.0)

    assert result.threshold == 1.0
    assert [face.identity_id for face in result.faces] == ["alice", "bob", "carol", None]


async def test_large_photo_is_downscaled(locator, extractor, registry):
    await locator.initialize()
    await extractor.initialize()
    await registry.add(Identity(id="alice", embedding=axis(0)))
    service = build_service(locator, extractor, registry, max_image_pixels=100 * 100)
    photo = make_photo([(40, 60, 40, 40, ALICE)], size=(200, 200))

    result = await service.recognize(photo)

    assert len(result.faces) == 1
    box = result.faces[0].box
    assert (box.x, box.y, box.width, box.height) == (40, 60, 40, 40)
    assert result.faces[0].identity_id == "alice"


async def test_unloaded_models_give_no_faces(locator, extractor, registry):
    service = build_service(locator, extractor, registry)

    result = await service.recognize(CLASS_PHOTO)

    assert result.faces == []


async def test_invalid_photo(service):
    with pytest.raises(InvalidImageError):
        await service.recognize(b"\x00\x01garbage")


async def test_matches_view(service):
    result = await service.recognize(CLASS_PHOTO, group_key="5A")

    matches = result.matches
    assert [m.identity_id for m in matches] == ["alice", "bob", None, None]
    assert [m.face_index for m in matches] == [0, 1, 2, 3]
