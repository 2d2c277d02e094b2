"""Tests for the enrollment service."""
import numpy as np
import pytest

from classroll.core.exceptions import (
    IdentityNotFoundError,
    IdentityRetiredError,
    InvalidImageError,
    ModelNotReadyError,
    NoFaceFoundError,
)
from classroll.services.enrollment import EnrollmentService
from classroll.services.recognition.inference import InferenceGate

from tests.fakes import ALICE, BOB, axis, make_photo

ALICE_PHOTO = make_photo([(100, 60, 80, 100, ALICE)])
BOB_PHOTO = make_photo([(100, 60, 80, 100, BOB)])
EMPTY_PHOTO = make_photo([])


@pytest.fixture
async def service(extractor, registry):
    await extractor.initialize()
    return EnrollmentService(extractor, registry, InferenceGate())


async def test_enroll_with_photo(service, registry):
    identity = await service.enroll(ALICE_PHOTO, identity_id="S1", group_key="5A", name="Alice")

    assert identity.id == "S1"
    assert np.array_equal(identity.embedding, axis(0))
    assert registry.get("S1").name == "Alice"


async def test_enroll_generates_an_id(service, registry):
    identity = await service.enroll(ALICE_PHOTO, group_key="5A")

    assert identity.id in registry


async def test_enroll_without_photo(service, registry):
    identity = await service.enroll(identity_id="S1", name="Alice")

    assert not identity.has_embedding
    assert "S1" in registry


async def test_no_face_blocks_enrollment(service, registry):
    with pytest.raises(NoFaceFoundError):
        await service.enroll(EMPTY_PHOTO, identity_id="S1")

    assert "S1" not in registry


async def test_invalid_photo(service):
    with pytest.raises(InvalidImageError):
        await service.enroll(b"not an image", identity_id="S1")


async def test_model_not_loaded(extractor, registry):
    service = EnrollmentService(extractor, registry, InferenceGate())

    with pytest.raises(ModelNotReadyError):
        await service.enroll(ALICE_PHOTO, identity_id="S1")


async def test_re_enroll_keeps_creation_time(service, registry):
    first = await service.enroll(ALICE_PHOTO, identity_id="S1")
    second = await service.enroll(BOB_PHOTO, identity_id="S1")

    assert len(registry) == 1
    assert second.created_at == first.created_at
    assert np.array_equal(registry.get("S1").embedding, axis(1))


async def test_removed_id_cannot_be_enrolled_again(service, extractor):
    await service.enroll(ALICE_PHOTO, identity_id="S1")
    await service.remove("S1")
    calls = len(extractor.calls)

    with pytest.raises(IdentityRetiredError):
        await service.enroll(ALICE_PHOTO, identity_id="S1")
    # Refused before running the model
    assert len(extractor.calls) == calls


async def test_recapture_replaces_embedding(service, registry):
    await service.enroll(ALICE_PHOTO, identity_id="S1", name="Alice", group_key="5A")

    identity = await service.recapture("S1", BOB_PHOTO)

    assert np.array_equal(identity.embedding, axis(1))
    assert identity.name == "Alice"
    assert identity.group_key == "5A"
    assert len(registry) == 1


async def test_failed_recapture_keeps_old_embedding(service, registry):
    await service.enroll(ALICE_PHOTO, identity_id="S1")

    with pytest.raises(NoFaceFoundError):
        await service.recapture("S1", EMPTY_PHOTO)

    assert np.array_equal(registry.get("S1").embedding, axis(0))


async def test_recapture_unknown(service):
    with pytest.raises(IdentityNotFoundError):
        await service.recapture("ghost", ALICE_PHOTO)


async def test_edit_changes_only_given_fields(service, registry):
    original = await service.enroll(ALICE_PHOTO, identity_id="S1", name="Alice", group_key="5A")

    edited = await service.edit("S1", group_key="6A", roll_number=None)

    assert edited.name == "Alice"
    assert edited.group_key == "6A"
    assert edited.roll_number is None
    assert np.array_equal(edited.embedding, original.embedding)
    assert edited.updated_at >= original.updated_at
    assert registry.get("S1").group_key == "6A"


async def test_remove(service, registry):
    await service.enroll(ALICE_PHOTO, identity_id="S1")

    await service.remove("S1")

    assert "S1" not in registry
    with pytest.raises(IdentityNotFoundError):
        await service.remove("S1")
