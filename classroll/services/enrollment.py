"""Enrollment of students: photo to embedding to registry entry."""
from typing import Optional

import numpy as np

from classroll.core.exceptions import IdentityNotFoundError, IdentityRetiredError
from classroll.core.logging import get_logger
from classroll.core.utils.image import bytes_to_numpy_array, downscale_to_max_pixels
from classroll.domain.entities.identity import Identity, utcnow
from classroll.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor
from classroll.services.identity_registry import IdentityRegistry
from classroll.services.recognition.inference import InferenceGate

logger = get_logger(__name__)

_UNSET = object()


class EnrollmentService:
    """Service for enrolling, re-capturing, editing and removing identities.

    An enrollment photo must contain a face. When extraction fails with
    ``NoFaceFoundError`` nothing is written and the error propagates, so the
    caller can ask for another photo.

    Example:
        ```python
        service = EnrollmentService(extractor, registry, gate)
        identity = await service.enroll(photo_bytes, group_key="5A", name="Asha Rao")
        identity = await service.recapture(identity.id, better_photo_bytes)
        ```
    """

    def __init__(
        self,
        extractor: EmbeddingExtractor,
        registry: IdentityRegistry,
        gate: InferenceGate,
        max_image_pixels: int = 1920 * 1080,
    ) -> None:
        self.extractor = extractor
        self.registry = registry
        self.gate = gate
        self.max_image_pixels = max_image_pixels

    async def extract_embedding(self, image_bytes: bytes) -> np.ndarray:
        """Compute the embedding of the single face in an enrollment photo.

        Raises:
            InvalidImageError: If the photo cannot be decoded
            NoFaceFoundError: If the photo has no usable face
            ModelNotReadyError: If the extractor model is not loaded
        """
        image = bytes_to_numpy_array(image_bytes)
        image, _ = downscale_to_max_pixels(image, self.max_image_pixels)
        return await self.gate.run(self.extractor.extract, image)

    async def enroll(
        self,
        image_bytes: Optional[bytes] = None,
        identity_id: Optional[str] = None,
        group_key: Optional[str] = None,
        name: Optional[str] = None,
        roll_number: Optional[str] = None,
    ) -> Identity:
        """Create a new identity, with an embedding when a photo is given.

        Args:
            image_bytes: Enrollment photo; the identity has no embedding when None
            identity_id: Explicit id; generated when None

        Raises:
            IdentityRetiredError: If the id belongs to a removed identity
            NoFaceFoundError: If the photo has no usable face
        """
        if identity_id is not None and self.registry.is_retired(identity_id):
            raise IdentityRetiredError(
                f"Identity id {identity_id} was removed and cannot be reused",
                details={"identity_id": identity_id},
            )

        embedding = None
        if image_bytes is not None:
            embedding = await self.extract_embedding(image_bytes)

        identity_id = identity_id or self.registry.new_identity_id()
        # Re-enrolling an existing id replaces it but keeps its creation time
        created_at = self.registry.get(identity_id).created_at if identity_id in self.registry else utcnow()
        identity = Identity(
            id=identity_id,
            embedding=embedding,
            group_key=group_key,
            name=name,
            roll_number=roll_number,
            created_at=created_at,
        )

        await self.registry.add(identity)
        logger.info("Identity enrolled", identity_id=identity.id, has_embedding=identity.has_embedding)
        return identity

    async def recapture(self, identity_id: str, image_bytes: bytes) -> Identity:
        """Replace the embedding of an existing identity from a new photo.

        Raises:
            IdentityNotFoundError: If the identity does not exist
            NoFaceFoundError: If the photo has no usable face; the old embedding is kept
        """
        current = self.registry.get(identity_id)
        embedding = await self.extract_embedding(image_bytes)

        # The identity may have been removed while the model was busy
        if identity_id not in self.registry:
            raise IdentityNotFoundError(
                f"Identity not found: {identity_id}",
                details={"identity_id": identity_id},
            )

        identity = Identity(
            id=current.id,
            embedding=embedding,
            group_key=current.group_key,
            name=current.name,
            roll_number=current.roll_number,
            created_at=current.created_at,
        )
        await self.registry.update(identity)
        logger.info("Identity photo recaptured", identity_id=identity_id)
        return identity

    async def edit(
        self,
        identity_id: str,
        name=_UNSET,
        group_key=_UNSET,
        roll_number=_UNSET,
    ) -> Identity:
        """Change identity metadata; the embedding is left as it is.

        Arguments that are not passed keep their current value; passing None
        clears the field.

        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        current = self.registry.get(identity_id)
        changes = {
            field: value
            for field, value in (("name", name), ("group_key", group_key), ("roll_number", roll_number))
            if value is not _UNSET
        }
        identity = current.model_copy(update={**changes, "updated_at": utcnow()})
        await self.registry.update(identity)
        logger.info("Identity edited", identity_id=identity_id, fields=sorted(changes))
        return identity

    async def remove(self, identity_id: str) -> Identity:
        """
        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        return await self.registry.remove(identity_id)
