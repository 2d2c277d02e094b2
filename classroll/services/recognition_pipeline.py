"""Class photo recognition: detection, registry snapshot and matching."""
from typing import List, Optional

from classroll.core.logging import get_logger
from classroll.core.utils.image import bytes_to_numpy_array, downscale_to_max_pixels
from classroll.domain.entities.face import DetectedFace
from classroll.domain.interfaces.recognition.face_detector import FaceDetector
from classroll.domain.value_objects.recognition import RecognitionResult, RecognizedFace
from classroll.services.identity_registry import IdentityRegistry
from classroll.services.matching.matcher import Matcher
from classroll.services.recognition.inference import InferenceGate

logger = get_logger(__name__)


class PhotoRecognitionService:
    """Recognizes the students in a class photo.

    This service:
    1. Decodes the photo and shrinks it to the pixel budget
    2. Detects faces and their embeddings under the shared inference gate
    3. Takes a registry snapshot for the session's group
    4. Matches all faces at once, after every embedding is available
    5. Returns per-face records for the review UI, boxes in source pixels

    The result is advisory: reviewer corrections are applied afterwards by
    the attendance service, never here.
    """

    def __init__(
        self,
        detector: FaceDetector,
        registry: IdentityRegistry,
        matcher: Matcher,
        gate: InferenceGate,
        max_image_pixels: int = 1920 * 1080,
        high_confidence: float = 0.8,
        medium_confidence: float = 0.6,
    ) -> None:
        self.detector = detector
        self.registry = registry
        self.matcher = matcher
        self.gate = gate
        self.max_image_pixels = max_image_pixels
        self.high_confidence = high_confidence
        self.medium_confidence = medium_confidence

    async def detect(self, image_bytes: bytes) -> List[DetectedFace]:
        """Detect faces in an encoded photo; boxes are in source-image pixels.

        Raises:
            InvalidImageError: If the photo cannot be decoded
        """
        image = bytes_to_numpy_array(image_bytes)
        resized, (scale_x, scale_y) = downscale_to_max_pixels(image, self.max_image_pixels)
        if resized is not image:
            logger.info(
                "Resizing large image",
                original_size=image.shape[1::-1],
                new_size=resized.shape[1::-1],
            )

        faces = await self.gate.run(self.detector.detect, resized)
        if resized is image:
            return faces
        return [face.model_copy(update={"box": face.box.scaled(scale_x, scale_y)}) for face in faces]

    async def recognize(
        self,
        image_bytes: bytes,
        group_key: Optional[str] = None,
        threshold: Optional[float] = None,
    ) -> RecognitionResult:
        """Detect and identify the faces in a class photo.

        Args:
            image_bytes: Encoded photo (JPEG/PNG)
            group_key: Restrict candidates to one group; all identities when None
            threshold: Similarity threshold; the matcher default when None

        Returns:
            RecognitionResult with one record per detected face

        Raises:
            InvalidImageError: If the photo cannot be decoded
        """
        threshold = self.matcher.default_threshold if threshold is None else threshold
        faces = await self.detect(image_bytes)

        identities = self.registry.snapshot(group_key)
        matches = self.matcher.match(faces, identities, threshold)

        records = [
            RecognizedFace.from_match(
                face,
                match,
                high=self.high_confidence,
                medium=self.medium_confidence,
            )
            for face, match in zip(faces, matches)
        ]

        logger.info(
            "Photo recognized",
            group_key=group_key,
            faces=len(records),
            matched=sum(1 for record in records if record.identity_id is not None),
            candidates=len(identities),
        )
        return RecognitionResult(faces=records, group_key=group_key, threshold=threshold)
