"""Face detection with per-face embedding extraction."""
from typing import List, Optional

import numpy as np

from classroll.core.exceptions import ModelNotReadyError, NoFaceFoundError
from classroll.core.logging import get_logger
from classroll.core.utils.image import crop_region
from classroll.domain.entities.face import DetectedFace, LocatedFace
from classroll.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor
from classroll.domain.interfaces.recognition.face_detector import FaceDetector, FaceLocator

logger = get_logger(__name__)


class FaceDetectionService(FaceDetector):
    """Detects faces with a locator and embeds each one with an extractor.

    When the locator reports landmarks and the extractor can align on them,
    each face is embedded straight from the photo with those landmarks.
    Otherwise the located box is expanded by ``crop_margin`` (a fraction of
    the box size, so the extractor sees the whole head) and handed to the
    extractor on its own. A face whose extraction fails is still reported,
    without an embedding, and never aborts the remaining faces of the photo.

    Example:
        ```python
        detector = FaceDetectionService(locator, extractor, max_faces=50)
        await detector.initialize()
        faces = detector.detect(image)
        ```
    """

    def __init__(
        self,
        locator: FaceLocator,
        extractor: EmbeddingExtractor,
        max_faces: Optional[int] = None,
        min_detection_score: float = 0.0,
        crop_margin: float = 0.4,
    ) -> None:
        self.locator = locator
        self.extractor = extractor
        self.max_faces = max_faces
        self.min_detection_score = min_detection_score
        self.crop_margin = crop_margin
        self._not_ready_reported = False

    @property
    def is_ready(self) -> bool:
        return self.locator.is_ready and self.extractor.is_ready

    async def initialize(self) -> None:
        await self.locator.initialize()
        await self.extractor.initialize()

    async def dispose(self) -> None:
        await self.extractor.dispose()
        await self.locator.dispose()

    def _extract(self, image: np.ndarray, located: LocatedFace) -> Optional[np.ndarray]:
        if located.landmarks and self.extractor.supports_landmarks:
            return self.extractor.extract_aligned(image, located.landmarks)

        box = located.box
        region = crop_region(image, box.x, box.y, box.width, box.height, self.crop_margin)
        if region.size == 0:
            return None
        return self.extractor.extract(region)

    def _embed(self, image: np.ndarray, face_index: int, located: LocatedFace) -> Optional[np.ndarray]:
        try:
            embedding = self._extract(image, located)
        except NoFaceFoundError:
            logger.info("No face found in detected region", face_index=face_index)
            return None
        except Exception as e:
            logger.warning(
                "Embedding extraction failed",
                face_index=face_index,
                error=str(e),
                exc_info=True,
            )
            return None

        if embedding is None:
            logger.warning("Face box lies outside the image", face_index=face_index)
        return embedding

    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        """Detect faces in a BGR image, ordered by descending detection score."""
        try:
            located = self.locator.locate(image)
        except ModelNotReadyError:
            # The load failure itself is logged by the loader
            if not self._not_ready_reported:
                logger.warning("Face detection unavailable until the model is loaded")
                self._not_ready_reported = True
            return []
        except Exception as e:
            logger.error(
                "Face detection failed",
                error=str(e),
                image_shape=getattr(image, "shape", None),
                exc_info=True,
            )
            return []
        self._not_ready_reported = False

        located = [face for face in located if face.detection_score >= self.min_detection_score]
        # Stable sort keeps the locator's order among equal scores
        located.sort(key=lambda face: -face.detection_score)
        if self.max_faces is not None and len(located) > self.max_faces:
            logger.debug("Limiting faces", found=len(located), max_faces=self.max_faces)
            located = located[: self.max_faces]

        faces = []
        for face_index, face in enumerate(located):
            faces.append(
                DetectedFace(
                    box=face.box,
                    detection_score=min(max(face.detection_score, 0.0), 1.0),
                    embedding=self._embed(image, face_index, face),
                )
            )

        logger.debug(
            "Face detection results",
            faces_found=len(faces),
            with_embedding=sum(1 for face in faces if face.has_embedding),
        )
        return faces
