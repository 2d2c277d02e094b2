"""
InsightFace-based implementations of the face locator and embedding extractor.

Both adapters share one ``InsightFaceModel``: a FaceAnalysis bundle with the
detection and ArcFace recognition models of the configured model pack,
loaded once through an ``AsyncModelLoader``.

Key Features:
    - Face localization with detection scores in source-image pixels
    - 512-D L2-normalized ArcFace embeddings (cosine convention)
    - Class photos are embedded from the detection keypoints of one pass;
      standalone portraits are detected first
    - Idempotent asynchronous model loading shared by both adapters

Example:
    ```python
    model = InsightFaceModel(model_name="buffalo_l", model_root=".model_cache")
    locator = InsightFaceLocator(model)
    extractor = InsightFaceEmbeddingExtractor(model)
    await model.initialize()

    located = locator.locate(photo)
    embedding = extractor.extract_aligned(photo, located[0].landmarks)
    enrolled = extractor.extract(portrait)
    ```

Note:
    This implementation uses CPU inference by default. For GPU support,
    set MODEL_PROVIDERS to include 'CUDAExecutionProvider'.
"""
from typing import List, Optional, Sequence, Tuple

import numpy as np
from insightface.app import FaceAnalysis
from insightface.app.common import Face

from classroll.core.exceptions import NoFaceFoundError
from classroll.core.logging import get_logger
from classroll.domain.entities.face import BoundingBox, LocatedFace
from classroll.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor
from classroll.domain.interfaces.recognition.face_detector import FaceLocator
from classroll.services.matching.similarity import COSINE
from classroll.services.recognition.model_loader import AsyncModelLoader

logger = get_logger(__name__)


class InsightFaceModel:
    """Shared InsightFace model bundle with an explicit lifecycle."""

    def __init__(
        self,
        model_name: str = "buffalo_l",
        model_root: str = ".model_cache",
        providers: Optional[Sequence[str]] = None,
        det_size: Tuple[int, int] = (640, 640),
    ) -> None:
        self.model_name = model_name
        self.model_root = model_root
        self.providers = list(providers or ["CPUExecutionProvider"])
        self.det_size = det_size
        self._loader: AsyncModelLoader[FaceAnalysis] = AsyncModelLoader(self._build, name=model_name)

    def _build(self) -> FaceAnalysis:
        model = FaceAnalysis(
            name=self.model_name,
            root=self.model_root,
            providers=self.providers,
            allowed_modules=["detection", "recognition"],
        )
        # Detection size affects accuracy significantly
        model.prepare(ctx_id=0, det_size=self.det_size)
        return model

    @property
    def is_ready(self) -> bool:
        return self._loader.is_loaded

    @property
    def analysis(self) -> FaceAnalysis:
        """
        Raises:
            ModelNotReadyError: If the model has not been loaded
        """
        return self._loader.model

    async def initialize(self) -> None:
        await self._loader.load()

    async def dispose(self) -> None:
        if self._loader.is_loaded:
            logger.debug("Releasing InsightFace model", model=self.model_name)
        self._loader.unload()


class InsightFaceLocator(FaceLocator):
    """Finds faces with the InsightFace detection model."""

    def __init__(self, model: InsightFaceModel) -> None:
        self.model = model

    @property
    def is_ready(self) -> bool:
        return self.model.is_ready

    async def initialize(self) -> None:
        await self.model.initialize()

    async def dispose(self) -> None:
        await self.model.dispose()

    def locate(self, image: np.ndarray) -> List[LocatedFace]:
        detector = self.model.analysis.det_model
        bboxes, kpss = detector.detect(image, max_num=0, metric="default")

        height, width = image.shape[:2]
        located = []
        for i, (x1, y1, x2, y2, score) in enumerate(np.asarray(bboxes, dtype=np.float64).reshape(-1, 5)):
            left, top = max(0.0, x1), max(0.0, y1)
            right, bottom = min(float(width), x2), min(float(height), y2)
            if right <= left or bottom <= top:
                continue
            landmarks = None
            if kpss is not None:
                landmarks = [(float(px), float(py)) for px, py in kpss[i]]
            located.append(
                LocatedFace(
                    box=BoundingBox(x=left, y=top, width=right - left, height=bottom - top),
                    detection_score=float(score),
                    landmarks=landmarks,
                )
            )
        return located


class InsightFaceEmbeddingExtractor(EmbeddingExtractor):
    """Embeds faces with the InsightFace ArcFace model.

    ArcFace aligns on five facial keypoints. ``extract_aligned`` takes them
    from the locator; ``extract`` detects the most prominent face of a
    portrait to obtain them.
    """

    def __init__(self, model: InsightFaceModel, dimension: int = 512) -> None:
        self.model = model
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def metric(self) -> str:
        return COSINE

    @property
    def is_ready(self) -> bool:
        return self.model.is_ready

    async def initialize(self) -> None:
        await self.model.initialize()

    async def dispose(self) -> None:
        await self.model.dispose()

    @property
    def supports_landmarks(self) -> bool:
        return True

    def extract_aligned(self, image: np.ndarray, landmarks: Sequence[Tuple[float, float]]) -> np.ndarray:
        recognizer = self.model.analysis.models["recognition"]
        face = Face(kps=np.asarray(landmarks, dtype=np.float32).reshape(-1, 2))
        recognizer.get(image, face)
        return np.asarray(face.normed_embedding, dtype=np.float32).reshape(-1)

    def extract(self, face_image: np.ndarray) -> np.ndarray:
        faces = self.model.analysis.get(face_image, max_num=1)
        if not faces:
            raise NoFaceFoundError(
                "No face found in image region",
                details={"region_shape": tuple(face_image.shape[:2])},
            )

        embedding = faces[0].normed_embedding
        if embedding is None:
            raise NoFaceFoundError("Face found but no embedding could be computed")
        return np.asarray(embedding, dtype=np.float32).reshape(-1)
