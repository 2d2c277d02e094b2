"""Embedding extractor interface."""
from abc import ABC, abstractmethod
from typing import Sequence, Tuple

import numpy as np


class EmbeddingExtractor(ABC):
    """Interface for turning a single-face image region into an embedding.

    Implementations wrap a trained model. Embeddings of the same face under
    benign lighting and pose variation are expected to be close under the
    distance convention reported by ``metric``.

    Lifecycle: construct -> ``initialize()`` -> ``extract()`` ... -> ``dispose()``.
    ``extract`` is blocking and not safe for concurrent calls on one instance.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length D of every embedding this extractor produces."""
        pass

    @property
    @abstractmethod
    def metric(self) -> str:
        """Distance convention the embeddings are trained for ("cosine" or "euclidean")."""
        pass

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the underlying model is loaded."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Load the model. Idempotent; concurrent callers share one load.

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        pass

    @abstractmethod
    def extract(self, face_image: np.ndarray) -> np.ndarray:
        """
        Compute the embedding of the face in ``face_image``.

        Args:
            face_image: BGR image region presumed to contain exactly one face

        Returns:
            1-D embedding of length ``dimension``

        Raises:
            NoFaceFoundError: If no face can be found in the region
            ModelNotReadyError: If called before a successful ``initialize()``
        """
        pass

    @property
    def supports_landmarks(self) -> bool:
        """Whether ``extract_aligned`` can embed a face from locator landmarks."""
        return False

    def extract_aligned(self, image: np.ndarray, landmarks: Sequence[Tuple[float, float]]) -> np.ndarray:
        """
        Compute the embedding of the face with ``landmarks`` in a full photo.

        Used instead of ``extract`` when the locator already produced the
        keypoints, so the face is not searched for a second time.

        Raises:
            NotImplementedError: If ``supports_landmarks`` is False
            ModelNotReadyError: If called before a successful ``initialize()``
        """
        raise NotImplementedError(f"{type(self).__name__} cannot align on landmarks")

    @abstractmethod
    async def dispose(self) -> None:
        """Release model resources."""
        pass
