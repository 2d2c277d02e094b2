"""Face detection interfaces."""
from abc import ABC, abstractmethod
from typing import List

import numpy as np

from ...entities.face import DetectedFace, LocatedFace


class FaceLocator(ABC):
    """Interface for finding face regions in a photo."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Load the detection model. Idempotent.

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        pass

    @abstractmethod
    def locate(self, image: np.ndarray) -> List[LocatedFace]:
        """
        Find faces in a BGR image.

        Returns:
            Located faces, boxes and landmarks in the image's pixel coordinates

        Raises:
            ModelNotReadyError: If called before a successful ``initialize()``
        """
        pass

    @abstractmethod
    async def dispose(self) -> None:
        pass


class FaceDetector(ABC):
    """Interface for detecting faces together with their embeddings."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Load every model the detector depends on.

        Raises:
            ModelLoadError: If a model cannot be loaded
        """
        pass

    @abstractmethod
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        """
        Detect faces and extract their embeddings.

        Args:
            image: BGR photo

        Returns:
            Detected faces ordered by descending detection score. Faces whose
            embedding could not be extracted are included without embedding.
            Returns an empty list if no faces are found or the model is unusable.
        """
        pass

    @abstractmethod
    async def dispose(self) -> None:
        pass
