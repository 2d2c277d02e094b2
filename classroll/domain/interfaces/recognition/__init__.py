"""Recognition interfaces package."""
from .embedding_extractor import EmbeddingExtractor
from .face_detector import FaceDetector, FaceLocator

__all__ = ["EmbeddingExtractor", "FaceDetector", "FaceLocator"]
