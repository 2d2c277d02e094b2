"""Service interfaces package."""
from .recognition import EmbeddingExtractor, FaceDetector, FaceLocator
from .storage import AttendanceStore, IdentityStore

__all__ = ["AttendanceStore", "EmbeddingExtractor", "FaceDetector", "FaceLocator", "IdentityStore"]
