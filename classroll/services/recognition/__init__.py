"""Face detection and embedding services."""
from .face_detection import FaceDetectionService
from .inference import InferenceGate
from .model_loader import AsyncModelLoader

__all__ = ["AsyncModelLoader", "FaceDetectionService", "InferenceGate"]
