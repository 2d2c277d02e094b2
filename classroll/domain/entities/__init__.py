"""Domain entities package."""
from .attendance import AttendanceRecord
from .face import BoundingBox, DetectedFace, LocatedFace
from .identity import Identity

__all__ = ["AttendanceRecord", "BoundingBox", "DetectedFace", "Identity", "LocatedFace"]
