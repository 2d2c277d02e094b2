"""Application services package."""
from .attendance import AttendanceAggregator, AttendanceService
from .enrollment import EnrollmentService
from .identity_registry import IdentityRegistry
from .matching import Matcher
from .recognition_pipeline import PhotoRecognitionService

__all__ = [
    "AttendanceAggregator",
    "AttendanceService",
    "EnrollmentService",
    "IdentityRegistry",
    "Matcher",
    "PhotoRecognitionService",
]
