"""Value objects package."""
from .attendance import AttendanceSession, AttendanceSummary, GroupAttendanceSummary, ManualCorrections
from .recognition import ConfidenceLevel, Match, RecognitionResult, RecognizedFace

__all__ = [
    "AttendanceSession",
    "AttendanceSummary",
    "ConfidenceLevel",
    "GroupAttendanceSummary",
    "ManualCorrections",
    "Match",
    "RecognitionResult",
    "RecognizedFace",
]
