"""Storage interfaces package."""
from .attendance_store import AttendanceStore
from .identity_store import IdentityStore

__all__ = ["AttendanceStore", "IdentityStore"]
