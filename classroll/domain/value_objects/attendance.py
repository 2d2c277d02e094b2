"""Attendance value objects."""
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from classroll.domain.entities.attendance import AttendanceRecord


class ManualCorrections(BaseModel):
    """Reviewer corrections applied on top of the matcher output."""
    face_assignments: Dict[int, Optional[str]] = Field(
        default_factory=dict,
        description="Face index -> identity id, or None to clear the suggestion",
    )
    presence: Dict[str, bool] = Field(
        default_factory=dict,
        description="Identity id -> presence flag set by the reviewer",
    )


class AttendanceSession(BaseModel):
    """A confirmed attendance session."""
    group_key: Optional[str] = Field(None)
    session_date: date
    records: List[AttendanceRecord] = Field(default_factory=list)

    @property
    def present_count(self) -> int:
        return sum(1 for record in self.records if record.is_present)

    @property
    def total(self) -> int:
        return len(self.records)


class GroupAttendanceSummary(BaseModel):
    """Attendance of one group on one date."""
    group_key: Optional[str] = Field(None)
    enrolled: int = Field(..., ge=0, description="Identities currently enrolled in the group")
    present: int = Field(..., ge=0, description="Enrolled identities marked present at least once")

    @property
    def rate(self) -> float:
        return self.present / self.enrolled if self.enrolled else 0.0


class AttendanceSummary(BaseModel):
    """Per-group attendance counts for one date."""
    session_date: date
    groups: List[GroupAttendanceSummary] = Field(default_factory=list)

    @property
    def enrolled(self) -> int:
        return sum(group.enrolled for group in self.groups)

    @property
    def present(self) -> int:
        return sum(group.present for group in self.groups)

    @property
    def rate(self) -> float:
        return self.present / self.enrolled if self.enrolled else 0.0
