"""Attendance record entity."""
import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from classroll.domain.entities.identity import utcnow


class AttendanceRecord(BaseModel):
    """Presence of one identity in one confirmed session."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    identity_id: str = Field(..., description="Identity this record is about")
    group_key: Optional[str] = Field(None, description="Group the session was taken for")
    session_date: date = Field(..., description="Calendar date of the session")
    recorded_at: datetime = Field(default_factory=utcnow)
    is_present: bool = Field(..., description="Whether the identity was present")
    manually_marked: bool = Field(False, description="Whether a reviewer set or changed this flag")
    similarity: Optional[float] = Field(None, ge=0.0, le=1.0, description="Similarity of the automatic match, if any")

    model_config = ConfigDict(frozen=True)
