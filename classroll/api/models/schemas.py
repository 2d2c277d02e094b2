"""API specific request and response models."""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from classroll.domain.entities.attendance import AttendanceRecord
from classroll.domain.entities.identity import Identity
from classroll.domain.value_objects.attendance import AttendanceSession, AttendanceSummary, ManualCorrections
from classroll.domain.value_objects.recognition import RecognizedFace

# Constants for validation ranges used in API models
MIN_THRESHOLD = 0.0
MAX_THRESHOLD = 1.0


class IdentityResponse(BaseModel):
    """API model for an enrolled identity (the embedding itself is not exposed)."""
    id: str = Field(..., description="Identity identifier")
    group_key: Optional[str] = Field(None, description="Class/cohort tag")
    name: Optional[str] = Field(None)
    roll_number: Optional[str] = Field(None)
    has_embedding: bool = Field(..., description="Whether a usable face photo is enrolled")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        """Create an API record from an identity entity."""
        return cls(
            id=identity.id,
            group_key=identity.group_key,
            name=identity.name,
            roll_number=identity.roll_number,
            has_embedding=identity.has_embedding,
            created_at=identity.created_at,
            updated_at=identity.updated_at,
        )


class EnrollmentRequest(BaseModel):
    """Request model for enrolling an identity."""
    id: Optional[str] = Field(
        None,
        description="Identity identifier; generated when omitted",
        min_length=1, max_length=64, pattern="^[a-zA-Z0-9_.:-]+$"
    )
    group_key: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    roll_number: Optional[str] = Field(None, max_length=64)
    image: Optional[str] = Field(
        None,
        description="Base64 encoded photo with exactly one face (data URLs accepted)"
    )


class IdentityUpdateRequest(BaseModel):
    """Request model for editing identity metadata. Omitted fields are unchanged."""
    group_key: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    roll_number: Optional[str] = Field(None, max_length=64)


class PhotoRequest(BaseModel):
    """Request model for replacing an identity's enrollment photo."""
    image: str = Field(..., description="Base64 encoded photo with exactly one face")


class RecognitionRequest(BaseModel):
    """Request model for recognizing a class photo."""
    image: str = Field(..., description="Base64 encoded class photo")
    group_key: Optional[str] = Field(None, description="Only match identities of this group")
    threshold: Optional[float] = Field(
        None,
        description="Minimum similarity for a match; server default when omitted",
        ge=MIN_THRESHOLD, le=MAX_THRESHOLD
    )


class RecognitionResponse(BaseModel):
    """Response model for class photo recognition."""
    faces: List[RecognizedFace] = Field(..., description="Detected faces in detection order")
    group_key: Optional[str] = Field(None)
    threshold: float


class ConfirmedFace(BaseModel):
    """A face suggestion as returned by recognition, echoed back for confirmation."""
    face_index: int = Field(..., ge=0)
    identity_id: Optional[str] = Field(None)
    similarity: Optional[float] = Field(None, ge=MIN_THRESHOLD, le=MAX_THRESHOLD)


class AttendanceConfirmRequest(BaseModel):
    """Request model for confirming a reviewed session."""
    group_key: Optional[str] = Field(None)
    session_date: Optional[date] = Field(None, description="Defaults to today (UTC)")
    faces: List[ConfirmedFace] = Field(default_factory=list)
    face_assignments: Dict[int, Optional[str]] = Field(
        default_factory=dict,
        description="Reviewer reassignments: face index -> identity id or null"
    )
    presence: Dict[str, bool] = Field(
        default_factory=dict,
        description="Reviewer presence toggles: identity id -> present"
    )

    def corrections(self) -> ManualCorrections:
        return ManualCorrections(face_assignments=self.face_assignments, presence=self.presence)


class AttendanceSessionResponse(BaseModel):
    """Response model for a confirmed session."""
    group_key: Optional[str] = Field(None)
    session_date: date
    present_count: int
    total: int
    records: List[AttendanceRecord]

    @classmethod
    def from_session(cls, session: AttendanceSession) -> "AttendanceSessionResponse":
        return cls(
            group_key=session.group_key,
            session_date=session.session_date,
            present_count=session.present_count,
            total=session.total,
            records=session.records,
        )


class GroupSummaryResponse(BaseModel):
    group_key: Optional[str] = Field(None)
    enrolled: int
    present: int
    rate: float = Field(..., ge=0.0, le=1.0, description="Present / enrolled, 0 for an empty group")


class AttendanceSummaryResponse(BaseModel):
    """Response model for the attendance summary of one date."""
    session_date: date
    enrolled: int
    present: int
    rate: float = Field(..., ge=0.0, le=1.0)
    groups: List[GroupSummaryResponse]

    @classmethod
    def from_summary(cls, summary: AttendanceSummary) -> "AttendanceSummaryResponse":
        return cls(
            session_date=summary.session_date,
            enrolled=summary.enrolled,
            present=summary.present,
            rate=summary.rate,
            groups=[
                GroupSummaryResponse(
                    group_key=group.group_key,
                    enrolled=group.enrolled,
                    present=group.present,
                    rate=group.rate,
                )
                for group in summary.groups
            ],
        )
