"""Face recognition value objects."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from classroll.domain.entities.face import BoundingBox, DetectedFace


class Match(BaseModel):
    """Result of pairing one detected face with at most one identity."""
    face_index: int = Field(..., ge=0, description="Position of the face in the matching input")
    identity_id: Optional[str] = Field(None, description="Matched identity, absent if unmatched")
    similarity: Optional[float] = Field(None, ge=0.0, le=1.0, description="Similarity with the matched identity")
    manual: bool = Field(False, description="Whether a reviewer assigned this face by hand")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_consistency(self) -> "Match":
        if self.identity_id is None and self.similarity is not None:
            raise ValueError("An unmatched face cannot carry a similarity")
        if self.identity_id is not None and self.similarity is None and not self.manual:
            raise ValueError("An automatic match must carry a similarity")
        return self

    @property
    def matched(self) -> bool:
        return self.identity_id is not None

    @classmethod
    def unmatched(cls, face_index: int) -> "Match":
        return cls(face_index=face_index)


class ConfidenceLevel(str, Enum):
    """Presentation bucket for a match similarity."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_similarity(cls, similarity: float, high: float = 0.8, medium: float = 0.6) -> "ConfidenceLevel":
        if similarity >= high:
            return cls.HIGH
        if similarity >= medium:
            return cls.MEDIUM
        return cls.LOW


class RecognizedFace(BaseModel):
    """Per-face record handed to the attendance review UI."""
    face_index: int = Field(..., ge=0)
    box: BoundingBox = Field(..., description="Face location in source-image pixels")
    detection_score: float = Field(..., ge=0.0, le=1.0)
    has_embedding: bool = Field(..., description="False when embedding extraction failed for this face")
    identity_id: Optional[str] = Field(None, description="Suggested identity")
    similarity: Optional[float] = Field(None, ge=0.0, le=1.0)
    confidence_level: Optional[ConfidenceLevel] = Field(None)

    @classmethod
    def from_match(
        cls,
        face: DetectedFace,
        match: Match,
        high: float = 0.8,
        medium: float = 0.6,
    ) -> "RecognizedFace":
        level = None
        if match.similarity is not None:
            level = ConfidenceLevel.from_similarity(match.similarity, high=high, medium=medium)
        return cls(
            face_index=match.face_index,
            box=face.box,
            detection_score=face.detection_score,
            has_embedding=face.has_embedding,
            identity_id=match.identity_id,
            similarity=match.similarity,
            confidence_level=level,
        )


class RecognitionResult(BaseModel):
    """Outcome of recognizing one class photo."""
    faces: List[RecognizedFace] = Field(..., description="Detected faces in detection order")
    group_key: Optional[str] = Field(None, description="Group the registry snapshot was scoped to")
    threshold: float = Field(..., ge=0.0, le=1.0)

    @property
    def matches(self) -> List[Match]:
        """Matcher output reconstructed from the per-face records."""
        return [
            Match(face_index=face.face_index, identity_id=face.identity_id, similarity=face.similarity)
            for face in self.faces
        ]
