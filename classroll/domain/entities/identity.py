"""Enrolled identity entity."""
from datetime import datetime, timezone
from typing import Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from classroll.domain.entities.face import as_embedding


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Identity(BaseModel):
    """One enrollable subject (a student).

    At most one embedding is held per identity; re-enrollment produces a new
    ``Identity`` value that replaces the old one in the registry.
    """
    id: str = Field(..., min_length=1, max_length=64, description="Stable identity identifier")
    embedding: Optional[np.ndarray] = Field(None, description="Face embedding, absent until a usable photo is enrolled")
    group_key: Optional[str] = Field(None, description="Cohort/class tag used for scoping")
    name: Optional[str] = Field(None, description="Display name")
    roll_number: Optional[str] = Field(None, description="Roll number within the group")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert embedding to a read-only numpy array."""
        return as_embedding(v)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None
