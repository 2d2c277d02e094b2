"""Core face domain entities."""
from typing import List, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_embedding(v: Optional[Union[np.ndarray, list, tuple]]) -> Optional[np.ndarray]:
    """Convert an embedding to a read-only 1-D float32 array."""
    if v is None:
        return None
    arr = np.array(v, dtype=np.float32).reshape(-1)
    if arr.size == 0:
        raise ValueError("Embedding must not be empty")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Embedding must contain only finite values")
    arr.setflags(write=False)
    return arr


class BoundingBox(BaseModel):
    """Face bounding box in source-image pixel coordinates."""
    x: float = Field(..., description="Left coordinate of the bounding box")
    y: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., gt=0, description="Width of the bounding box")
    height: float = Field(..., gt=0, description="Height of the bounding box")

    model_config = ConfigDict(frozen=True)

    def scaled(self, factor: float, factor_y: Optional[float] = None) -> "BoundingBox":
        """Return the box scaled by ``factor`` (and ``factor_y`` vertically, if given)."""
        factor_y = factor if factor_y is None else factor_y
        return BoundingBox(
            x=self.x * factor,
            y=self.y * factor_y,
            width=self.width * factor,
            height=self.height * factor_y,
        )


class LocatedFace(BaseModel):
    """A face region found by a locator, before any embedding is computed."""
    box: BoundingBox
    detection_score: float
    landmarks: Optional[List[Tuple[float, float]]] = Field(
        None, description="Facial keypoints (x, y) in the same pixels as the box, if the locator provides them"
    )

    model_config = ConfigDict(frozen=True)


class DetectedFace(BaseModel):
    """One face found in a single photo."""
    box: BoundingBox = Field(..., description="Face location in the photo")
    detection_score: float = Field(..., ge=0.0, le=1.0, description="Confidence that the region is a face")
    embedding: Optional[np.ndarray] = Field(None, description="Face embedding, absent if extraction failed")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert embedding to a read-only numpy array."""
        return as_embedding(v)

    @property
    def has_embedding(self) -> bool:
        """Whether this face is eligible for matching."""
        return self.embedding is not None
