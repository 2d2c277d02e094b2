"""Custom exceptions for the attendance recognition service."""
from typing import Optional


class ClassRollError(Exception):
    """Base exception for attendance recognition operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize attendance recognition error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class InvalidImageError(ClassRollError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass


class NoFaceFoundError(ClassRollError):
    """Raised when no face can be found in an image region that should contain one."""
    pass


class ModelLoadError(ClassRollError):
    """Raised when the face models fail to load."""
    pass


class ModelNotReadyError(ModelLoadError):
    """Raised when a model-backed component is used before it was loaded."""
    pass


class EmbeddingDimensionError(ClassRollError):
    """Raised when an embedding does not have the configured dimension."""
    pass


class IdentityNotFoundError(ClassRollError):
    """Raised when an identity id is not present in the registry."""
    pass


class IdentityRetiredError(ClassRollError):
    """Raised when a removed identity id is offered for enrollment again."""
    pass


class RegistryStorageError(ClassRollError):
    """Raised when the identity store fails to persist a registry mutation."""
    pass


class AttendanceStorageError(ClassRollError):
    """Raised when attendance records cannot be stored or read."""
    pass


class ServiceNotInitializedError(ClassRollError):
    """Raised when a service is requested from a container that was not initialized."""
    pass
