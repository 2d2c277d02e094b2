"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends, Request

from classroll.core.container import ServiceContainer
from classroll.core.exceptions import ServiceNotInitializedError
from classroll.services.attendance import AttendanceService
from classroll.services.enrollment import EnrollmentService
from classroll.services.identity_registry import IdentityRegistry
from classroll.services.recognition_pipeline import PhotoRecognitionService


async def get_container(request: Request) -> ServiceContainer:
    """Dependency provider for the application's ServiceContainer."""
    container = getattr(request.app.state, "container", None)
    if container is None or not container.initialized:
        raise ServiceNotInitializedError("Service container not initialized")
    return container


async def get_registry(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[IdentityRegistry, None]:
    """Provide the identity registry.

    Yields:
        IdentityRegistry: Initialized registry
    """
    yield container.registry


async def get_enrollment_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[EnrollmentService, None]:
    """Provide the enrollment service.

    Yields:
        EnrollmentService: Initialized enrollment service
    """
    yield container.enrollment_service


async def get_recognition_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[PhotoRecognitionService, None]:
    """Provide the photo recognition service.

    Yields:
        PhotoRecognitionService: Initialized recognition service
    """
    yield container.recognition_service


async def get_attendance_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[AttendanceService, None]:
    """Provide the attendance service.

    Yields:
        AttendanceService: Initialized attendance service
    """
    yield container.attendance_service
