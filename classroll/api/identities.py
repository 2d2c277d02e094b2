"""Identity enrollment API endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from classroll.api.models.schemas import (
    EnrollmentRequest,
    IdentityResponse,
    IdentityUpdateRequest,
    PhotoRequest,
)
from classroll.core.exceptions import (
    EmbeddingDimensionError,
    IdentityNotFoundError,
    IdentityRetiredError,
    InvalidImageError,
    ModelNotReadyError,
    NoFaceFoundError,
    RegistryStorageError,
)
from classroll.core.logging import get_logger
from classroll.core.utils.image import decode_base64_image
from classroll.infrastructure.dependencies import get_enrollment_service, get_registry
from classroll.services.enrollment import EnrollmentService
from classroll.services.identity_registry import IdentityRegistry

logger = get_logger(__name__)
router = APIRouter(
    tags=["identities"],
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


def _raise_for_enrollment_error(e: Exception, identity_id: Optional[str] = None) -> None:
    if isinstance(e, InvalidImageError):
        logger.error("Invalid image format", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NoFaceFoundError):
        logger.warning("No face found in enrollment photo", identity_id=identity_id)
        raise HTTPException(
            status_code=422,
            detail="No face found in the photo. Please retake it with the face clearly visible."
        )
    if isinstance(e, IdentityNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, IdentityRetiredError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ModelNotReadyError):
        logger.error("Enrollment requested while models are unavailable")
        raise HTTPException(status_code=503, detail="Face models are not loaded")
    if isinstance(e, EmbeddingDimensionError):
        logger.error("Embedding dimension mismatch", error=str(e))
        raise HTTPException(status_code=500, detail="Face model produced an unexpected embedding")
    if isinstance(e, RegistryStorageError):
        logger.error("Failed to store identity", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store identity data")
    logger.error("Unexpected error during enrollment", error=str(e), exc_info=True)
    raise HTTPException(
        status_code=500,
        detail="An unexpected error occurred while processing the request"
    )


@router.post(
    "",
    response_model=IdentityResponse,
    status_code=201,
    summary="Enroll an identity",
    description="Creates an identity, extracting its face embedding when a photo is given. "
                "Enrolling an existing id replaces its photo and metadata.",
)
async def enroll_identity(
    request: EnrollmentRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> IdentityResponse:
    try:
        image_bytes = decode_base64_image(request.image) if request.image is not None else None
        identity = await service.enroll(
            image_bytes=image_bytes,
            identity_id=request.id,
            group_key=request.group_key,
            name=request.name,
            roll_number=request.roll_number,
        )
        return IdentityResponse.from_identity(identity)
    except Exception as e:
        _raise_for_enrollment_error(e, request.id)


@router.get(
    "",
    response_model=List[IdentityResponse],
    summary="List identities",
)
async def list_identities(
    group_key: Optional[str] = Query(None, description="Only identities of this group"),
    registry: IdentityRegistry = Depends(get_registry),
) -> List[IdentityResponse]:
    return [IdentityResponse.from_identity(identity) for identity in registry.get_all(group_key)]


@router.get(
    "/{identity_id}",
    response_model=IdentityResponse,
    summary="Get an identity",
)
async def get_identity(
    identity_id: str,
    registry: IdentityRegistry = Depends(get_registry),
) -> IdentityResponse:
    try:
        return IdentityResponse.from_identity(registry.get(identity_id))
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{identity_id}",
    response_model=IdentityResponse,
    summary="Edit identity metadata",
)
async def edit_identity(
    identity_id: str,
    request: IdentityUpdateRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> IdentityResponse:
    try:
        identity = await service.edit(identity_id, **request.model_dump(exclude_unset=True))
        return IdentityResponse.from_identity(identity)
    except Exception as e:
        _raise_for_enrollment_error(e, identity_id)


@router.put(
    "/{identity_id}/photo",
    response_model=IdentityResponse,
    summary="Replace the enrollment photo",
)
async def recapture_identity(
    identity_id: str,
    request: PhotoRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> IdentityResponse:
    try:
        identity = await service.recapture(identity_id, decode_base64_image(request.image))
        return IdentityResponse.from_identity(identity)
    except Exception as e:
        _raise_for_enrollment_error(e, identity_id)


@router.delete(
    "/{identity_id}",
    status_code=204,
    summary="Remove an identity",
    description="Removes the identity from all future matching. Its id is never reused.",
)
async def remove_identity(
    identity_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> Response:
    try:
        await service.remove(identity_id)
        return Response(status_code=204)
    except Exception as e:
        _raise_for_enrollment_error(e, identity_id)
