"""Class photo recognition API endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from classroll.api.models.schemas import RecognitionRequest, RecognitionResponse
from classroll.core.container import ServiceContainer
from classroll.core.exceptions import (
    EmbeddingDimensionError,
    InvalidImageError,
    ModelLoadError,
)
from classroll.core.logging import get_logger
from classroll.core.utils.image import decode_base64_image
from classroll.infrastructure.dependencies import get_container, get_recognition_service
from classroll.services.recognition_pipeline import PhotoRecognitionService

logger = get_logger(__name__)
router = APIRouter(
    tags=["recognition"],
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/recognition",
    response_model=RecognitionResponse,
    summary="Recognize students in a class photo",
    description="Detects faces in the photo and suggests at most one identity per face. "
                "Suggestions are advisory and can be corrected before confirming attendance.",
    responses={
        200: {
            "description": "Photo processed",
            "content": {
                "application/json": {
                    "example": {
                        "faces": [
                            {
                                "face_index": 0,
                                "box": {"x": 120, "y": 64, "width": 96, "height": 118},
                                "detection_score": 0.98,
                                "has_embedding": True,
                                "identity_id": "student-17",
                                "similarity": 0.83,
                                "confidence_level": "high",
                            }
                        ],
                        "group_key": "5A",
                        "threshold": 0.6,
                    }
                }
            },
        },
    },
)
async def recognize_photo(
    request: RecognitionRequest,
    service: PhotoRecognitionService = Depends(get_recognition_service),
) -> RecognitionResponse:
    try:
        result = await service.recognize(
            decode_base64_image(request.image),
            group_key=request.group_key,
            threshold=request.threshold,
        )
        return RecognitionResponse(
            faces=result.faces,
            group_key=result.group_key,
            threshold=result.threshold,
        )
    except InvalidImageError as e:
        logger.error("Invalid image format", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except EmbeddingDimensionError as e:
        logger.error("Embedding dimension mismatch", error=str(e), details=e.details)
        raise HTTPException(status_code=500, detail="Face model produced an unexpected embedding")
    except Exception as e:
        logger.error("Unexpected error during recognition", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected error occurred.")


@router.post(
    "/models/initialize",
    summary="Load the face models",
    description="Retries loading the face models after a failed startup load.",
)
async def initialize_models(container: ServiceContainer = Depends(get_container)) -> dict:
    try:
        await container.initialize_models()
    except ModelLoadError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"models_ready": container.models_ready}
