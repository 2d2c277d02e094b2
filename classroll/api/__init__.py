"""API v1 router initialization."""
from fastapi import APIRouter

from .attendance import router as attendance_router
from .identities import router as identities_router
from .recognition import router as recognition_router

# Create v1 router
router = APIRouter()

router.include_router(identities_router, prefix="/identities")
router.include_router(recognition_router)
router.include_router(attendance_router, prefix="/attendance")
