"""Attendance API endpoints."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from classroll.api.models.schemas import (
    AttendanceConfirmRequest,
    AttendanceSessionResponse,
    AttendanceSummaryResponse,
)
from classroll.core.exceptions import AttendanceStorageError
from classroll.core.logging import get_logger
from classroll.domain.entities.attendance import AttendanceRecord
from classroll.domain.entities.identity import utcnow
from classroll.domain.value_objects.recognition import Match
from classroll.infrastructure.dependencies import get_attendance_service
from classroll.services.attendance import AttendanceService

logger = get_logger(__name__)
router = APIRouter(
    tags=["attendance"],
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/confirm",
    response_model=AttendanceSessionResponse,
    summary="Confirm attendance for a session",
    description="Applies reviewer corrections to the recognition suggestions and stores "
                "one attendance record per identity of the group.",
)
async def confirm_attendance(
    request: AttendanceConfirmRequest,
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceSessionResponse:
    try:
        matches = [
            Match(face_index=face.face_index, identity_id=face.identity_id, similarity=face.similarity)
            for face in request.faces
        ]
        session = await service.confirm(
            matches,
            group_key=request.group_key,
            corrections=request.corrections(),
            session_date=request.session_date,
        )
        return AttendanceSessionResponse.from_session(session)
    except ValueError as e:
        logger.warning("Inconsistent attendance confirmation", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except AttendanceStorageError as e:
        logger.error("Failed to store attendance", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store attendance records")


@router.get(
    "",
    response_model=List[AttendanceRecord],
    summary="List attendance records",
)
async def list_attendance(
    session_date: Optional[date] = Query(None),
    group_key: Optional[str] = Query(None),
    service: AttendanceService = Depends(get_attendance_service),
) -> List[AttendanceRecord]:
    try:
        return await service.list_records(session_date=session_date, group_key=group_key)
    except AttendanceStorageError as e:
        logger.error("Failed to read attendance", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read attendance records")


@router.get(
    "/summary",
    response_model=AttendanceSummaryResponse,
    summary="Attendance summary for a date",
    description="Enrolled and present counts per group. Identities confirmed present in "
                "several sessions of the date are counted once.",
)
async def attendance_summary(
    session_date: Optional[date] = Query(None, description="Date to summarize; today (UTC) when omitted"),
    group_key: Optional[str] = Query(None),
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceSummaryResponse:
    try:
        summary = await service.summary(session_date or utcnow().date(), group_key=group_key)
        return AttendanceSummaryResponse.from_summary(summary)
    except AttendanceStorageError as e:
        logger.error("Failed to read attendance", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read attendance records")
