"""
Attendance API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from auth import dependencies as auth_dependencies
from core.db import Database
from core.dependencies import get_database, get_settings
from core.pagination import ATTENDANCE, paginate
from core.settings import Settings

from . import schemas, service
from .filters import AttendanceFilter, AttendanceSort
from .repository import AttendanceRepository

router = APIRouter(prefix="/api")


def get_attendance_repository(db: Database = Depends(get_database)) -> AttendanceRepository:
    return AttendanceRepository(db)


@router.post("/attendance", status_code=status.HTTP_201_CREATED)
async def register(
    request: schemas.AttendanceRequest,
    repo: AttendanceRepository = Depends(get_attendance_repository),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await service.register_attendance(repo, request, settings=settings)


@router.post("/attendance-with-sms", status_code=status.HTTP_201_CREATED)
async def register_with_sms(
    request: schemas.AttendanceRequest,
    repo: AttendanceRepository = Depends(get_attendance_repository),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Register and send a confirmation SMS. A failed SMS does not fail the registration.
    """
    return await service.register_attendance_with_sms(repo, request, settings=settings)


@router.get("/attendance")
async def list_event_attendances(
    event: str | None = Query(default=None, max_length=200),
    _: None = Depends(auth_dependencies.require_admin),
    repo: AttendanceRepository = Depends(get_attendance_repository),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await service.list_event_attendances(repo, event=(event or "").strip() or settings.event_name)


@router.get("/attendance/public")
async def list_public(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    sms_filter: str | None = Query(default=None, alias="filter", max_length=20),
    sort_by: str | None = Query(default=None, alias="sortBy", max_length=20),
    sort_order: str | None = Query(default=None, alias="sortOrder", max_length=10),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    return await service.list_public(
        repo,
        attendance_filter=AttendanceFilter.from_query(search=search, sms=sms_filter),
        sort=AttendanceSort.from_query(sort_by=sort_by, sort_order=sort_order),
        page=paginate(page, limit, ATTENDANCE),
    )


@router.delete("/attendance/public/{attendance_id}")
async def delete_attendance(
    attendance_id: str,
    _: None = Depends(auth_dependencies.require_admin),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    return await service.delete_attendance(repo, attendance_id)


@router.post("/attendance/{attendance_id}/send-sms")
async def send_sms(
    attendance_id: str,
    request: schemas.SendSmsRequest | None = None,
    _: None = Depends(auth_dependencies.require_admin),
    repo: AttendanceRepository = Depends(get_attendance_repository),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await service.send_confirmation_sms(repo, attendance_id, request, settings=settings)
