"""
Attendance business logic.

Scope:
- registration for the configured event (one per phone)
- admin / public listings
- SMS confirmation, either on demand or right after registration
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status

from core import sms
from core.db import DuplicateKeyError
from core.pagination import PageRequest
from core.settings import Settings

from . import messages, schemas
from .filters import AttendanceFilter, AttendanceSort
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MIN_NAME_CHARS = 3
MIN_PHONE_CHARS = 9

REGISTERED = "Presença confirmada com sucesso!"
ALREADY_REGISTERED = "Este número já foi registado para o evento"
NOT_FOUND = "Registro não encontrado"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)


def parse_attendance_id(raw: str) -> UUID:
    try:
        return UUID(str(raw))
    except ValueError:
        raise _not_found() from None


def to_attendance_response(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(row["id"]),
        "name": row["name"],
        "phone": row["phone"],
        "event": row["event"],
        "date": row["date"],
        "confirmed": bool(row["confirmed"]),
        "smsSent": bool(row["sms_sent"]),
        "smsSentAt": row.get("sms_sent_at"),
        "smsMessageId": row.get("sms_message_id"),
        "smsError": row.get("sms_error"),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def validate_registration(payload: schemas.AttendanceRequest) -> tuple[str, str]:
    """
    Return (name, phone) trimmed, or raise a 400 with a field-level message.
    """
    name = (payload.name or "").strip()
    phone = (payload.phone or "").strip()
    if not name or not phone:
        raise _bad_request("Nome e telefone são obrigatórios")
    if len(name) < MIN_NAME_CHARS:
        raise _bad_request(f"Nome deve ter pelo menos {MIN_NAME_CHARS} caracteres")
    if len(phone) < MIN_PHONE_CHARS:
        raise _bad_request(f"Telefone deve ter pelo menos {MIN_PHONE_CHARS} dígitos")
    return name, phone


async def register(
    repo: AttendanceRepository,
    payload: schemas.AttendanceRequest,
    *,
    settings: Settings,
) -> dict[str, Any]:
    name, phone = validate_registration(payload)
    phone_key = sms.normalize_phone(phone, country_code=settings.sms_country_code)
    event = settings.event_name

    # Fast path for the common duplicate; the unique index settles races.
    existing = await repo.find_by_phone(phone_key, event=event)
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_REGISTERED)

    try:
        row = await repo.create(
            name=name,
            phone=phone,
            phone_key=phone_key,
            event=event,
            date=_utc_now(),
            confirmed=True,
        )
    except DuplicateKeyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_REGISTERED) from exc

    logger.info("attendance_registered id=%s event=%s", row["id"], event)
    return row


def _registration_summary(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(row["id"]),
        "name": row["name"],
        "phone": row["phone"],
        "date": row["date"],
    }


async def register_attendance(
    repo: AttendanceRepository,
    payload: schemas.AttendanceRequest,
    *,
    settings: Settings,
) -> dict[str, Any]:
    row = await register(repo, payload, settings=settings)
    return {"success": True, "message": REGISTERED, "data": _registration_summary(row)}


async def _deliver(
    repo: AttendanceRepository,
    row: dict[str, Any],
    message: str,
    *,
    settings: Settings,
) -> sms.SmsResult:
    result = await sms.send_sms(
        api_url=settings.sms_api_url,
        token=settings.sms_api_token,
        sender=settings.sms_sender_name,
        phone=row["phone"],
        message=message,
        country_code=settings.sms_country_code,
        timeout_s=settings.sms_timeout_s,
    )
    await repo.record_sms_result(
        row["id"],
        success=result.success,
        message_id=result.message_id,
        error=result.error,
    )
    return result


async def register_attendance_with_sms(
    repo: AttendanceRepository,
    payload: schemas.AttendanceRequest,
    *,
    settings: Settings,
) -> dict[str, Any]:
    row = await register(repo, payload, settings=settings)

    sms_sent = False
    if settings.sms_configured:
        try:
            message = messages.registration_message(name=row["name"], event=row["event"])
            result = await _deliver(repo, row, message, settings=settings)
            sms_sent = result.success
        except Exception:
            # Registration already succeeded; the SMS can be resent by an operator.
            logger.warning("auto_sms_failed attendance_id=%s", row["id"], exc_info=True)

    data = _registration_summary(row)
    data["smsSent"] = sms_sent
    return {
        "success": True,
        "message": REGISTERED + (" SMS enviado." if sms_sent else ""),
        "data": data,
    }


async def send_confirmation_sms(
    repo: AttendanceRepository,
    attendance_id: str,
    payload: schemas.SendSmsRequest | None,
    *,
    settings: Settings,
) -> dict[str, Any]:
    if not settings.sms_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Configuração de SMS não está completa",
        )

    row = await repo.get(parse_attendance_id(attendance_id))
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registro de presença não encontrado",
        )

    custom = (payload.custom_message if payload else None) or ""
    message = custom.strip() or messages.confirmation_message(name=row["name"], event=row["event"])

    result = await _deliver(repo, row, message, settings=settings)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "Falha ao enviar SMS", "error": result.error},
        )

    return {
        "success": True,
        "message": "SMS enviado com sucesso",
        "data": {
            "attendanceId": str(row["id"]),
            "phone": row["phone"],
            "message": message,
            "smsResult": result.data,
        },
    }


async def list_event_attendances(repo: AttendanceRepository, *, event: str) -> dict[str, Any]:
    rows = await repo.list_for_event(event)
    return {
        "success": True,
        "count": len(rows),
        "data": [to_attendance_response(r) for r in rows],
    }


async def list_public(
    repo: AttendanceRepository,
    *,
    attendance_filter: AttendanceFilter,
    sort: AttendanceSort,
    page: PageRequest,
) -> dict[str, Any]:
    rows, total = await repo.list_attendances(attendance_filter, sort, page)
    stats = await repo.statistics()
    return {
        "success": True,
        "data": [to_attendance_response(r) for r in rows],
        "pagination": page.describe(total),
        "statistics": stats,
    }


async def delete_attendance(repo: AttendanceRepository, attendance_id: str) -> dict[str, Any]:
    row = await repo.delete(parse_attendance_id(attendance_id))
    if row is None:
        raise _not_found()
    logger.info("attendance_deleted id=%s", row["id"])
    return {
        "success": True,
        "message": "Inscrição eliminada com sucesso",
        "data": to_attendance_response(row),
    }
