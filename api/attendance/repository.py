"""
Attendance persistence.

At most one registration per (phone_key, event): the `attendances_phone_event_key`
unique index enforces it, colliding inserts raise `core.db.DuplicateKeyError`.
`phone` keeps the number as typed; `phone_key` is its normalized form.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from core.db import Database
from core.pagination import PageRequest

from .filters import AttendanceFilter, AttendanceSort

ATTENDANCE_COLUMNS = """
    id, name, phone, event, date, confirmed,
    sms_sent, sms_sent_at, sms_message_id, sms_error,
    created_at, updated_at
"""


class AttendanceRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def find_by_phone(self, phone_key: str, *, event: str) -> dict[str, Any] | None:
        return await self.db.fetch_one(
            f"""
            SELECT {ATTENDANCE_COLUMNS}
            FROM attendances
            WHERE phone_key = $1
              AND event = $2
            LIMIT 1
            """,
            phone_key,
            event,
        )

    async def create(
        self,
        *,
        name: str,
        phone: str,
        phone_key: str,
        event: str,
        date: datetime,
        confirmed: bool = True,
    ) -> dict[str, Any]:
        row = await self.db.fetch_one(
            f"""
            INSERT INTO attendances (name, phone, phone_key, event, date, confirmed)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {ATTENDANCE_COLUMNS}
            """,
            name,
            phone,
            phone_key,
            event,
            date,
            confirmed,
        )
        if row is None:
            raise RuntimeError("Failed to create attendance.")
        return row

    async def get(self, attendance_id: UUID) -> dict[str, Any] | None:
        return await self.db.fetch_one(
            f"SELECT {ATTENDANCE_COLUMNS} FROM attendances WHERE id = $1",
            attendance_id,
        )

    async def list_for_event(self, event: str) -> list[dict[str, Any]]:
        return await self.db.fetch_all(
            f"""
            SELECT {ATTENDANCE_COLUMNS}
            FROM attendances
            WHERE event = $1
            ORDER BY date DESC, id DESC
            """,
            event,
        )

    async def list_attendances(
        self,
        attendance_filter: AttendanceFilter,
        sort: AttendanceSort,
        page: PageRequest,
    ) -> tuple[list[dict[str, Any]], int]:
        predicate = attendance_filter.to_predicate()
        where = predicate.where_sql()
        n = len(predicate.args)

        total = await self.db.fetch_val(
            f"SELECT count(*) FROM attendances WHERE {where}",
            *predicate.args,
        )
        rows = await self.db.fetch_all(
            f"""
            SELECT {ATTENDANCE_COLUMNS}
            FROM attendances
            WHERE {where}
            ORDER BY {sort.order_sql()}
            LIMIT ${n + 1}
            OFFSET ${n + 2}
            """,
            *predicate.args,
            page.limit,
            page.offset,
        )
        return rows, int(total or 0)

    async def statistics(self) -> dict[str, int]:
        row = await self.db.fetch_one(
            """
            SELECT
              count(*)::int AS total,
              count(*) FILTER (WHERE sms_sent)::int AS sms_sent
            FROM attendances
            """
        )
        row = row or {}
        return {"total": int(row.get("total", 0)), "smsSent": int(row.get("sms_sent", 0))}

    async def record_sms_result(
        self,
        attendance_id: UUID,
        *,
        success: bool,
        message_id: str | None = None,
        error: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Store the outcome of a delivery attempt.

        A failed attempt keeps an earlier successful delivery intact.
        """
        if success:
            sql = f"""
                UPDATE attendances
                SET sms_sent = true,
                    sms_sent_at = now(),
                    sms_message_id = $2,
                    sms_error = NULL,
                    updated_at = now()
                WHERE id = $1
                RETURNING {ATTENDANCE_COLUMNS}
            """
            return await self.db.fetch_one(sql, attendance_id, message_id)

        return await self.db.fetch_one(
            f"""
            UPDATE attendances
            SET sms_error = $2,
                updated_at = now()
            WHERE id = $1
            RETURNING {ATTENDANCE_COLUMNS}
            """,
            attendance_id,
            error,
        )

    async def delete(self, attendance_id: UUID) -> dict[str, Any] | None:
        return await self.db.fetch_one(
            f"""
            DELETE FROM attendances
            WHERE id = $1
            RETURNING {ATTENDANCE_COLUMNS}
            """,
            attendance_id,
        )
