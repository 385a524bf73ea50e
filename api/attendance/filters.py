"""
Attendance listing filters and sort order.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.query import Predicate, PredicateBuilder, contains_pattern

SMS_FILTERS = {"all", "sms-sent", "sms-not-sent"}

# Public sort keys -> columns. Anything else sorts by date.
SORT_COLUMNS = {
    "date": "date",
    "name": "name",
    "phone": "phone",
    "event": "event",
    "createdAt": "created_at",
    "smsSent": "sms_sent",
    "smsSentAt": "sms_sent_at",
}


@dataclass(frozen=True)
class AttendanceFilter:
    search: str | None = None
    sms: str = "all"

    @classmethod
    def from_query(cls, *, search: str | None = None, sms: str | None = None) -> "AttendanceFilter":
        sms = (sms or "all").strip().lower()
        return cls(
            search=(search or "").strip() or None,
            sms=sms if sms in SMS_FILTERS else "all",
        )

    def to_predicate(self) -> Predicate:
        builder = PredicateBuilder()
        if self.search:
            placeholder = builder.param(contains_pattern(self.search))
            builder.add(f"name ILIKE {placeholder} OR phone ILIKE {placeholder}")
        if self.sms == "sms-sent":
            builder.add("sms_sent = true")
        elif self.sms == "sms-not-sent":
            builder.add("sms_sent = false")
        return builder.build()


@dataclass(frozen=True)
class AttendanceSort:
    field: str = "date"
    descending: bool = True

    @classmethod
    def from_query(cls, *, sort_by: str | None = None, sort_order: str | None = None) -> "AttendanceSort":
        field = (sort_by or "").strip()
        order = (sort_order or "").strip().lower()
        return cls(
            field=field if field in SORT_COLUMNS else "date",
            descending=order != "asc",
        )

    def order_sql(self) -> str:
        direction = "DESC" if self.descending else "ASC"
        return f"{SORT_COLUMNS[self.field]} {direction} NULLS LAST, id {direction}"
