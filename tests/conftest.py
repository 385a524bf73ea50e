"""Shared fixtures: app wired to in-memory repositories and a mocked S3 client."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from attendance import router as attendance_router
from core.db import DuplicateKeyError
from core.settings import Settings
from core.storage import ObjectStorage
from main import create_app
from news import router as news_router

ADMIN_KEY = "test-admin-key"
PUBLIC_BASE_URL = "https://cdn.example.com/media"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryArticleRepository:
    """Mirrors ArticleRepository, including the unique slug index."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.list_calls: list[tuple[Any, Any]] = []

    def _find(self, token: str) -> dict[str, Any] | None:
        for row in self.rows:
            if row["slug"] == token:
                return row
        for row in self.rows:
            if str(row["id"]) == token:
                return row
        return None

    async def list_articles(self, article_filter, page):
        self.list_calls.append((article_filter, page))
        ordered = sorted(self.rows, key=lambda r: (r["date"], r["created_at"]), reverse=True)
        return ordered[page.offset : page.offset + page.limit], len(ordered)

    async def recent(self, limit: int):
        ordered = sorted(self.rows, key=lambda r: (r["date"], r["created_at"]), reverse=True)
        return ordered[:limit]

    async def get_by_id_or_slug(self, token: str):
        return self._find(token)

    async def slug_exists(self, slug: str, *, exclude_id: UUID | None = None) -> bool:
        return any(r["slug"] == slug and r["id"] != exclude_id for r in self.rows)

    async def create(self, **fields):
        if any(r["slug"] == fields["slug"] for r in self.rows):
            raise DuplicateKeyError("articles_slug_key")
        now = _now()
        row = {"id": uuid4(), "created_at": now, "updated_at": now, **fields}
        self.rows.append(row)
        return dict(row)

    async def update(self, article_id: UUID, fields: dict[str, Any]):
        for row in self.rows:
            if row["id"] != article_id:
                continue
            if "slug" in fields and any(
                r["slug"] == fields["slug"] and r["id"] != article_id for r in self.rows
            ):
                raise DuplicateKeyError("articles_slug_key")
            row.update(fields)
            row["updated_at"] = _now()
            return dict(row)
        return None

    async def delete(self, token: str):
        row = self._find(token)
        if row is None:
            return None
        self.rows.remove(row)
        return row

    async def label_counts(self, field: str):
        counts: dict[str, int] = {}
        for row in self.rows:
            for label in row[field]:
                counts[label.lower()] = counts.get(label.lower(), 0) + 1
        return [{"name": k, "count": v} for k, v in sorted(counts.items())]


class InMemoryAttendanceRepository:
    """Mirrors AttendanceRepository, including the (phone_key, event) unique index."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.sms_results: list[dict[str, Any]] = []
        self.skip_precheck = False

    async def find_by_phone(self, phone_key: str, *, event: str):
        if self.skip_precheck:
            return None
        for row in self.rows:
            if row["phone_key"] == phone_key and row["event"] == event:
                return row
        return None

    async def create(self, *, name, phone, phone_key, event, date, confirmed=True):
        if any(r["phone_key"] == phone_key and r["event"] == event for r in self.rows):
            raise DuplicateKeyError("attendances_phone_event_key")
        now = _now()
        row = {
            "id": uuid4(),
            "name": name,
            "phone": phone,
            "phone_key": phone_key,
            "event": event,
            "date": date,
            "confirmed": confirmed,
            "sms_sent": False,
            "sms_sent_at": None,
            "sms_message_id": None,
            "sms_error": None,
            "created_at": now,
            "updated_at": now,
        }
        self.rows.append(row)
        return dict(row)

    async def get(self, attendance_id: UUID):
        return next((r for r in self.rows if r["id"] == attendance_id), None)

    async def list_for_event(self, event: str):
        return [r for r in self.rows if r["event"] == event]

    async def list_attendances(self, attendance_filter, sort, page):
        return self.rows[page.offset : page.offset + page.limit], len(self.rows)

    async def statistics(self):
        return {"total": len(self.rows), "smsSent": sum(1 for r in self.rows if r["sms_sent"])}

    async def record_sms_result(self, attendance_id, *, success, message_id=None, error=None):
        self.sms_results.append(
            {"id": attendance_id, "success": success, "message_id": message_id, "error": error}
        )
        row = await self.get(attendance_id)
        if row is None:
            return None
        if success:
            row.update(sms_sent=True, sms_sent_at=_now(), sms_message_id=message_id, sms_error=None)
        else:
            row["sms_error"] = error
        return row

    async def delete(self, attendance_id: UUID):
        row = await self.get(attendance_id)
        if row is not None:
            self.rows.remove(row)
        return row


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_key=ADMIN_KEY,
        s3_bucket="media",
        s3_endpoint="https://r2.example.com",
        s3_public_base_url=PUBLIC_BASE_URL + "/",
        sms_api_token="sms-token",
        sms_sender_name="TESTSENDER",
        sms_api_url="https://sms.example.com/v1/messages",
    )


@pytest.fixture
def s3_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def storage(settings: Settings, s3_client: MagicMock) -> ObjectStorage:
    return ObjectStorage(settings, client=s3_client)


@pytest.fixture
def article_repo() -> InMemoryArticleRepository:
    return InMemoryArticleRepository()


@pytest.fixture
def attendance_repo() -> InMemoryAttendanceRepository:
    return InMemoryAttendanceRepository()


@pytest.fixture
def client(settings, storage, article_repo, attendance_repo):
    app = create_app(settings, storage=storage)
    app.dependency_overrides[news_router.get_article_repository] = lambda: article_repo
    app.dependency_overrides[attendance_router.get_attendance_repository] = lambda: attendance_repo
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"x-admin-key": ADMIN_KEY}
