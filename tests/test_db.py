"""Tests for core.db that do not need a running Postgres."""

import asyncio
import logging

import asyncpg
import pytest
from fastapi.testclient import TestClient

from core import db as db_module
from core.db import Database, DatabaseError, DatabaseQueryError, DatabaseUnavailableError, DuplicateKeyError
from main import create_app


class TestSanitizeDatabaseUrl:
    def test_drops_sslmode(self) -> None:
        url = "postgresql://u:p@host:5432/news?sslmode=require&application_name=api"
        assert db_module._sanitize_database_url(url) == "postgresql://u:p@host:5432/news?application_name=api"

    def test_keeps_plain_url(self) -> None:
        url = "postgresql://u:p@host:5432/news"
        assert db_module._sanitize_database_url(url) == url


class TestTranslateErrors:
    def test_unique_violation_becomes_duplicate_key(self) -> None:
        with pytest.raises(DuplicateKeyError):
            with db_module._translate_errors():
                raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")

    def test_connection_failure_becomes_unavailable(self) -> None:
        with pytest.raises(DatabaseUnavailableError):
            with db_module._translate_errors():
                raise ConnectionRefusedError("refused")

    def test_argument_encoding_failure_becomes_query_error(self) -> None:
        with pytest.raises(DatabaseQueryError):
            with db_module._translate_errors():
                raise asyncpg.DataError("invalid input for query argument $2: value out of int64 range")

    def test_rejected_statement_becomes_query_error(self) -> None:
        with pytest.raises(DatabaseQueryError):
            with db_module._translate_errors():
                raise asyncpg.CharacterNotInRepertoireError('invalid byte sequence for encoding "UTF8": 0x00')

    def test_all_store_errors_share_a_base(self) -> None:
        assert issubclass(DatabaseQueryError, DatabaseError)
        assert issubclass(DatabaseUnavailableError, DatabaseError)
        assert issubclass(DuplicateKeyError, DatabaseError)


class TestEnsureReady:
    def test_missing_url(self) -> None:
        database = Database("")
        with pytest.raises(DatabaseUnavailableError):
            asyncio.run(database.ensure_ready())
        assert not database.is_ready

    def test_concurrent_callers_share_one_attempt(self, monkeypatch) -> None:
        calls = []
        sentinel = object()

        async def fake_create_pool(**kwargs):
            calls.append(kwargs)
            await asyncio.sleep(0)
            return sentinel

        monkeypatch.setattr(db_module.asyncpg, "create_pool", fake_create_pool)
        database = Database("postgresql://u:p@localhost/news?sslmode=disable", max_size=3)

        async def scenario():
            return await asyncio.gather(*(database.ensure_ready() for _ in range(5)))

        pools = asyncio.run(scenario())
        assert all(p is sentinel for p in pools)
        assert len(calls) == 1
        assert calls[0]["dsn"] == "postgresql://u:p@localhost/news"
        assert calls[0]["max_size"] == 3

    def test_failed_attempt_is_retried(self, monkeypatch) -> None:
        attempts = []
        sentinel = object()

        async def flaky_create_pool(**kwargs):
            attempts.append(kwargs)
            if len(attempts) == 1:
                raise OSError("connection refused")
            return sentinel

        monkeypatch.setattr(db_module.asyncpg, "create_pool", flaky_create_pool)
        database = Database("postgresql://localhost/news")

        async def scenario():
            with pytest.raises(DatabaseUnavailableError):
                await database.ensure_ready()
            return await database.ensure_ready()

        assert asyncio.run(scenario()) is sentinel
        assert len(attempts) == 2


class _RejectingPool:
    async def fetchval(self, sql, *args):
        raise asyncpg.DataError("invalid input for query argument $1: value out of int64 range")

    async def fetch(self, sql, *args):
        raise asyncpg.CharacterNotInRepertoireError('invalid byte sequence for encoding "UTF8": 0x00')

    async def close(self) -> None:
        return None


class TestRejectedQueryResponse:
    @pytest.fixture
    def rejecting_client(self, settings, storage):
        database = Database("postgresql://localhost/news")
        database._pool = _RejectingPool()
        with TestClient(create_app(settings, db=database, storage=storage)) as test_client:
            yield test_client

    def test_generic_failure_body_and_log(self, rejecting_client, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="main"):
            resp = rejecting_client.get("/api/news", params={"q": "a\x00b"})
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Failed"}
        assert "upstream_failure method=GET path=/api/news" in caplog.text

    def test_attendance_listing(self, rejecting_client) -> None:
        resp = rejecting_client.get("/api/attendance/public")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Failed"}
