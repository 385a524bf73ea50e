"""
News business logic.

Slug uniqueness:
- create: insert directly; the unique index is the final arbiter
- rename: pre-check the new slug, the unique index still backstops the race
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, status

from core.db import DuplicateKeyError
from core.pagination import RECENT, PageRequest, clamp_limit
from core.settings import Settings
from core.slugs import derive_slug, to_slug
from core.storage import ObjectStorage

from . import schemas
from .filters import ArticleFilter
from .repository import ArticleRepository

logger = logging.getLogger(__name__)

SLUG_CONFLICT = "Slug already exists"


def _utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _slug_conflict() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLUG_CONFLICT)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


def to_article_response(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(row["id"]),
        "slug": row["slug"],
        "title": row["title"],
        "excerpt": row.get("excerpt") or "",
        "cover": row.get("cover") or "",
        "date": row["date"],
        "author": row["author"],
        "categories": list(row.get("categories") or []),
        "tags": list(row.get("tags") or []),
        "content": row.get("content") or "",
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


async def list_news(
    repo: ArticleRepository,
    *,
    article_filter: ArticleFilter,
    page: PageRequest,
) -> dict[str, Any]:
    rows, total = await repo.list_articles(article_filter, page)
    return {
        "data": [to_article_response(r) for r in rows],
        "pagination": page.describe(total),
    }


async def recent_news(repo: ArticleRepository, *, limit: str | None) -> dict[str, Any]:
    rows = await repo.recent(clamp_limit(limit, RECENT))
    return {"data": [to_article_response(r) for r in rows]}


async def get_news(repo: ArticleRepository, token: str) -> dict[str, Any]:
    row = await repo.get_by_id_or_slug(token)
    if row is None:
        raise _not_found()
    return to_article_response(row)


async def label_facets(repo: ArticleRepository, field: str) -> dict[str, Any]:
    rows = await repo.label_counts(field)
    return {"data": [{"name": r["name"], "count": int(r["count"])} for r in rows]}


async def create_news(
    repo: ArticleRepository,
    payload: schemas.ArticleCreateRequest,
    *,
    settings: Settings,
) -> dict[str, Any]:
    slug = derive_slug(payload.slug, payload.title)
    try:
        row = await repo.create(
            slug=slug,
            title=payload.title,
            excerpt=payload.excerpt,
            cover=payload.cover,
            date=_utc(payload.date),
            author=(payload.author or "").strip() or settings.default_author,
            categories=payload.categories,
            tags=payload.tags,
            content=payload.content,
        )
    except DuplicateKeyError as exc:
        raise _slug_conflict() from exc

    logger.info("article_created id=%s slug=%s", row["id"], row["slug"])
    return to_article_response(row)


def _merge_fields(payload: schemas.ArticleUpdateRequest) -> dict[str, Any]:
    fields = payload.model_dump(exclude_unset=True)
    # Only `cover` may be cleared; a null for any other column means "leave it".
    merged = {k: v for k, v in fields.items() if v is not None or k == "cover"}
    if "cover" in merged and merged["cover"] is None:
        merged["cover"] = ""
    if "date" in merged:
        merged["date"] = _utc(merged["date"])
    return merged


async def update_news(
    repo: ArticleRepository,
    token: str,
    payload: schemas.ArticleUpdateRequest,
) -> dict[str, Any]:
    found = await repo.get_by_id_or_slug(token)
    if found is None:
        raise _not_found()

    fields = _merge_fields(payload)

    requested_slug = fields.pop("slug", None)
    if requested_slug and requested_slug != found["slug"]:
        new_slug = to_slug(requested_slug)
        if new_slug != found["slug"]:
            if await repo.slug_exists(new_slug, exclude_id=found["id"]):
                raise _slug_conflict()
            fields["slug"] = new_slug

    try:
        row = await repo.update(found["id"], fields)
    except DuplicateKeyError as exc:
        raise _slug_conflict() from exc

    if row is None:
        raise _not_found()
    return to_article_response(row)


async def _cleanup_cover(storage: ObjectStorage, cover: str | None) -> None:
    """
    Best-effort: a failed delete leaves an orphaned object, never a failed request.
    """
    key = storage.key_from_public_url(cover)
    if key is None:
        return
    try:
        await storage.delete(key)
    except Exception:
        logger.warning("cover_cleanup_failed key=%s", key, exc_info=True)


async def delete_news(
    repo: ArticleRepository,
    token: str,
    *,
    storage: ObjectStorage,
) -> dict[str, Any]:
    row = await repo.delete(token)
    if row is None:
        raise _not_found()

    logger.info("article_deleted id=%s slug=%s", row["id"], row["slug"])
    await _cleanup_cover(storage, row.get("cover"))
    return to_article_response(row)
