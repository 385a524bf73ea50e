"""
News API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from auth import dependencies as auth_dependencies
from core.db import Database
from core.dependencies import get_database, get_settings, get_storage
from core.pagination import ARTICLES, paginate
from core.settings import Settings
from core.storage import ObjectStorage

from . import schemas, service
from .filters import ArticleFilter
from .repository import ArticleRepository

router = APIRouter(prefix="/api")


def get_article_repository(db: Database = Depends(get_database)) -> ArticleRepository:
    return ArticleRepository(db)


@router.get("/news")
async def list_news(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    category: str | None = Query(default=None, max_length=200),
    tag: str | None = Query(default=None, max_length=200),
    q: str | None = Query(default=None, max_length=500),
    repo: ArticleRepository = Depends(get_article_repository),
) -> dict:
    """
    List articles newest first, optionally filtered by category, tag and text.
    """
    return await service.list_news(
        repo,
        article_filter=ArticleFilter.from_query(category=category, tag=tag, q=q),
        page=paginate(page, limit, ARTICLES),
    )


@router.get("/news/{slug_or_id}")
async def get_news(
    slug_or_id: str,
    repo: ArticleRepository = Depends(get_article_repository),
) -> dict:
    return await service.get_news(repo, slug_or_id)


@router.get("/recent")
async def recent_news(
    limit: str | None = Query(default=None),
    repo: ArticleRepository = Depends(get_article_repository),
) -> dict:
    return await service.recent_news(repo, limit=limit)


@router.get("/categories")
async def categories(repo: ArticleRepository = Depends(get_article_repository)) -> dict:
    return await service.label_facets(repo, "categories")


@router.get("/tags")
async def tags(repo: ArticleRepository = Depends(get_article_repository)) -> dict:
    return await service.label_facets(repo, "tags")


@router.post("/news", status_code=status.HTTP_201_CREATED)
async def create_news(
    request: schemas.ArticleCreateRequest,
    _: None = Depends(auth_dependencies.require_admin),
    repo: ArticleRepository = Depends(get_article_repository),
    settings: Settings = Depends(get_settings),
) -> dict:
    return await service.create_news(repo, request, settings=settings)


@router.put("/news/{article_id}")
async def update_news(
    article_id: str,
    request: schemas.ArticleUpdateRequest,
    _: None = Depends(auth_dependencies.require_admin),
    repo: ArticleRepository = Depends(get_article_repository),
) -> dict:
    return await service.update_news(repo, article_id, request)


@router.delete("/news/{article_id}")
async def delete_news(
    article_id: str,
    _: None = Depends(auth_dependencies.require_admin),
    repo: ArticleRepository = Depends(get_article_repository),
    storage: ObjectStorage = Depends(get_storage),
) -> dict:
    """
    Delete an article; its uploaded cover is removed on a best-effort basis.
    """
    return await service.delete_news(repo, article_id, storage=storage)
