"""
News API schemas (request models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ArticleCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    # If omitted, the slug is derived from the title.
    slug: str | None = Field(default=None, max_length=500)
    excerpt: str = ""
    cover: str = ""
    date: datetime | None = None
    author: str | None = None
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    content: str = ""


class ArticleUpdateRequest(BaseModel):
    """
    Partial update: only fields present in the request body are merged.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    slug: str | None = Field(default=None, max_length=500)
    excerpt: str | None = None
    cover: str | None = None
    date: datetime | None = None
    author: str | None = None
    categories: list[str] | None = None
    tags: list[str] | None = None
    content: str | None = None
