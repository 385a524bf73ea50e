"""
Article persistence.
This module is where article-related SQL lives.

Uniqueness of `slug` is owned by the `articles_slug_key` unique index; an
insert or update that collides raises `core.db.DuplicateKeyError`.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from core.db import Database
from core.pagination import PageRequest

from .filters import LABEL_FIELDS, ArticleFilter

ARTICLE_COLUMNS = """
    id, slug, title, excerpt, cover, date, author,
    categories, tags, content, created_at, updated_at
"""

# `date` collides for backdated imports; created_at keeps the order stable.
ARTICLE_ORDER = "date DESC, created_at DESC, id DESC"

UPDATABLE_COLUMNS = (
    "slug",
    "title",
    "excerpt",
    "cover",
    "date",
    "author",
    "categories",
    "tags",
    "content",
)


def parse_uuid(token: str) -> UUID | None:
    try:
        return UUID(str(token))
    except ValueError:
        return None


class ArticleRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def list_articles(
        self,
        article_filter: ArticleFilter,
        page: PageRequest,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        Return one page of matching articles plus the total match count.
        """
        predicate = article_filter.to_predicate()
        where = predicate.where_sql()
        n = len(predicate.args)

        total = await self.db.fetch_val(
            f"SELECT count(*) FROM articles WHERE {where}",
            *predicate.args,
        )
        rows = await self.db.fetch_all(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles
            WHERE {where}
            ORDER BY {ARTICLE_ORDER}
            LIMIT ${n + 1}
            OFFSET ${n + 2}
            """,
            *predicate.args,
            page.limit,
            page.offset,
        )
        return rows, int(total or 0)

    async def recent(self, limit: int) -> list[dict[str, Any]]:
        return await self.db.fetch_all(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles
            ORDER BY {ARTICLE_ORDER}
            LIMIT $1
            """,
            limit,
        )

    async def get_by_id_or_slug(self, token: str) -> dict[str, Any] | None:
        # Exact, case-sensitive identity match; a slug hit wins over an id hit.
        return await self.db.fetch_one(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles
            WHERE slug = $1
               OR id = $2
            ORDER BY (slug = $1) DESC
            LIMIT 1
            """,
            token,
            parse_uuid(token),
        )

    async def slug_exists(self, slug: str, *, exclude_id: UUID | None = None) -> bool:
        row = await self.db.fetch_one(
            """
            SELECT 1 AS ok
            FROM articles
            WHERE slug = $1
              AND ($2::uuid IS NULL OR id <> $2::uuid)
            LIMIT 1
            """,
            slug,
            exclude_id,
        )
        return row is not None

    async def create(
        self,
        *,
        slug: str,
        title: str,
        excerpt: str,
        cover: str,
        date: Any,
        author: str,
        categories: list[str],
        tags: list[str],
        content: str,
    ) -> dict[str, Any]:
        row = await self.db.fetch_one(
            f"""
            INSERT INTO articles (slug, title, excerpt, cover, date, author, categories, tags, content)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING {ARTICLE_COLUMNS}
            """,
            slug,
            title,
            excerpt,
            cover,
            date,
            author,
            categories,
            tags,
            content,
        )
        if row is None:
            raise RuntimeError("Failed to create article.")
        return row

    async def update(self, article_id: UUID, fields: dict[str, Any]) -> dict[str, Any] | None:
        """
        Merge `fields` into an article. Unknown keys are ignored.
        Returns the updated row, or None when the article is gone.
        """
        assignments: list[str] = []
        args: list[Any] = [article_id]
        for column in UPDATABLE_COLUMNS:
            if column in fields:
                args.append(fields[column])
                assignments.append(f"{column} = ${len(args)}")

        if not assignments:
            return await self.db.fetch_one(
                f"SELECT {ARTICLE_COLUMNS} FROM articles WHERE id = $1",
                article_id,
            )

        assignments.append("updated_at = now()")
        return await self.db.fetch_one(
            f"""
            UPDATE articles
            SET {", ".join(assignments)}
            WHERE id = $1
            RETURNING {ARTICLE_COLUMNS}
            """,
            *args,
        )

    async def delete(self, token: str) -> dict[str, Any] | None:
        return await self.db.fetch_one(
            f"""
            DELETE FROM articles
            WHERE id = (
              SELECT id
              FROM articles
              WHERE slug = $1
                 OR id = $2
              ORDER BY (slug = $1) DESC
              LIMIT 1
            )
            RETURNING {ARTICLE_COLUMNS}
            """,
            token,
            parse_uuid(token),
        )

    async def label_counts(self, field: str) -> list[dict[str, Any]]:
        """
        Facet counts for `categories` or `tags`, case-folded and sorted by name.
        """
        if field not in LABEL_FIELDS:
            raise ValueError(f"Unsupported label field: {field}")
        return await self.db.fetch_all(
            f"""
            SELECT lower(label) AS name, count(*)::int AS count
            FROM articles
            CROSS JOIN LATERAL unnest({field}) AS label
            GROUP BY lower(label)
            ORDER BY lower(label) COLLATE "C" ASC
            """
        )
