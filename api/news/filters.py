"""
Article listing filters.

- category / tag: case-insensitive exact match against any list element
- q: case-insensitive substring over title, excerpt and author

A parameter that is absent (or blank) adds no clause at all.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.query import Predicate, PredicateBuilder, contains_pattern

LABEL_FIELDS = {"categories", "tags"}
SEARCH_FIELDS = ("title", "excerpt", "author")


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def _label_clause(field: str, placeholder: str) -> str:
    if field not in LABEL_FIELDS:
        raise ValueError(f"Unsupported label field: {field}")
    return f"EXISTS (SELECT 1 FROM unnest({field}) AS label WHERE lower(label) = lower({placeholder}))"


@dataclass(frozen=True)
class ArticleFilter:
    category: str | None = None
    tag: str | None = None
    q: str | None = None

    @classmethod
    def from_query(
        cls,
        *,
        category: str | None = None,
        tag: str | None = None,
        q: str | None = None,
    ) -> "ArticleFilter":
        return cls(category=_clean(category), tag=_clean(tag), q=_clean(q))

    def to_predicate(self) -> Predicate:
        builder = PredicateBuilder()
        if self.category:
            builder.add(_label_clause("categories", builder.param(self.category)))
        if self.tag:
            builder.add(_label_clause("tags", builder.param(self.tag)))
        if self.q:
            placeholder = builder.param(contains_pattern(self.q))
            builder.add(" OR ".join(f"{col} ILIKE {placeholder}" for col in SEARCH_FIELDS))
        return builder.build()
