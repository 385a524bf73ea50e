"""
Slug helpers.

A slug is lowercase ASCII words joined by single hyphens:
`^[a-z0-9]+(-[a-z0-9]+)*$`. Uniqueness is enforced by the store, not here.
"""

from __future__ import annotations

import re
import unicodedata
from uuid import uuid4

FALLBACK_SLUG = "noticia"

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def to_slug(text: str | None) -> str:
    """
    Normalize free text into a slug.

    "Notícia Incrível!" -> "noticia-incrivel"
    """
    lowered = str(text or "").lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_ALNUM_RUN.sub("-", stripped).strip("-")
    return slug or FALLBACK_SLUG


def derive_slug(slug: str | None = None, title: str | None = None) -> str:
    # Explicit slug wins, then the title, then a random id.
    candidate = (slug or "").strip() or (title or "").strip() or str(uuid4())
    return to_slug(candidate)
