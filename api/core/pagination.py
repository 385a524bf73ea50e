"""
Page/limit clamping shared by the listing endpoints.

Query values arrive as raw strings so that out-of-range input is clamped
instead of rejected: `limit=1000` becomes the endpoint maximum and
`page=0` becomes page 1, and pages past the largest representable
offset collapse onto it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PageProfile:
    default_limit: int
    max_limit: int


ARTICLES = PageProfile(default_limit=6, max_limit=50)
RECENT = PageProfile(default_limit=3, max_limit=10)
ATTENDANCE = PageProfile(default_limit=10, max_limit=100)

# OFFSET is a bigint in the store.
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def describe(self, total: int) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "totalPages": total_pages(total, self.limit),
        }


def _to_int(raw: str | int | None, default: int) -> int:
    if raw is None:
        return default
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def clamp_limit(raw: str | int | None, profile: PageProfile) -> int:
    limit = _to_int(raw, profile.default_limit)
    return min(profile.max_limit, max(1, limit))


def paginate(
    page: str | int | None,
    limit: str | int | None,
    profile: PageProfile,
) -> PageRequest:
    size = clamp_limit(limit, profile)
    last_page = MAX_OFFSET // size + 1
    return PageRequest(
        page=min(last_page, max(1, _to_int(page, 1))),
        limit=size,
    )


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 1
    return max(1, math.ceil(total / limit))
