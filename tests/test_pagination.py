"""Tests for core.pagination."""

import pytest

from core.pagination import (
    ARTICLES,
    ATTENDANCE,
    MAX_OFFSET,
    RECENT,
    PageRequest,
    clamp_limit,
    paginate,
    total_pages,
)


class TestPaginate:
    def test_defaults(self) -> None:
        assert paginate(None, None, ARTICLES) == PageRequest(page=1, limit=6)
        assert paginate(None, None, ATTENDANCE) == PageRequest(page=1, limit=10)

    def test_limit_clamped_to_profile_maximum(self) -> None:
        assert paginate("1", "1000", ARTICLES).limit == 50
        assert paginate("1", "1000", ATTENDANCE).limit == 100

    @pytest.mark.parametrize("raw", ["0", "-3"])
    def test_page_floored_to_one(self, raw: str) -> None:
        assert paginate(raw, None, ARTICLES).page == 1

    def test_limit_floored_to_one(self) -> None:
        assert paginate(None, "0", ARTICLES).limit == 1

    def test_non_numeric_falls_back_to_defaults(self) -> None:
        assert paginate("abc", "xyz", ARTICLES) == PageRequest(page=1, limit=6)

    def test_offset(self) -> None:
        assert paginate("3", "10", ARTICLES).offset == 20


class TestClampLimit:
    def test_recent_profile(self) -> None:
        assert clamp_limit(None, RECENT) == 3
        assert clamp_limit("50", RECENT) == 10


class TestTotalPages:
    def test_never_below_one(self) -> None:
        assert total_pages(0, 6) == 1

    def test_rounds_up(self) -> None:
        assert total_pages(13, 6) == 3
        assert total_pages(12, 6) == 2

    def test_describe(self) -> None:
        assert PageRequest(page=2, limit=5).describe(11) == {
            "page": 2,
            "limit": 5,
            "total": 11,
            "totalPages": 3,
        }


class TestPageCeiling:
    def test_offset_stays_within_bigint(self) -> None:
        page = paginate(str(10**21), None, ARTICLES)
        assert page.offset <= MAX_OFFSET
        assert page.offset + page.limit > MAX_OFFSET

    def test_ceiling_follows_limit(self) -> None:
        assert paginate(str(10**21), "100", ATTENDANCE).offset <= MAX_OFFSET
