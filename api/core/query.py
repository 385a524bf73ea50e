"""
Small helpers for composing WHERE clauses with asyncpg placeholders.

Clauses are ANDed; every user value travels as a positional argument.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def escape_like(value: str) -> str:
    """
    Escape LIKE wildcards so user input is matched literally.
    Postgres uses backslash as the default LIKE escape character.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


@dataclass(frozen=True)
class Predicate:
    clauses: tuple[str, ...] = ()
    args: tuple[Any, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def where_sql(self) -> str:
        if not self.clauses:
            return "TRUE"
        return " AND ".join(f"({c})" for c in self.clauses)


class PredicateBuilder:
    def __init__(self) -> None:
        self._clauses: list[str] = []
        self._args: list[Any] = []

    def param(self, value: Any) -> str:
        self._args.append(value)
        return f"${len(self._args)}"

    def add(self, clause: str) -> None:
        self._clauses.append(clause)

    def build(self) -> Predicate:
        return Predicate(clauses=tuple(self._clauses), args=tuple(self._args))
