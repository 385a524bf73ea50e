"""
Auth dependencies for privileged FastAPI routes.

Privileged routes require the shared secret in the `x-admin-key` header.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, status

from core.dependencies import get_settings
from core.settings import Settings


def _check_admin_key(provided: str | None, expected: str) -> None:
    raw = provided or ""
    if not expected or not secrets.compare_digest(raw.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


async def require_admin(
    x_admin_key: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    _check_admin_key(x_admin_key, settings.admin_key)
