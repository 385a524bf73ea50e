"""
FastAPI dependencies that hand out the process-wide service handles.

The handles are created by `main.create_app()` and live on `app.state`.
"""

from __future__ import annotations

from fastapi import Request

from .db import Database
from .settings import Settings
from .storage import ObjectStorage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage
