"""
FastAPI router for cover uploads.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from auth import dependencies as auth_dependencies
from core.dependencies import get_settings, get_storage
from core.settings import Settings
from core.storage import ObjectStorage

from . import service

router = APIRouter(prefix="/api")


class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_url: str | None = Field(default=None, alias="dataUrl")
    filename: str | None = Field(default=None, max_length=255)


@router.post("/upload")
async def upload_cover(
    request: UploadRequest,
    _: None = Depends(auth_dependencies.require_admin),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Store a WEBP cover image and return its public URL.
    """
    result = await service.store_cover(
        storage,
        data_url=request.data_url,
        filename=request.filename,
        max_bytes=settings.max_upload_bytes,
    )
    return {"url": result.url, "key": result.key}
