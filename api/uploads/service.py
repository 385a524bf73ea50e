"""
Cover image upload "service layer".

This file contains logic that is independent of FastAPI's routing layer:
- Validate the WEBP data URL
- Decode it with a size limit
- Build a safe object key and store the bytes
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass

from fastapi import HTTPException

from core.storage import ObjectStorage

WEBP_DATA_URL_PREFIX = "data:image/webp;base64,"
CONTENT_TYPE = "image/webp"
CACHE_CONTROL = "public, max-age=31536000, immutable"
DEFAULT_FILENAME = "cover.webp"
UPLOAD_KIND = "news"

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9.\-_]+")


@dataclass(frozen=True)
class UploadResult:
    url: str
    key: str
    size_bytes: int


def decode_webp_data_url(data_url: str | None, *, max_bytes: int) -> bytes:
    """
    Return the image bytes of a base64 WEBP data URL.

    Anything other than `data:image/webp;base64,...` is rejected before
    touching object storage.
    """
    raw = (data_url or "").strip()
    if not raw.startswith(WEBP_DATA_URL_PREFIX):
        raise HTTPException(status_code=400, detail="Provide a WEBP dataUrl")

    encoded = raw[len(WEBP_DATA_URL_PREFIX):]
    # base64 inflates by 4/3; reject oversized payloads before decoding.
    if len(encoded) > (max_bytes * 4) // 3 + 4:
        raise HTTPException(status_code=413, detail=f"File too large. Max is {max_bytes} bytes.")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HTTPException(status_code=400, detail="Invalid base64 payload.") from e

    if not data:
        raise HTTPException(status_code=400, detail="Empty image payload.")
    if len(data) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large. Max is {max_bytes} bytes.")
    return data


def safe_filename(filename: str | None) -> str:
    """
    Lowercase, collapse unsafe runs to "-", and force a .webp extension.

    "Capa Final.PNG" -> "capa-final.webp"
    """
    name = _UNSAFE_FILENAME_CHARS.sub("-", str(filename or DEFAULT_FILENAME).lower()) or DEFAULT_FILENAME
    if name.endswith(".webp"):
        return name
    stem, dot, _ext = name.rpartition(".")
    return f"{stem if dot else name}.webp"


async def store_cover(
    storage: ObjectStorage,
    *,
    data_url: str | None,
    filename: str | None,
    max_bytes: int,
) -> UploadResult:
    data = decode_webp_data_url(data_url, max_bytes=max_bytes)
    key = storage.build_key(UPLOAD_KIND, safe_filename(filename))
    url = await storage.put(key, data, content_type=CONTENT_TYPE, cache_control=CACHE_CONTROL)
    result = UploadResult(url=url, key=key, size_bytes=len(data))
    logger.info("upload_stored key=%s size_bytes=%s", result.key, result.size_bytes)
    return result
