"""
SMS provider HTTP client (Ombala-compatible).

Used endpoint:
- POST <SMS_API_URL>  {"message", "from", "to"}  -> {"id": "...", ...}

Delivery is best-effort: provider and transport failures come back as an
unsuccessful `SmsResult` instead of an exception.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


# Misconfiguration is explicit and separable from delivery failures.
class SmsError(RuntimeError):
    pass


@dataclass(frozen=True)
class SmsResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    status: int | None = None
    data: dict[str, Any] = field(default_factory=dict)


def normalize_phone(phone: str, *, country_code: str = "244") -> str:
    """
    Reduce a phone number to digits prefixed with the country code.

    "+244 923 000 000" -> "244923000000"
    "923 000 000"      -> "244923000000"
    "0923000000"       -> "244923000000"
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits or digits.startswith(country_code):
        return digits
    if digits.startswith(("9", "2")):
        return country_code + digits
    if digits.startswith("0"):
        return country_code + digits[1:]
    return digits


def _error_from_response(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    # Avoid dumping huge bodies; include a small snippet.
    return f"{resp.status_code} {resp.text[:300]}"


async def send_sms(
    *,
    api_url: str,
    token: str,
    sender: str,
    phone: str,
    message: str,
    country_code: str = "244",
    timeout_s: float = 10.0,
) -> SmsResult:
    """
    Send one text message.
    """
    api_url = (api_url or "").strip()
    if not api_url:
        raise SmsError("SMS_API_URL is empty.")
    if not token or not sender:
        raise SmsError("SMS_API_TOKEN / SMS_SENDER_NAME are not set.")

    to = normalize_phone(phone, country_code=country_code)
    payload = {"message": message, "from": sender, "to": to}

    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            resp = await client.post(
                api_url,
                json=payload,
                headers={"Authorization": f"Token {token}"},
            )
    except httpx.HTTPError as exc:
        logger.warning("sms_failed to=%s error=%r", to, exc)
        return SmsResult(success=False, error=str(exc) or exc.__class__.__name__)

    if resp.status_code >= 400:
        error = _error_from_response(resp)
        logger.warning("sms_failed to=%s status=%s error=%s", to, resp.status_code, error)
        return SmsResult(success=False, error=error, status=resp.status_code)

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {"response": data}

    message_id = data.get("id")
    logger.info("sms_sent to=%s message_id=%s", to, message_id)
    return SmsResult(
        success=True,
        message_id=str(message_id) if message_id is not None else None,
        status=resp.status_code,
        data=data,
    )
