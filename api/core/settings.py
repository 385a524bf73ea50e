"""
Runtime settings read from environment variables.

`Settings.from_env()` is called once by the app factory; the resulting
object is stored on `app.state` and handed to the services that need it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_AUTHOR = "H&S Angola"
DEFAULT_EVENT_NAME = "Aprenda & Empreenda"
DEFAULT_SMS_API_URL = "https://api.useombala.ao/v1/messages"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB

CONNECT_STRATEGIES = {"eager", "lazy"}


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    db_connect_strategy: str = "lazy"
    db_pool_max_size: int = 5
    db_connect_timeout_s: float = 8.0
    db_command_timeout_s: float = 20.0

    # Local default keeps development simple.
    # In production, set ADMIN_KEY in environment.
    admin_key: str = "changeme"

    s3_bucket: str = ""
    s3_endpoint: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_region: str = "auto"
    s3_public_base_url: str = ""
    s3_connect_timeout_s: float = 3.0
    s3_read_timeout_s: float = 10.0
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    default_author: str = DEFAULT_AUTHOR
    event_name: str = DEFAULT_EVENT_NAME

    sms_api_url: str = DEFAULT_SMS_API_URL
    sms_api_token: str = ""
    sms_sender_name: str = "APRENDAEMPR"
    sms_country_code: str = "244"
    sms_timeout_s: float = 10.0

    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def sms_configured(self) -> bool:
        return bool(self.sms_api_token and self.sms_sender_name)

    @classmethod
    def from_env(cls) -> "Settings":
        strategy = _env_str("DB_CONNECT_STRATEGY", "lazy").lower()
        if strategy not in CONNECT_STRATEGIES:
            raise RuntimeError(
                f"Invalid DB_CONNECT_STRATEGY '{strategy}'. Allowed: {sorted(CONNECT_STRATEGIES)}"
            )

        max_upload_bytes = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
        if max_upload_bytes <= 0:
            raise RuntimeError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

        return cls(
            database_url=_env_str("DATABASE_URL"),
            db_connect_strategy=strategy,
            db_pool_max_size=max(1, _env_int("DB_POOL_MAX_SIZE", 5)),
            db_connect_timeout_s=_env_float("DB_CONNECT_TIMEOUT_S", 8.0),
            db_command_timeout_s=_env_float("DB_COMMAND_TIMEOUT_S", 20.0),
            admin_key=_env_str("ADMIN_KEY", "changeme"),
            s3_bucket=_env_str("S3_BUCKET"),
            s3_endpoint=_env_str("S3_ENDPOINT"),
            s3_access_key_id=_env_str("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=_env_str("S3_SECRET_ACCESS_KEY"),
            s3_region=_env_str("S3_REGION", "auto"),
            s3_public_base_url=_env_str("S3_PUBLIC_BASE_URL"),
            s3_connect_timeout_s=_env_float("S3_CONNECT_TIMEOUT_S", 3.0),
            s3_read_timeout_s=_env_float("S3_READ_TIMEOUT_S", 10.0),
            max_upload_bytes=max_upload_bytes,
            default_author=_env_str("NEWS_DEFAULT_AUTHOR", DEFAULT_AUTHOR),
            event_name=_env_str("ATTENDANCE_EVENT_NAME", DEFAULT_EVENT_NAME),
            sms_api_url=_env_str("SMS_API_URL", DEFAULT_SMS_API_URL),
            sms_api_token=_env_str("SMS_API_TOKEN"),
            sms_sender_name=_env_str("SMS_SENDER_NAME", "APRENDAEMPR"),
            sms_country_code=_env_str("SMS_COUNTRY_CODE", "244"),
            sms_timeout_s=_env_float("SMS_TIMEOUT_S", 10.0),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
        )
