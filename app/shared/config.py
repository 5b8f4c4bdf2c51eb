from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: str = "false") -> bool:
    return (_env(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str = "") -> tuple[str, ...]:
    value = _env(name, default) or ""
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    postgres_dsn: str
    db_auto_create_schema: bool
    jwt_secret: str
    jwt_access_ttl_minutes: int
    jwt_refresh_ttl_days: int
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    google_timeout_seconds: float
    refresh_cookie_secure: bool
    cors_allow_origins: tuple[str, ...]
    log_level: str

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(minutes=self.jwt_access_ttl_minutes)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=self.jwt_refresh_ttl_days)


def get_settings() -> Settings:
    settings = Settings(
        postgres_dsn=_env("POSTGRES_DSN", ""),
        db_auto_create_schema=_bool("DB_AUTO_CREATE_SCHEMA"),
        jwt_secret=_env("JWT_SECRET", ""),
        jwt_access_ttl_minutes=int(_env("JWT_ACCESS_TTL_MINUTES", "15")),
        jwt_refresh_ttl_days=int(_env("JWT_REFRESH_TTL_DAYS", "7")),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        google_redirect_uri=_env("GOOGLE_REDIRECT_URI", "http://localhost:8000/v1/auth/google/callback"),
        google_timeout_seconds=float(_env("GOOGLE_TIMEOUT_SECONDS", "10")),
        refresh_cookie_secure=_bool("REFRESH_COOKIE_SECURE"),
        cors_allow_origins=_csv("CORS_ALLOW_ORIGINS", "*"),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
    )
    if settings.jwt_access_ttl_minutes <= 0:
        raise ValueError("JWT_ACCESS_TTL_MINUTES must be positive.")
    if settings.refresh_ttl <= settings.access_ttl:
        raise ValueError("JWT_REFRESH_TTL_DAYS must exceed the access token TTL.")
    return settings
