from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from app.domain.entities.oauth_identity import OAuthIdentity


TokenType = Literal["access", "refresh"]


@dataclass(frozen=True)
class AuthUserOutput:
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    oauth_provider: str | None
    profile_picture_url: str | None
    has_password: bool


@dataclass(frozen=True)
class RegisterUserInput:
    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True)
class LoginLocalInput:
    email: str
    password: str


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str


@dataclass(frozen=True)
class LogoutInput:
    user_id: str


@dataclass(frozen=True)
class LoginOAuthInput:
    provider: str
    provider_access_token: str | None
    provider_refresh_token: str | None
    raw_profile: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SignupOAuthInput:
    identity: OAuthIdentity


@dataclass(frozen=True)
class AuthTokensOutput:
    user: AuthUserOutput
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str
    token_type: TokenType
    token_id: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
