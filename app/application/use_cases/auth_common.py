from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.application.dto.auth import AuthTokensOutput, AuthUserOutput, TokenClaims
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.application.ports.token_port import TokenPort
from app.domain.entities.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip()


def build_auth_user_output(user: User) -> AuthUserOutput:
    return AuthUserOutput(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        oauth_provider=user.oauth_provider,
        profile_picture_url=user.profile_picture_url,
        has_password=user.has_password,
    )


def issue_tokens(
    *,
    user: User,
    refresh_token_store: RefreshTokenStorePort,
    token_port: TokenPort,
    access_ttl: timedelta,
    refresh_ttl: timedelta,
) -> AuthTokensOutput:
    now = utcnow()
    access_token = token_port.sign(
        claims=TokenClaims(subject=user.id, email=user.email, token_type="access"),
        ttl=access_ttl,
        now=now,
    )
    refresh_token = token_port.sign(
        claims=TokenClaims(subject=user.id, email=user.email, token_type="refresh"),
        ttl=refresh_ttl,
        now=now,
    )
    refresh_expires_at = now + refresh_ttl
    # Upsert keyed by user_id: any previous refresh token stops matching.
    refresh_token_store.upsert(
        user_id=user.id,
        token=refresh_token,
        expires_at=refresh_expires_at,
    )
    return AuthTokensOutput(
        user=build_auth_user_output(user),
        access_token=access_token,
        refresh_token=refresh_token,
        access_expires_at=now + access_ttl,
        refresh_expires_at=refresh_expires_at,
    )
