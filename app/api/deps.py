from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from app.application.dto.auth import TokenClaims
from app.application.ports.oauth_provider_port import OAuthProviderRegistry
from app.application.use_cases.get_me import GetMeUseCase
from app.application.use_cases.login_local import LoginLocalUseCase
from app.application.use_cases.login_oauth import LoginOAuthUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.register_user import RegisterUserUseCase
from app.application.use_cases.signup_oauth import SignupOAuthUseCase
from app.domain.exceptions import ExpiredTokenError, InvalidTokenError
from app.infrastructure.clients.google_oauth_client import GoogleOAuthClient
from app.infrastructure.clients.google_oidc_client import GoogleOidcClient
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.repositories.refresh_token_repository import SqlRefreshTokenRepository
from app.infrastructure.db.repositories.user_repository import SqlUserRepository
from app.infrastructure.oauth.google_oauth_adapter import GOOGLE_PROVIDER, GoogleOAuthAdapter
from app.infrastructure.security.password_hasher import PasswordHasher
from app.infrastructure.security.token_service import JwtTokenService
from app.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def _get_user_repository() -> SqlUserRepository:
    return SqlUserRepository(_get_db_engine())


def _get_refresh_token_repository() -> SqlRefreshTokenRepository:
    return SqlRefreshTokenRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET is required.")
    return JwtTokenService(jwt_secret=settings.jwt_secret)


@lru_cache(maxsize=1)
def _get_oauth_providers() -> OAuthProviderRegistry:
    return {GOOGLE_PROVIDER: GoogleOAuthAdapter()}


@lru_cache(maxsize=1)
def _get_google_oidc_client() -> GoogleOidcClient:
    settings = get_settings()
    if not settings.google_client_id:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID is required.")
    return GoogleOidcClient(client_id=settings.google_client_id)


def get_google_oidc_client() -> GoogleOidcClient:
    return _get_google_oidc_client()


@lru_cache(maxsize=1)
def _get_google_oauth_client() -> GoogleOAuthClient:
    settings = get_settings()
    if not settings.google_client_id:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID is required.")
    if not settings.google_client_secret:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_SECRET is required.")
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        timeout_seconds=settings.google_timeout_seconds,
    )


def get_google_oauth_client() -> GoogleOAuthClient:
    return _get_google_oauth_client()


def get_register_user_use_case() -> RegisterUserUseCase:
    settings = get_settings()
    return RegisterUserUseCase(
        user_directory=_get_user_repository(),
        refresh_token_store=_get_refresh_token_repository(),
        password_hasher=_get_password_hasher(),
        token_port=_get_token_service(),
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
    )


def get_login_local_use_case() -> LoginLocalUseCase:
    settings = get_settings()
    return LoginLocalUseCase(
        user_directory=_get_user_repository(),
        refresh_token_store=_get_refresh_token_repository(),
        password_hasher=_get_password_hasher(),
        token_port=_get_token_service(),
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
    )


def get_refresh_session_use_case() -> RefreshSessionUseCase:
    settings = get_settings()
    return RefreshSessionUseCase(
        user_directory=_get_user_repository(),
        refresh_token_store=_get_refresh_token_repository(),
        token_port=_get_token_service(),
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
    )


def get_logout_session_use_case() -> LogoutSessionUseCase:
    return LogoutSessionUseCase(refresh_token_store=_get_refresh_token_repository())


def get_login_oauth_use_case() -> LoginOAuthUseCase:
    settings = get_settings()
    return LoginOAuthUseCase(
        user_directory=_get_user_repository(),
        refresh_token_store=_get_refresh_token_repository(),
        oauth_providers=_get_oauth_providers(),
        token_port=_get_token_service(),
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
    )


def get_signup_oauth_use_case() -> SignupOAuthUseCase:
    settings = get_settings()
    return SignupOAuthUseCase(
        user_directory=_get_user_repository(),
        refresh_token_store=_get_refresh_token_repository(),
        token_port=_get_token_service(),
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
    )


def get_get_me_use_case() -> GetMeUseCase:
    return GetMeUseCase(user_directory=_get_user_repository())


def get_token_service() -> JwtTokenService:
    return _get_token_service()


def get_current_claims(
    authorization: str | None = Header(default=None),
    token_service: JwtTokenService = Depends(get_token_service),
) -> TokenClaims:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing access token.")

    try:
        claims = token_service.verify(token=token)
    except ExpiredTokenError as exc:
        raise HTTPException(status_code=401, detail="Access token expired.") from exc
    except InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid access token.") from exc

    if claims.token_type != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")
    return claims
