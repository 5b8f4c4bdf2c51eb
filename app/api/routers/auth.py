from __future__ import annotations

import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse

from app.api.deps import (
    get_current_claims,
    get_google_oauth_client,
    get_google_oidc_client,
    get_login_local_use_case,
    get_login_oauth_use_case,
    get_logout_session_use_case,
    get_refresh_session_use_case,
    get_register_user_use_case,
    get_signup_oauth_use_case,
)
from app.api.schemas.auth import (
    AuthTokenResponse,
    AuthUserResponse,
    GoogleLoginRequest,
    LoginRequest,
    LogoutResponse,
    OAuthSignupRequest,
    RefreshRequest,
    RegisterRequest,
)
from app.application.dto.auth import (
    AuthTokensOutput,
    LoginLocalInput,
    LoginOAuthInput,
    LogoutInput,
    RefreshSessionInput,
    RegisterUserInput,
    SignupOAuthInput,
    TokenClaims,
)
from app.application.use_cases.login_local import LoginLocalUseCase
from app.application.use_cases.login_oauth import LoginOAuthUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.register_user import RegisterUserUseCase
from app.application.use_cases.signup_oauth import SignupOAuthUseCase
from app.domain.entities.oauth_identity import OAuthIdentity
from app.domain.exceptions import (
    EmailAlreadyExistsError,
    IdentityExtractionFailedError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    OAuthProviderError,
    UnsupportedProviderError,
)
from app.infrastructure.clients.google_oauth_client import GoogleOAuthClient
from app.infrastructure.clients.google_oidc_client import GoogleOidcClient
from app.infrastructure.oauth.google_oauth_adapter import GOOGLE_PROVIDER
from app.shared.config import get_settings


router = APIRouter()

AUTH_COOKIE_PATH = "/v1/auth"
REFRESH_COOKIE_NAME = "refresh_token"
OAUTH_STATE_COOKIE_NAME = "oauth_state"
OAUTH_STATE_MAX_AGE_SECONDS = 600


def _set_refresh_cookie(response: Response, refresh_token: str, max_age_seconds: int) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        samesite="lax",
        secure=get_settings().refresh_cookie_secure,
        max_age=max_age_seconds,
        path=AUTH_COOKIE_PATH,
    )


def _cookie_max_age_seconds(refresh_expires_at: datetime) -> int:
    now = datetime.now(timezone.utc)
    return max(int((refresh_expires_at - now).total_seconds()), 0)


def _token_response(response: Response, output: AuthTokensOutput) -> AuthTokenResponse:
    _set_refresh_cookie(
        response,
        output.refresh_token,
        max_age_seconds=_cookie_max_age_seconds(output.refresh_expires_at),
    )
    return AuthTokenResponse(
        access_token=output.access_token,
        refresh_token=output.refresh_token,
        access_expires_at=output.access_expires_at,
        refresh_expires_at=output.refresh_expires_at,
        user=AuthUserResponse(
            id=output.user.id,
            email=output.user.email,
            first_name=output.user.first_name,
            last_name=output.user.last_name,
            oauth_provider=output.user.oauth_provider,
            profile_picture_url=output.user.profile_picture_url,
        ),
    )


def _login_oauth(use_case: LoginOAuthUseCase, command: LoginOAuthInput) -> AuthTokensOutput:
    try:
        return use_case.execute(command)
    except UnsupportedProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IdentityExtractionFailedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except OAuthProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/v1/auth/register", response_model=AuthTokenResponse, status_code=201)
def register_user(
    req: RegisterRequest,
    response: Response,
    use_case: RegisterUserUseCase = Depends(get_register_user_use_case),
):
    try:
        output = use_case.execute(
            RegisterUserInput(
                email=req.email,
                password=req.password,
                first_name=req.first_name,
                last_name=req.last_name,
            )
        )
    except EmailAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return _token_response(response, output)


@router.post("/v1/auth/login", response_model=AuthTokenResponse)
def login_local(
    req: LoginRequest,
    response: Response,
    use_case: LoginLocalUseCase = Depends(get_login_local_use_case),
):
    try:
        output = use_case.execute(LoginLocalInput(email=req.email, password=req.password))
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return _token_response(response, output)


@router.post("/v1/auth/refresh", response_model=AuthTokenResponse)
def refresh_auth(
    response: Response,
    req: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    refresh_token = (req.refresh_token if req is not None else None) or refresh_token_cookie
    if not refresh_token:
        raise HTTPException(status_code=401, detail="Missing refresh token.")

    try:
        output = use_case.execute(RefreshSessionInput(refresh_token=refresh_token))
    except InvalidRefreshTokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return _token_response(response, output)


@router.post("/v1/auth/logout", response_model=LogoutResponse)
def logout_auth(
    response: Response,
    claims: TokenClaims = Depends(get_current_claims),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    use_case.execute(LogoutInput(user_id=claims.subject))
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path=AUTH_COOKIE_PATH)
    return LogoutResponse(ok=True)


@router.post("/v1/auth/google", response_model=AuthTokenResponse)
def login_google(
    req: GoogleLoginRequest,
    response: Response,
    oidc_client: GoogleOidcClient = Depends(get_google_oidc_client),
    use_case: LoginOAuthUseCase = Depends(get_login_oauth_use_case),
):
    try:
        raw_profile = oidc_client.verify_id_token(id_token=req.id_token)
    except IdentityExtractionFailedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except OAuthProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    output = _login_oauth(
        use_case,
        LoginOAuthInput(
            provider=GOOGLE_PROVIDER,
            provider_access_token=None,
            provider_refresh_token=None,
            raw_profile=raw_profile,
        ),
    )
    return _token_response(response, output)


@router.get("/v1/auth/google")
def google_authorize(
    oauth_client: GoogleOAuthClient = Depends(get_google_oauth_client),
):
    state = secrets.token_urlsafe(24)
    redirect = RedirectResponse(oauth_client.authorization_url(state=state))
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE_NAME,
        value=state,
        httponly=True,
        samesite="lax",
        secure=get_settings().refresh_cookie_secure,
        max_age=OAUTH_STATE_MAX_AGE_SECONDS,
        path=AUTH_COOKIE_PATH,
    )
    return redirect


@router.get("/v1/auth/google/callback", response_model=AuthTokenResponse)
def google_callback(
    code: str,
    state: str,
    response: Response,
    state_cookie: str | None = Cookie(default=None, alias=OAUTH_STATE_COOKIE_NAME),
    oauth_client: GoogleOAuthClient = Depends(get_google_oauth_client),
    use_case: LoginOAuthUseCase = Depends(get_login_oauth_use_case),
):
    if not state_cookie or not secrets.compare_digest(state_cookie, state):
        raise HTTPException(status_code=400, detail="Invalid OAuth state.")

    try:
        google_tokens = oauth_client.exchange_code(code=code)
        raw_profile = oauth_client.fetch_profile(access_token=google_tokens.access_token)
    except IdentityExtractionFailedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except OAuthProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    output = _login_oauth(
        use_case,
        LoginOAuthInput(
            provider=GOOGLE_PROVIDER,
            provider_access_token=google_tokens.access_token,
            provider_refresh_token=google_tokens.refresh_token,
            raw_profile=raw_profile,
        ),
    )
    response.delete_cookie(key=OAUTH_STATE_COOKIE_NAME, path=AUTH_COOKIE_PATH)
    return _token_response(response, output)


@router.post("/v1/auth/oauth/signup", response_model=AuthTokenResponse, status_code=201)
def oauth_signup(
    req: OAuthSignupRequest,
    response: Response,
    use_case: SignupOAuthUseCase = Depends(get_signup_oauth_use_case),
):
    try:
        output = use_case.execute(
            SignupOAuthInput(
                identity=OAuthIdentity(
                    provider=req.provider,
                    provider_user_id=req.provider_id,
                    email=req.email,
                    first_name=req.first_name,
                    last_name=req.last_name,
                    profile_picture_url=req.profile_picture,
                )
            )
        )
    except EmailAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return _token_response(response, output)
