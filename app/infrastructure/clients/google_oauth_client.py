from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from app.domain.exceptions import IdentityExtractionFailedError, OAuthProviderError


logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


@dataclass(frozen=True)
class GoogleTokenResponse:
    access_token: str
    refresh_token: str | None
    id_token: str | None


class GoogleOAuthClient:
    """Server-side authorization code flow against Google."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout_seconds: float = 10.0,
        scopes: tuple[str, ...] = ("openid", "email", "profile"),
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout = timeout_seconds
        self._scopes = scopes

    def authorization_url(self, *, state: str) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._scopes),
            "state": state,
            "access_type": "offline",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTHORIZATION_URL}?{urlencode(params)}"

    def exchange_code(self, *, code: str) -> GoogleTokenResponse:
        data = {
            "code": code,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "redirect_uri": self._redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            response = httpx.post(GOOGLE_TOKEN_URL, data=data, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise OAuthProviderError("Google token endpoint unavailable.") from exc

        if response.status_code in (400, 401):
            # invalid_grant: code expired, reused or issued to another client
            logger.info(
                "google_oauth_client: code_rejected status=%s",
                response.status_code,
            )
            raise IdentityExtractionFailedError("Google rejected the authorization code.")
        if response.status_code >= 400:
            raise OAuthProviderError(f"Google token endpoint returned {response.status_code}.")

        payload = response.json()
        access_token = payload.get("access_token")
        if not access_token:
            raise IdentityExtractionFailedError("Google token response has no access_token.")
        return GoogleTokenResponse(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            id_token=payload.get("id_token"),
        )

    def fetch_profile(self, *, access_token: str) -> dict:
        try:
            response = httpx.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise OAuthProviderError("Google userinfo endpoint unavailable.") from exc

        if response.status_code == 401:
            raise IdentityExtractionFailedError("Google rejected the access token.")
        if response.status_code >= 400:
            raise OAuthProviderError(f"Google userinfo endpoint returned {response.status_code}.")

        payload = response.json()
        if not isinstance(payload, dict):
            raise IdentityExtractionFailedError("Google userinfo payload is not an object.")
        return payload
