from __future__ import annotations

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests
from google.oauth2 import id_token

from app.domain.exceptions import IdentityExtractionFailedError, OAuthProviderError


class GoogleOidcClient:
    def __init__(self, *, client_id: str):
        self._client_id = client_id

    def verify_id_token(self, *, id_token: str) -> dict:
        """Returns the verified id_token claims, used as the raw Google profile."""
        try:
            payload = id_token_verify(token=id_token, audience=self._client_id)
        except google_exceptions.TransportError as exc:
            raise OAuthProviderError("Could not fetch Google signing certificates.") from exc
        except (ValueError, google_exceptions.GoogleAuthError) as exc:
            raise IdentityExtractionFailedError("Invalid Google id_token.") from exc
        return dict(payload)


def id_token_verify(*, token: str, audience: str) -> dict:
    request = requests.Request()
    return id_token.verify_oauth2_token(token, request, audience)
