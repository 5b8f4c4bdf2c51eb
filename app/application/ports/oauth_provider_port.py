from __future__ import annotations

from typing import Any, Mapping, Protocol

from app.domain.entities.oauth_identity import OAuthIdentity


class OAuthProviderPort(Protocol):
    def validate(
        self,
        *,
        provider_access_token: str | None,
        provider_refresh_token: str | None,
        raw_profile: Mapping[str, Any],
    ) -> OAuthIdentity:
        ...


OAuthProviderRegistry = Mapping[str, OAuthProviderPort]
