from __future__ import annotations

from typing import Any, Mapping

from app.application.ports.oauth_provider_port import OAuthProviderPort
from app.domain.entities.oauth_identity import OAuthIdentity
from app.domain.exceptions import IdentityExtractionFailedError


GOOGLE_PROVIDER = "google"


def _first_value(entries: Any) -> str | None:
    if not isinstance(entries, list) or not entries:
        return None
    first = entries[0]
    if isinstance(first, Mapping):
        value = first.get("value")
    else:
        value = first
    return value.strip() if isinstance(value, str) and value.strip() else None


def _as_optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _email_verified(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.lower() == "true"
    return bool(raw)


class GoogleOAuthAdapter(OAuthProviderPort):
    """Normalizes a Google profile into an OAuthIdentity.

    Accepts the passport-style profile (``id``, ``emails``, ``name``, ``photos``)
    as well as OpenID Connect claims / userinfo payloads (``sub``, ``email``,
    ``given_name``, ``family_name``, ``picture``).
    """

    provider = GOOGLE_PROVIDER

    def validate(
        self,
        *,
        provider_access_token: str | None,
        provider_refresh_token: str | None,
        raw_profile: Mapping[str, Any],
    ) -> OAuthIdentity:
        if not isinstance(raw_profile, Mapping):
            raise IdentityExtractionFailedError("Google profile payload is not an object.")

        subject = raw_profile.get("sub") or raw_profile.get("id")
        if subject is None or not str(subject).strip():
            raise IdentityExtractionFailedError("Google profile has no subject.")

        email = _as_optional_str(raw_profile.get("email")) or _first_value(raw_profile.get("emails"))
        if not email:
            raise IdentityExtractionFailedError("Google profile has no email.")

        if "email_verified" in raw_profile and not _email_verified(raw_profile["email_verified"]):
            raise IdentityExtractionFailedError("Google email is not verified.")

        name = raw_profile.get("name")
        if isinstance(name, Mapping):
            first_name = _as_optional_str(name.get("givenName"))
            last_name = _as_optional_str(name.get("familyName"))
        else:
            first_name = _as_optional_str(raw_profile.get("given_name"))
            last_name = _as_optional_str(raw_profile.get("family_name"))

        picture = _as_optional_str(raw_profile.get("picture")) or _first_value(raw_profile.get("photos"))

        return OAuthIdentity(
            provider=GOOGLE_PROVIDER,
            provider_user_id=str(subject).strip(),
            email=email,
            first_name=first_name,
            last_name=last_name,
            profile_picture_url=picture,
        )
