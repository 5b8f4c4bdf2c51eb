from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OAuthIdentity:
    provider: str
    provider_user_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    profile_picture_url: str | None = None
