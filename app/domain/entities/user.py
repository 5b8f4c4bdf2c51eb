from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    id: str
    email: str
    password_hash: str | None
    first_name: str | None
    last_name: str | None
    oauth_provider: str | None
    oauth_provider_id: str | None
    profile_picture_url: str | None
    created_at: datetime
    updated_at: datetime

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def is_oauth_linked(self) -> bool:
        return bool(self.oauth_provider) and bool(self.oauth_provider_id)


@dataclass(frozen=True)
class RefreshToken:
    id: str
    token: str
    user_id: str
    expires_at: datetime
    created_at: datetime
