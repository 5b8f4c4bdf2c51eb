from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class GetMeInput:
    user_id: str


@dataclass(frozen=True)
class MeOutput:
    user_id: str
    email: str
    first_name: str | None
    last_name: str | None
    oauth_provider: str | None
    profile_picture_url: str | None
    has_password: bool
    created_at: datetime
    updated_at: datetime
