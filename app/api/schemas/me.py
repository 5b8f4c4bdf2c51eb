from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class MeResponse(BaseModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    oauth_provider: str | None
    profile_picture_url: str | None
    has_password: bool
    created_at: datetime
    updated_at: datetime
