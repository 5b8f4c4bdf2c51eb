from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from app.application.dto.auth import TokenClaims


class TokenPort(Protocol):
    def sign(self, *, claims: TokenClaims, ttl: timedelta, now: datetime) -> str:
        ...

    def verify(self, *, token: str) -> TokenClaims:
        """Raises InvalidTokenError, or ExpiredTokenError once past expiry."""
        ...
