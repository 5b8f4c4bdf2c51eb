from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import uuid4

import jwt

from app.application.dto.auth import TokenClaims
from app.application.ports.token_port import TokenPort
from app.domain.exceptions import ExpiredTokenError, InvalidTokenError


TOKEN_TYPES = ("access", "refresh")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        jwt_secret: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ):
        self._jwt_secret = jwt_secret
        self._algorithm = algorithm
        self._clock = clock

    def sign(self, *, claims: TokenClaims, ttl: timedelta, now: datetime) -> str:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive.")
        exp = now + ttl
        payload = {
            "sub": claims.subject,
            "email": claims.email,
            "type": claims.token_type,
            "jti": claims.token_id or uuid4().hex,
            "iat": now.timestamp(),
            "exp": exp.timestamp(),
        }
        return jwt.encode(payload, self._jwt_secret, algorithm=self._algorithm)

    def verify(self, *, token: str) -> TokenClaims:
        try:
            # exp is checked below against the injected clock
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("Invalid token.") from exc

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            raise InvalidTokenError("Invalid token subject.")

        token_type = payload.get("type")
        if token_type not in TOKEN_TYPES:
            raise InvalidTokenError("Invalid token type.")

        try:
            issued_at = datetime.fromtimestamp(float(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(float(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidTokenError("Invalid token timestamps.") from exc

        if self._clock() > expires_at:
            raise ExpiredTokenError("Token expired.")

        return TokenClaims(
            subject=subject,
            email=str(payload.get("email") or ""),
            token_type=token_type,
            token_id=payload.get("jti"),
            issued_at=issued_at,
            expires_at=expires_at,
        )
