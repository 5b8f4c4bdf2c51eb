from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.api.deps import get_current_claims
from app.application.dto.auth import TokenClaims
from app.infrastructure.security.token_service import JwtTokenService


SECRET = "current-claims-test-secret-32-bytes"


def _token(token_type: str, *, now: datetime | None = None, ttl=timedelta(minutes=15)) -> str:
    return JwtTokenService(jwt_secret=SECRET).sign(
        claims=TokenClaims(subject="user-1", email="a@x.com", token_type=token_type),
        ttl=ttl,
        now=now or datetime.now(timezone.utc),
    )


def test_current_claims_accepts_access_token():
    claims = get_current_claims(
        authorization=f"Bearer {_token('access')}",
        token_service=JwtTokenService(jwt_secret=SECRET),
    )

    assert claims.subject == "user-1"
    assert claims.token_type == "access"


@pytest.mark.parametrize("authorization", [None, "", "Basic abc", "Bearer ", "Bearer not-a-jwt"])
def test_current_claims_rejects_bad_header(authorization):
    with pytest.raises(HTTPException) as exc_info:
        get_current_claims(authorization=authorization, token_service=JwtTokenService(jwt_secret=SECRET))

    assert exc_info.value.status_code == 401


def test_current_claims_rejects_refresh_token():
    with pytest.raises(HTTPException) as exc_info:
        get_current_claims(
            authorization=f"Bearer {_token('refresh')}",
            token_service=JwtTokenService(jwt_secret=SECRET),
        )

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid token type."


def test_current_claims_reports_expired_token():
    issued = datetime.now(timezone.utc) - timedelta(hours=1)

    with pytest.raises(HTTPException) as exc_info:
        get_current_claims(
            authorization=f"Bearer {_token('access', now=issued)}",
            token_service=JwtTokenService(jwt_secret=SECRET),
        )

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Access token expired."
