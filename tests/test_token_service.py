from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.application.dto.auth import TokenClaims
from app.domain.exceptions import ExpiredTokenError, InvalidTokenError
from app.infrastructure.security.token_service import JwtTokenService


SECRET = "token-service-test-secret-32-bytes-min"
T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _claims(token_type="access") -> TokenClaims:
    return TokenClaims(subject="user-1", email="a@x.com", token_type=token_type)


def test_sign_then_verify_returns_claims():
    clock = FakeClock(T0)
    service = JwtTokenService(jwt_secret=SECRET, clock=clock)

    token = service.sign(claims=_claims("refresh"), ttl=timedelta(days=7), now=T0)
    claims = service.verify(token=token)

    assert claims.subject == "user-1"
    assert claims.email == "a@x.com"
    assert claims.token_type == "refresh"
    assert claims.issued_at == T0
    assert claims.expires_at == T0 + timedelta(days=7)
    assert claims.token_id


def test_tokens_signed_at_same_instant_are_distinct():
    service = JwtTokenService(jwt_secret=SECRET, clock=FakeClock(T0))

    first = service.sign(claims=_claims(), ttl=timedelta(minutes=15), now=T0)
    second = service.sign(claims=_claims(), ttl=timedelta(minutes=15), now=T0)

    assert first != second


def test_verify_accepts_token_at_expiry_and_rejects_after():
    clock = FakeClock(T0)
    service = JwtTokenService(jwt_secret=SECRET, clock=clock)
    token = service.sign(claims=_claims(), ttl=timedelta(minutes=15), now=T0)

    clock.now = T0 + timedelta(minutes=15)
    assert service.verify(token=token).subject == "user-1"

    clock.now = T0 + timedelta(minutes=15, seconds=1)
    with pytest.raises(ExpiredTokenError):
        service.verify(token=token)


def test_verify_keeps_sub_second_expiry():
    signed_at = datetime(2026, 1, 1, 12, 0, 0, 700000, tzinfo=timezone.utc)
    clock = FakeClock(signed_at)
    service = JwtTokenService(jwt_secret=SECRET, clock=clock)
    token = service.sign(claims=_claims(), ttl=timedelta(minutes=15), now=signed_at)

    clock.now = signed_at + timedelta(minutes=15) - timedelta(milliseconds=300)
    claims = service.verify(token=token)
    assert abs(claims.expires_at - (signed_at + timedelta(minutes=15))) < timedelta(milliseconds=1)

    clock.now = signed_at + timedelta(minutes=15, milliseconds=300)
    with pytest.raises(ExpiredTokenError):
        service.verify(token=token)


def test_expired_token_is_also_an_invalid_token():
    clock = FakeClock(T0 + timedelta(hours=1))
    service = JwtTokenService(jwt_secret=SECRET, clock=clock)
    token = service.sign(claims=_claims(), ttl=timedelta(minutes=15), now=T0)

    with pytest.raises(InvalidTokenError) as exc_info:
        service.verify(token=token)

    assert exc_info.value.code == "expired_token"


def test_verify_rejects_tampered_signature():
    service = JwtTokenService(jwt_secret=SECRET, clock=FakeClock(T0))
    token = service.sign(claims=_claims(), ttl=timedelta(minutes=15), now=T0)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, ("A" if signature[0] != "A" else "B") + signature[1:]])

    with pytest.raises(InvalidTokenError):
        service.verify(token=tampered)


def test_verify_rejects_token_signed_with_other_secret():
    other = JwtTokenService(jwt_secret="other-token-service-secret-32-bytes", clock=FakeClock(T0))
    service = JwtTokenService(jwt_secret=SECRET, clock=FakeClock(T0))
    token = other.sign(claims=_claims(), ttl=timedelta(minutes=15), now=T0)

    with pytest.raises(InvalidTokenError):
        service.verify(token=token)


def test_verify_rejects_unknown_token_type():
    service = JwtTokenService(jwt_secret=SECRET, clock=FakeClock(T0))
    token = jwt.encode(
        {
            "sub": "user-1",
            "type": "id",
            "iat": int(T0.timestamp()),
            "exp": int((T0 + timedelta(minutes=5)).timestamp()),
        },
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(InvalidTokenError):
        service.verify(token=token)


def test_verify_rejects_garbage():
    service = JwtTokenService(jwt_secret=SECRET)

    with pytest.raises(InvalidTokenError):
        service.verify(token="not.a.jwt")


@pytest.mark.parametrize("ttl", [timedelta(0), timedelta(seconds=-1)])
def test_sign_rejects_non_positive_ttl(ttl):
    service = JwtTokenService(jwt_secret=SECRET)

    with pytest.raises(ValueError):
        service.sign(claims=_claims(), ttl=ttl, now=T0)
