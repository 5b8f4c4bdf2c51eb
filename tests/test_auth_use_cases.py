from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from threading import Barrier, Lock
from uuid import uuid4

import pytest

from app.application.dto.auth import (
    LoginLocalInput,
    LoginOAuthInput,
    LogoutInput,
    RefreshSessionInput,
    RegisterUserInput,
    SignupOAuthInput,
)
from app.application.dto.me import GetMeInput
from app.application.use_cases.get_me import GetMeUseCase
from app.application.use_cases.login_local import LoginLocalUseCase
from app.application.use_cases.login_oauth import LoginOAuthUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.register_user import RegisterUserUseCase
from app.application.use_cases.signup_oauth import SignupOAuthUseCase
from app.domain.entities.oauth_identity import OAuthIdentity
from app.domain.entities.user import RefreshToken, User
from app.domain.exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UnsupportedProviderError,
    UserNotFoundError,
)
from app.infrastructure.security.token_service import JwtTokenService


ACCESS_TTL = timedelta(minutes=15)
REFRESH_TTL = timedelta(days=7)
JWT_SECRET = "test-secret-key-with-at-least-32-bytes"


class FakeUserDirectory:
    def __init__(self):
        self.users: dict[str, User] = {}

    def find_by_email(self, *, email: str) -> User | None:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def find_by_id(self, *, user_id: str) -> User | None:
        return self.users.get(user_id)

    def create(self, *, user: User) -> User:
        if self.find_by_email(email=user.email) is not None:
            raise EmailAlreadyExistsError("Email already exists.")
        self.users[user.id] = user
        return user

    def update(self, *, user: User) -> User:
        if user.id not in self.users:
            raise UserNotFoundError("User not found.")
        self.users[user.id] = user
        return user


class FakeRefreshTokenStore:
    def __init__(self):
        self.rows: dict[str, RefreshToken] = {}
        self._tx_lock = Lock()

    def execute_in_transaction(self, fn):
        with self._tx_lock:
            return fn(self)

    def upsert(self, *, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
        row = RefreshToken(
            id=str(uuid4()),
            token=token,
            user_id=user_id,
            expires_at=expires_at,
            created_at=datetime.now(timezone.utc),
        )
        self.rows[user_id] = row
        return row

    def find_by_user(self, *, user_id: str, for_update: bool = False) -> RefreshToken | None:
        _ = for_update
        return self.rows.get(user_id)

    def delete_by_user(self, *, user_id: str) -> None:
        self.rows.pop(user_id, None)


class FakePasswordHasher:
    def hash(self, plain_password: str) -> str:
        return f"hashed::{plain_password}"

    def verify(self, plain_password: str, password_hash: str) -> bool:
        return self.verify_and_update(plain_password, password_hash)[0]

    def verify_and_update(self, plain_password: str, password_hash: str) -> tuple[bool, str | None]:
        if password_hash == f"legacy::{plain_password}":
            return True, self.hash(plain_password)
        return password_hash == f"hashed::{plain_password}", None


class FakeOAuthProvider:
    def __init__(self, identity: OAuthIdentity):
        self.identity = identity
        self.calls = []

    def validate(self, *, provider_access_token, provider_refresh_token, raw_profile) -> OAuthIdentity:
        self.calls.append((provider_access_token, provider_refresh_token, raw_profile))
        return self.identity


class AuthFixture:
    def __init__(self, oauth_identity: OAuthIdentity | None = None):
        self.users = FakeUserDirectory()
        self.store = FakeRefreshTokenStore()
        self.hasher = FakePasswordHasher()
        self.tokens = JwtTokenService(jwt_secret=JWT_SECRET)
        self.google = FakeOAuthProvider(
            oauth_identity
            or OAuthIdentity(
                provider="google",
                provider_user_id="google-sub-1",
                email="a@x.com",
                first_name="Ada",
                last_name="Lovelace",
                profile_picture_url="https://example.com/a.png",
            )
        )
        common = {
            "user_directory": self.users,
            "refresh_token_store": self.store,
            "token_port": self.tokens,
            "access_ttl": ACCESS_TTL,
            "refresh_ttl": REFRESH_TTL,
        }
        self.register = RegisterUserUseCase(password_hasher=self.hasher, **common)
        self.login = LoginLocalUseCase(password_hasher=self.hasher, **common)
        self.refresh = RefreshSessionUseCase(**common)
        self.login_oauth = LoginOAuthUseCase(oauth_providers={"google": self.google}, **common)
        self.signup_oauth = SignupOAuthUseCase(**common)
        self.logout = LogoutSessionUseCase(refresh_token_store=self.store)
        self.get_me = GetMeUseCase(user_directory=self.users)


def _oauth_command(provider: str = "google") -> LoginOAuthInput:
    return LoginOAuthInput(
        provider=provider,
        provider_access_token="google-access",
        provider_refresh_token="google-refresh",
        raw_profile={"sub": "google-sub-1"},
    )


def test_register_creates_user_and_stores_refresh_token():
    fx = AuthFixture()

    output = fx.register.execute(
        RegisterUserInput(email="a@x.com", password="pw123456", first_name="Ada", last_name=None)
    )

    assert output.user.email == "a@x.com"
    assert output.access_token
    assert output.refresh_token
    stored_user = fx.users.users[output.user.id]
    assert stored_user.password_hash == "hashed::pw123456"
    assert stored_user.oauth_provider is None
    assert stored_user.oauth_provider_id is None
    assert fx.store.rows[output.user.id].token == output.refresh_token

    claims = fx.tokens.verify(token=output.access_token)
    assert claims.subject == output.user.id
    assert claims.email == "a@x.com"
    assert claims.token_type == "access"


def test_register_conflict_does_not_create_second_user():
    fx = AuthFixture()
    fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    with pytest.raises(EmailAlreadyExistsError):
        fx.register.execute(RegisterUserInput(email="a@x.com", password="other-password"))

    assert len(fx.users.users) == 1


def test_login_returns_matching_user_and_fresh_tokens():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    output = fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))

    assert output.user.id == registered.user.id
    assert output.access_token != registered.access_token
    assert output.refresh_token != registered.refresh_token
    assert fx.store.rows[output.user.id].token == output.refresh_token


def test_login_wrong_password_and_unknown_email_raise_same_error():
    fx = AuthFixture()
    fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        fx.login.execute(LoginLocalInput(email="a@x.com", password="nope"))
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        fx.login.execute(LoginLocalInput(email="b@x.com", password="pw123456"))

    assert str(wrong_password.value) == str(unknown_email.value)
    assert wrong_password.value.code == unknown_email.value.code == "invalid_credentials"


def test_login_rejects_oauth_only_user():
    fx = AuthFixture()
    fx.login_oauth.execute(_oauth_command())

    with pytest.raises(InvalidCredentialsError):
        fx.login.execute(LoginLocalInput(email="a@x.com", password="anything"))


def test_login_rehashes_legacy_password_hash():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    user = fx.users.users[registered.user.id]
    fx.users.users[user.id] = replace(user, password_hash="legacy::pw123456")

    fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))

    assert fx.users.users[user.id].password_hash == "hashed::pw123456"


def test_refresh_rotates_token_and_rejects_reuse():
    fx = AuthFixture()
    login = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    refreshed = fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))

    assert refreshed.refresh_token != login.refresh_token
    assert fx.store.rows[login.user.id].token == refreshed.refresh_token
    assert fx.tokens.verify(token=refreshed.access_token).subject == login.user.id

    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))
    # the failed replay does not disturb the current token
    assert fx.store.rows[login.user.id].token == refreshed.refresh_token


def test_refresh_rejects_access_token():
    fx = AuthFixture()
    login = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=login.access_token))


@pytest.mark.parametrize("token", ["", "   ", "not-a-jwt"])
def test_refresh_rejects_malformed_token(token):
    fx = AuthFixture()

    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=token))


def test_refresh_rejects_token_signed_with_other_secret():
    fx = AuthFixture()
    login = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    foreign_refresh = RefreshSessionUseCase(
        user_directory=fx.users,
        refresh_token_store=fx.store,
        token_port=JwtTokenService(jwt_secret="another-secret-key-with-32-bytes-or-more"),
        access_ttl=ACCESS_TTL,
        refresh_ttl=REFRESH_TTL,
    )

    with pytest.raises(InvalidRefreshTokenError):
        foreign_refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))


def test_refresh_rejects_expired_stored_token():
    fx = AuthFixture()
    login = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    row = fx.store.rows[login.user.id]
    fx.store.rows[login.user.id] = replace(
        row,
        expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
    )

    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))


def test_refresh_rejects_when_user_was_deleted():
    fx = AuthFixture()
    login = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    del fx.users.users[login.user.id]

    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))


def test_single_active_refresh_token_after_any_sequence():
    fx = AuthFixture()
    latest = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    latest = fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))
    latest = fx.refresh.execute(RefreshSessionInput(refresh_token=latest.refresh_token))
    latest = fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))
    latest = fx.refresh.execute(RefreshSessionInput(refresh_token=latest.refresh_token))

    assert list(fx.store.rows) == [latest.user.id]
    assert fx.store.rows[latest.user.id].token == latest.refresh_token


def test_login_invalidates_previous_refresh_token():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))

    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=registered.refresh_token))


def test_logout_is_idempotent():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    fx.logout.execute(LogoutInput(user_id=registered.user.id))
    fx.logout.execute(LogoutInput(user_id=registered.user.id))
    fx.logout.execute(LogoutInput(user_id="unknown-user"))

    assert fx.store.rows == {}


def test_register_login_refresh_logout_scenario():
    fx = AuthFixture()

    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    assert registered.user.email == "a@x.com"
    assert registered.access_token and registered.refresh_token

    login = fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))
    assert login.user.id == registered.user.id
    assert login.access_token != registered.access_token
    assert login.refresh_token != registered.refresh_token

    refreshed = fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))
    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))

    fx.logout.execute(LogoutInput(user_id=login.user.id))
    with pytest.raises(InvalidRefreshTokenError):
        fx.refresh.execute(RefreshSessionInput(refresh_token=refreshed.refresh_token))


def test_concurrent_refresh_with_same_token_succeeds_once():
    fx = AuthFixture()
    login = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    barrier = Barrier(2)

    def _refresh():
        barrier.wait()
        try:
            return fx.refresh.execute(RefreshSessionInput(refresh_token=login.refresh_token))
        except InvalidRefreshTokenError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: _refresh(), range(2)))

    successes = [r for r in results if not isinstance(r, InvalidRefreshTokenError)]
    failures = [r for r in results if isinstance(r, InvalidRefreshTokenError)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert fx.store.rows[login.user.id].token == successes[0].refresh_token


def test_oauth_login_links_existing_password_user():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    output = fx.login_oauth.execute(_oauth_command())

    assert output.user.id == registered.user.id
    linked = fx.users.users[registered.user.id]
    assert linked.oauth_provider == "google"
    assert linked.oauth_provider_id == "google-sub-1"
    assert linked.profile_picture_url == "https://example.com/a.png"
    assert linked.password_hash == "hashed::pw123456"
    assert len(fx.users.users) == 1
    assert fx.google.calls == [("google-access", "google-refresh", {"sub": "google-sub-1"})]
    # dual-credential account: password login still works
    fx.login.execute(LoginLocalInput(email="a@x.com", password="pw123456"))


def test_oauth_login_creates_user_without_password():
    fx = AuthFixture()

    output = fx.login_oauth.execute(_oauth_command())

    user = fx.users.users[output.user.id]
    assert user.password_hash is None
    assert user.oauth_provider == "google"
    assert user.first_name == "Ada"
    assert fx.store.rows[user.id].token == output.refresh_token


def test_oauth_login_leaves_already_linked_user_untouched():
    fx = AuthFixture()
    first = fx.login_oauth.execute(_oauth_command())
    before = fx.users.users[first.user.id]
    fx.google.identity = replace(fx.google.identity, profile_picture_url="https://example.com/new.png")

    second = fx.login_oauth.execute(_oauth_command())

    assert second.user.id == first.user.id
    assert fx.users.users[first.user.id] == before


def test_oauth_login_unsupported_provider():
    fx = AuthFixture()

    with pytest.raises(UnsupportedProviderError):
        fx.login_oauth.execute(_oauth_command(provider="github"))

    assert fx.google.calls == []


def test_oauth_signup_conflict_leaves_user_unchanged():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))
    before = fx.users.users[registered.user.id]

    with pytest.raises(EmailAlreadyExistsError):
        fx.signup_oauth.execute(SignupOAuthInput(identity=fx.google.identity))

    assert fx.users.users[registered.user.id] == before
    assert len(fx.users.users) == 1


def test_oauth_signup_creates_linked_user():
    fx = AuthFixture()

    output = fx.signup_oauth.execute(SignupOAuthInput(identity=fx.google.identity))

    user = fx.users.users[output.user.id]
    assert user.email == "a@x.com"
    assert user.oauth_provider_id == "google-sub-1"
    assert fx.tokens.verify(token=output.refresh_token).subject == user.id


def test_get_me_returns_user_and_raises_when_missing():
    fx = AuthFixture()
    registered = fx.register.execute(RegisterUserInput(email="a@x.com", password="pw123456"))

    output = fx.get_me.execute(GetMeInput(user_id=registered.user.id))
    assert output.email == "a@x.com"
    assert output.has_password is True

    with pytest.raises(UserNotFoundError):
        fx.get_me.execute(GetMeInput(user_id="missing"))
