from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta

from app.application.dto.auth import AuthTokensOutput, LoginLocalInput
from app.application.ports.password_hasher_port import PasswordHasherPort
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.exceptions import InvalidCredentialsError

from .auth_common import issue_tokens, normalize_email, utcnow


logger = logging.getLogger(__name__)


class LoginLocalUseCase:
    def __init__(
        self,
        *,
        user_directory: UserDirectoryPort,
        refresh_token_store: RefreshTokenStorePort,
        password_hasher: PasswordHasherPort,
        token_port: TokenPort,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        self._user_directory = user_directory
        self._refresh_token_store = refresh_token_store
        self._password_hasher = password_hasher
        self._token_port = token_port
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def execute(self, command: LoginLocalInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        user = self._user_directory.find_by_email(email=email)
        if user is None:
            logger.info("login_local: rejected reason=unknown_email")
            raise InvalidCredentialsError("Invalid credentials.")

        if not user.password_hash:
            logger.info("login_local: rejected reason=no_password user_id=%s", user.id)
            raise InvalidCredentialsError("Invalid credentials.")

        verified, replacement_hash = self._password_hasher.verify_and_update(
            command.password,
            user.password_hash,
        )
        if not verified:
            logger.info("login_local: rejected reason=wrong_password user_id=%s", user.id)
            raise InvalidCredentialsError("Invalid credentials.")

        if replacement_hash:
            user = self._user_directory.update(
                user=replace(user, password_hash=replacement_hash, updated_at=utcnow())
            )
            logger.info("login_local: password_rehashed user_id=%s", user.id)

        return issue_tokens(
            user=user,
            refresh_token_store=self._refresh_token_store,
            token_port=self._token_port,
            access_ttl=self._access_ttl,
            refresh_ttl=self._refresh_ttl,
        )
