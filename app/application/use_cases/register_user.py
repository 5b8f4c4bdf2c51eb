from __future__ import annotations

import logging
from datetime import timedelta
from uuid import uuid4

from app.application.dto.auth import AuthTokensOutput, RegisterUserInput
from app.application.ports.password_hasher_port import PasswordHasherPort
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.entities.user import User
from app.domain.exceptions import EmailAlreadyExistsError

from .auth_common import issue_tokens, normalize_email, utcnow


logger = logging.getLogger(__name__)


class RegisterUserUseCase:
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

    def execute(self, command: RegisterUserInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        if self._user_directory.find_by_email(email=email) is not None:
            raise EmailAlreadyExistsError("Email already exists.")

        now = utcnow()
        user = self._user_directory.create(
            user=User(
                id=str(uuid4()),
                email=email,
                password_hash=self._password_hasher.hash(command.password),
                first_name=command.first_name,
                last_name=command.last_name,
                oauth_provider=None,
                oauth_provider_id=None,
                profile_picture_url=None,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("register_user: user_created user_id=%s", user.id)

        return issue_tokens(
            user=user,
            refresh_token_store=self._refresh_token_store,
            token_port=self._token_port,
            access_ttl=self._access_ttl,
            refresh_ttl=self._refresh_ttl,
        )
