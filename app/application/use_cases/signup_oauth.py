from __future__ import annotations

import logging
from datetime import timedelta

from app.application.dto.auth import AuthTokensOutput, SignupOAuthInput
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.exceptions import EmailAlreadyExistsError

from .auth_common import issue_tokens, normalize_email
from .login_oauth import build_user_from_identity


logger = logging.getLogger(__name__)


class SignupOAuthUseCase:
    def __init__(
        self,
        *,
        user_directory: UserDirectoryPort,
        refresh_token_store: RefreshTokenStorePort,
        token_port: TokenPort,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        self._user_directory = user_directory
        self._refresh_token_store = refresh_token_store
        self._token_port = token_port
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def execute(self, command: SignupOAuthInput) -> AuthTokensOutput:
        identity = command.identity
        # Unlike oauth login, an explicit signup never takes over an existing account.
        if self._user_directory.find_by_email(email=normalize_email(identity.email)) is not None:
            raise EmailAlreadyExistsError("Email already exists.")

        user = self._user_directory.create(user=build_user_from_identity(identity))
        logger.info("signup_oauth: user_created provider=%s user_id=%s", identity.provider, user.id)

        return issue_tokens(
            user=user,
            refresh_token_store=self._refresh_token_store,
            token_port=self._token_port,
            access_ttl=self._access_ttl,
            refresh_ttl=self._refresh_ttl,
        )
