from __future__ import annotations

import hmac
import logging
from datetime import timedelta

from app.application.dto.auth import AuthTokensOutput, RefreshSessionInput
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.exceptions import InvalidRefreshTokenError, InvalidTokenError

from .auth_common import issue_tokens, utcnow


logger = logging.getLogger(__name__)


class RefreshSessionUseCase:
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

    def execute(self, command: RefreshSessionInput) -> AuthTokensOutput:
        token = command.refresh_token.strip()
        if not token:
            raise InvalidRefreshTokenError("Missing refresh token.")

        try:
            claims = self._token_port.verify(token=token)
        except InvalidTokenError as exc:
            logger.info("refresh_session: rejected reason=%s", exc.code)
            raise InvalidRefreshTokenError("Invalid refresh token.") from exc

        if claims.token_type != "refresh":
            logger.info("refresh_session: rejected reason=wrong_token_type user_id=%s", claims.subject)
            raise InvalidRefreshTokenError("Invalid refresh token.")

        user_id = claims.subject

        # Read, delete and re-issue under one transaction (row locked), so a
        # concurrent refresh with the same token sees the replacement and fails.
        def _tx(store: RefreshTokenStorePort) -> AuthTokensOutput:
            now = utcnow()
            stored = store.find_by_user(user_id=user_id, for_update=True)
            if stored is None:
                logger.warning("refresh_session: rejected reason=not_found user_id=%s", user_id)
                raise InvalidRefreshTokenError("Invalid refresh token.")
            if not hmac.compare_digest(stored.token.encode("utf-8"), token.encode("utf-8")):
                logger.warning("refresh_session: rejected reason=mismatch user_id=%s", user_id)
                raise InvalidRefreshTokenError("Invalid refresh token.")
            if stored.expires_at < now:
                logger.info("refresh_session: rejected reason=stored_expired user_id=%s", user_id)
                raise InvalidRefreshTokenError("Invalid refresh token.")

            store.delete_by_user(user_id=user_id)

            user = self._user_directory.find_by_id(user_id=user_id)
            if user is None:
                logger.warning("refresh_session: rejected reason=user_missing user_id=%s", user_id)
                raise InvalidRefreshTokenError("Invalid refresh token.")

            return issue_tokens(
                user=user,
                refresh_token_store=store,
                token_port=self._token_port,
                access_ttl=self._access_ttl,
                refresh_ttl=self._refresh_ttl,
            )

        return self._refresh_token_store.execute_in_transaction(_tx)
