from __future__ import annotations

import logging

from app.application.dto.auth import LogoutInput
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort


logger = logging.getLogger(__name__)


class LogoutSessionUseCase:
    def __init__(self, *, refresh_token_store: RefreshTokenStorePort):
        self._refresh_token_store = refresh_token_store

    def execute(self, command: LogoutInput) -> None:
        self._refresh_token_store.delete_by_user(user_id=command.user_id)
        logger.info("logout_session: refresh_token_deleted user_id=%s", command.user_id)
