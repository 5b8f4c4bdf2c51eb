from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, TypeVar
from uuid import uuid4

from sqlalchemy import text

from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.domain.entities.user import RefreshToken
from app.infrastructure.db.mappers.accounts_mapper import map_row_to_refresh_token


TStoreResult = TypeVar("TStoreResult")


class SqlRefreshTokenRepository(RefreshTokenStorePort):
    """One refresh token row per user, keyed by user_id.

    Outside ``execute_in_transaction`` every call runs in its own transaction;
    inside it, all calls share the connection handed to ``fn``.
    """

    def __init__(self, engine, *, connection=None):
        self._engine = engine
        self._connection = connection

    @contextmanager
    def _begin(self) -> Iterator:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.begin() as conn:
            yield conn

    def execute_in_transaction(
        self,
        fn: Callable[[RefreshTokenStorePort], TStoreResult],
    ) -> TStoreResult:
        if self._connection is not None:
            return fn(self)
        with self._engine.begin() as conn:
            return fn(SqlRefreshTokenRepository(self._engine, connection=conn))

    def upsert(self, *, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
        sql = """
            INSERT INTO public.refresh_tokens (id, token, user_id, expires_at, created_at)
            VALUES (:id, :token, :user_id, :expires_at, now())
            ON CONFLICT (user_id) DO UPDATE
            SET token = EXCLUDED.token,
                expires_at = EXCLUDED.expires_at,
                created_at = EXCLUDED.created_at
            RETURNING id, token, user_id, expires_at, created_at
        """
        params = {
            "id": str(uuid4()),
            "token": token,
            "user_id": user_id,
            "expires_at": expires_at,
        }
        with self._begin() as conn:
            row = conn.execute(text(sql), params).mappings().one()
        return map_row_to_refresh_token(row)

    def find_by_user(self, *, user_id: str, for_update: bool = False) -> RefreshToken | None:
        sql = """
            SELECT id, token, user_id, expires_at, created_at
            FROM public.refresh_tokens
            WHERE user_id = :user_id
            LIMIT 1
        """
        if for_update:
            sql += "\n            FOR UPDATE"
        with self._begin() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_refresh_token(row)

    def delete_by_user(self, *, user_id: str) -> None:
        sql = """
            DELETE FROM public.refresh_tokens
            WHERE user_id = :user_id
        """
        with self._begin() as conn:
            conn.execute(text(sql), {"user_id": user_id})
