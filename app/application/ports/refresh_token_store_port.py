from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from app.domain.entities.user import RefreshToken


TStoreResult = TypeVar("TStoreResult")


class RefreshTokenStorePort(Protocol):
    def execute_in_transaction(
        self,
        fn: Callable[[RefreshTokenStorePort], TStoreResult],
    ) -> TStoreResult:
        ...

    def upsert(self, *, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
        ...

    def find_by_user(self, *, user_id: str, for_update: bool = False) -> RefreshToken | None:
        ...

    def delete_by_user(self, *, user_id: str) -> None:
        ...
