from __future__ import annotations

from typing import Protocol

from app.domain.entities.user import User


class UserDirectoryPort(Protocol):
    def find_by_email(self, *, email: str) -> User | None:
        ...

    def find_by_id(self, *, user_id: str) -> User | None:
        ...

    def create(self, *, user: User) -> User:
        ...

    def update(self, *, user: User) -> User:
        ...
