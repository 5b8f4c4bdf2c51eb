from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    def hash(self, plain_password: str) -> str:
        """Salted one-way hash; two calls with the same input differ."""
        ...

    def verify(self, plain_password: str, password_hash: str) -> bool:
        """False for a wrong password or a malformed hash. Never raises."""
        ...

    def verify_and_update(self, plain_password: str, password_hash: str) -> tuple[bool, str | None]:
        """Like verify, plus a replacement hash when the stored one is outdated."""
        ...
