from __future__ import annotations

import logging
from typing import Sequence

from passlib.context import CryptContext

from app.application.ports.password_hasher_port import PasswordHasherPort


logger = logging.getLogger(__name__)

# First scheme hashes new passwords; the rest are only verified and then
# flagged for rehash on the next successful login.
DEFAULT_SCHEMES = ("argon2", "bcrypt")


class PasswordHasher(PasswordHasherPort):
    def __init__(self, *, schemes: Sequence[str] = DEFAULT_SCHEMES):
        self._ctx = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, plain_password: str) -> str:
        return self._ctx.hash(plain_password)

    def verify(self, plain_password: str, password_hash: str) -> bool:
        verified, _ = self.verify_and_update(plain_password, password_hash)
        return verified

    def verify_and_update(self, plain_password: str, password_hash: str) -> tuple[bool, str | None]:
        if not password_hash:
            return False, None
        try:
            verified, replacement_hash = self._ctx.verify_and_update(plain_password, password_hash)
        except (ValueError, TypeError):
            logger.warning("password_hasher: unrecognized_hash")
            return False, None
        if not verified:
            return False, None
        return True, replacement_hash
