from __future__ import annotations

from typing import Any, Mapping

from app.domain.entities.user import RefreshToken, User


def _as_str(value: Any) -> str:
    return str(value)


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        email=row["email"],
        password_hash=row.get("password_hash"),
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        oauth_provider=row.get("oauth_provider"),
        oauth_provider_id=row.get("oauth_provider_id"),
        profile_picture_url=row.get("profile_picture_url"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def map_row_to_refresh_token(row: Mapping[str, Any]) -> RefreshToken:
    return RefreshToken(
        id=_as_str(row["id"]),
        token=row["token"],
        user_id=_as_str(row["user_id"]),
        expires_at=row["expires_at"],
        created_at=row["created_at"],
    )
