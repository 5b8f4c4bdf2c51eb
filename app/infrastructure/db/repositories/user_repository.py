from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.entities.user import User
from app.domain.exceptions import EmailAlreadyExistsError, UserNotFoundError
from app.infrastructure.db.mappers.accounts_mapper import map_row_to_user
from app.infrastructure.db.models.accounts import USERS_EMAIL_CONSTRAINT


USER_COLUMNS = """
    id, email, password_hash, first_name, last_name, oauth_provider, oauth_provider_id,
    profile_picture_url, created_at, updated_at
"""


class SqlUserRepository(UserDirectoryPort):
    def __init__(self, engine):
        self._engine = engine

    def find_by_email(self, *, email: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE email = :email
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"email": email}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def find_by_id(self, *, user_id: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE id = :user_id
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def create(self, *, user: User) -> User:
        sql = f"""
            INSERT INTO public.users (
                id, email, password_hash, first_name, last_name, oauth_provider, oauth_provider_id,
                profile_picture_url, created_at, updated_at
            ) VALUES (
                :id, :email, :password_hash, :first_name, :last_name, :oauth_provider, :oauth_provider_id,
                :profile_picture_url, :created_at, :updated_at
            )
            RETURNING {USER_COLUMNS}
        """
        try:
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), _user_params(user)).mappings().one()
        except IntegrityError as exc:
            if _violated_constraint(exc) != USERS_EMAIL_CONSTRAINT:
                raise
            # unique(email) lost a concurrent registration race
            raise EmailAlreadyExistsError("Email already exists.") from exc
        return map_row_to_user(row)

    def update(self, *, user: User) -> User:
        sql = f"""
            UPDATE public.users
            SET email = :email,
                password_hash = :password_hash,
                first_name = :first_name,
                last_name = :last_name,
                oauth_provider = :oauth_provider,
                oauth_provider_id = :oauth_provider_id,
                profile_picture_url = :profile_picture_url,
                updated_at = :updated_at
            WHERE id = :id
            RETURNING {USER_COLUMNS}
        """
        with self._engine.begin() as conn:
            row = conn.execute(text(sql), _user_params(user)).mappings().first()
        if row is None:
            raise UserNotFoundError("User not found.")
        return map_row_to_user(row)


def _user_params(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "password_hash": user.password_hash,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "oauth_provider": user.oauth_provider,
        "oauth_provider_id": user.oauth_provider_id,
        "profile_picture_url": user.profile_picture_url,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _violated_constraint(exc: IntegrityError) -> str | None:
    # psycopg exposes the server diagnostics on the driver exception
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)
