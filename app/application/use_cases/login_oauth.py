from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

from app.application.dto.auth import AuthTokensOutput, LoginOAuthInput
from app.application.ports.oauth_provider_port import OAuthProviderRegistry
from app.application.ports.refresh_token_store_port import RefreshTokenStorePort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.entities.oauth_identity import OAuthIdentity
from app.domain.entities.user import User
from app.domain.exceptions import UnsupportedProviderError

from .auth_common import issue_tokens, normalize_email, utcnow


logger = logging.getLogger(__name__)


def build_user_from_identity(identity: OAuthIdentity) -> User:
    now = utcnow()
    return User(
        id=str(uuid4()),
        email=normalize_email(identity.email),
        password_hash=None,
        first_name=identity.first_name,
        last_name=identity.last_name,
        oauth_provider=identity.provider,
        oauth_provider_id=identity.provider_user_id,
        profile_picture_url=identity.profile_picture_url,
        created_at=now,
        updated_at=now,
    )


class LoginOAuthUseCase:
    """Signs in through an OAuth provider, creating or linking the account by email.

    An existing user without an OAuth link (typically registered with a
    password) gets the provider identity attached in place and keeps its id.
    Users that are already linked are left untouched.
    """

    def __init__(
        self,
        *,
        user_directory: UserDirectoryPort,
        refresh_token_store: RefreshTokenStorePort,
        oauth_providers: OAuthProviderRegistry,
        token_port: TokenPort,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        self._user_directory = user_directory
        self._refresh_token_store = refresh_token_store
        self._oauth_providers = oauth_providers
        self._token_port = token_port
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def execute(self, command: LoginOAuthInput) -> AuthTokensOutput:
        provider = self._oauth_providers.get(command.provider)
        if provider is None:
            raise UnsupportedProviderError(f"OAuth provider '{command.provider}' is not supported.")

        identity = provider.validate(
            provider_access_token=command.provider_access_token,
            provider_refresh_token=command.provider_refresh_token,
            raw_profile=command.raw_profile,
        )

        user = self._user_directory.find_by_email(email=normalize_email(identity.email))
        if user is None:
            user = self._user_directory.create(user=build_user_from_identity(identity))
            logger.info(
                "login_oauth: user_created provider=%s user_id=%s",
                identity.provider,
                user.id,
            )
        elif not user.is_oauth_linked:
            linked = replace(
                user,
                oauth_provider=identity.provider,
                oauth_provider_id=identity.provider_user_id,
                profile_picture_url=identity.profile_picture_url or user.profile_picture_url,
                updated_at=utcnow(),
            )
            user = self._user_directory.update(user=linked)
            logger.info(
                "login_oauth: account_linked provider=%s user_id=%s",
                identity.provider,
                user.id,
            )

        return issue_tokens(
            user=user,
            refresh_token_store=self._refresh_token_store,
            token_port=self._token_port,
            access_ttl=self._access_ttl,
            refresh_ttl=self._refresh_ttl,
        )
