from __future__ import annotations

from app.application.dto.me import GetMeInput, MeOutput
from app.application.ports.user_directory_port import UserDirectoryPort
from app.domain.exceptions import UserNotFoundError


class GetMeUseCase:
    def __init__(self, *, user_directory: UserDirectoryPort):
        self._user_directory = user_directory

    def execute(self, command: GetMeInput) -> MeOutput:
        user = self._user_directory.find_by_id(user_id=command.user_id)
        if user is None:
            raise UserNotFoundError("User not found.")
        return MeOutput(
            user_id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            oauth_provider=user.oauth_provider,
            profile_picture_url=user.profile_picture_url,
            has_password=user.has_password,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
