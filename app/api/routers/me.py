from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_current_claims, get_get_me_use_case
from app.api.schemas.me import MeResponse
from app.application.dto.auth import TokenClaims
from app.application.dto.me import GetMeInput
from app.application.use_cases.get_me import GetMeUseCase
from app.domain.exceptions import UserNotFoundError


router = APIRouter()


@router.get("/v1/me", response_model=MeResponse)
def get_me(
    claims: TokenClaims = Depends(get_current_claims),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    try:
        output = use_case.execute(GetMeInput(user_id=claims.subject))
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return MeResponse(
        id=output.user_id,
        email=output.email,
        first_name=output.first_name,
        last_name=output.last_name,
        oauth_provider=output.oauth_provider,
        profile_picture_url=output.profile_picture_url,
        has_password=output.has_password,
        created_at=output.created_at,
        updated_at=output.updated_at,
    )
