from fastapi import APIRouter, Depends, Request

from api.dependencies import (
    get_delete_access_token_use_case,
    get_get_access_token_use_case,
    get_set_access_token_use_case,
)
from api.schemas.responses import AccessTokenStatus, ConfigActionResponse
from services.config import DeleteAccessTokenUseCase, GetAccessTokenUseCase, SetAccessTokenUseCase

router = APIRouter(prefix="/config", tags=["Configuration"])


@router.post("/access-token", response_model=ConfigActionResponse)
async def set_access_token(
    request: Request,
    use_case: SetAccessTokenUseCase = Depends(get_set_access_token_use_case),
):
    """Set or replace the upstream access token used for Stockbit calls."""
    try:
        body = await request.json()
    except ValueError:
        body = None
    token = body.get("token") if isinstance(body, dict) else None
    return use_case.execute(token)


@router.get("/access-token", response_model=AccessTokenStatus)
async def get_access_token(
    use_case: GetAccessTokenUseCase = Depends(get_get_access_token_use_case),
):
    """Current runtime token, masked"""
    return use_case.execute()


@router.delete("/access-token", response_model=ConfigActionResponse)
async def delete_access_token(
    use_case: DeleteAccessTokenUseCase = Depends(get_delete_access_token_use_case),
):
    return use_case.execute()
