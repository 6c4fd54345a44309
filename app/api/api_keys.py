"""
API Key管理
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden
from app.db.database import get_db
from app.models.api_key import ApiKey
from app.schemas.common import ResponseModel
from app.schemas.content import ApiKeyCreate, ApiKeyCreatedResponse, ApiKeyResponse
from app.services import access_service, api_key_service
from app.utils.auth import get_current_user_id

router = APIRouter(prefix="/api/v1", tags=["API Key"])


def api_key_response(api_key: ApiKey) -> ApiKeyResponse:
    return ApiKeyResponse(
        id=api_key.id,
        prefix=api_key.key_prefix,
        name=api_key.name,
        createdAt=api_key.created_at,
        lastUsedAt=api_key.last_used_at,
        expiresAt=api_key.expires_at,
        isRevoked=api_key.is_revoked,
    )


@router.post("/api-keys", response_model=ResponseModel)
async def create_api_key(
    key_data: ApiKeyCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    创建API Key

    原始key只在本次响应中返回，之后只能看到前缀
    """
    if not await access_service.has_api_access(db, current_user_id):
        raise Forbidden("没有API访问权限，请联系管理员开通")

    api_key, raw_key = await api_key_service.create_api_key(
        db, current_user_id, key_data.name, key_data.expiresInDays
    )
    return ResponseModel(
        code=200,
        message="API Key创建成功，请妥善保存，之后将无法再次查看",
        data=ApiKeyCreatedResponse(
            id=api_key.id,
            key=raw_key,
            prefix=api_key.key_prefix,
            name=api_key.name,
            createdAt=api_key.created_at,
            expiresAt=api_key.expires_at,
        ),
    )


@router.get("/api-keys", response_model=ResponseModel)
async def list_api_keys(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    keys = await api_key_service.list_api_keys(db, current_user_id)
    return ResponseModel(code=200, message="获取成功", data=[api_key_response(k) for k in keys])


@router.delete("/api-keys/{key_id}", response_model=ResponseModel)
async def revoke_api_key(
    key_id: str,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    api_key = await api_key_service.revoke_api_key(db, key_id, current_user_id)
    return ResponseModel(code=200, message="API Key已吊销", data=api_key_response(api_key))
