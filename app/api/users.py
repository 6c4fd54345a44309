"""
用户API：当前用户、公开资料、订阅列表
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, Forbidden
from app.db.database import get_db
from app.models.user import User
from app.schemas.common import ResponseModel
from app.schemas.user import UserResponse, UserUpdate
from app.services import access_service, channel_service, subscription_service
from app.api.channels import build_channel_responses
from app.utils.auth import get_current_user_id, require_admin

router = APIRouter(prefix="/api", tags=["用户"])


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        description=user.description,
        avatarUrl=user.avatar_url,
        createdAt=user.created_at,
    )


@router.get("/user", response_model=ResponseModel)
async def get_current_user(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    获取当前登录用户
    """
    user = await db.get(User, current_user_id)
    return ResponseModel(code=200, message="获取成功", data=user_response(user))


@router.get("/user/subscriptions", response_model=ResponseModel)
async def get_user_subscriptions(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    当前用户订阅的频道（含订阅时间）
    """
    rows = await subscription_service.list_user_subscriptions(db, current_user_id)
    channels = [channel for channel, _ in rows]
    responses = await build_channel_responses(db, channels)

    data = []
    for response, (_, subscription) in zip(responses, rows):
        response.isSubscribed = True
        response.subscriptionDate = subscription.created_at
        data.append(response)
    return ResponseModel(code=200, message="获取成功", data=data)


@router.get("/user/channels", response_model=ResponseModel)
async def get_user_channels(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    channels = await channel_service.list_channels(db, user_id=current_user_id)
    data = await build_channel_responses(db, channels)
    return ResponseModel(code=200, message="获取成功", data=data)


@router.get("/users/search", response_model=ResponseModel)
async def search_users(
    q: str = Query("", description="用户名关键字"),
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """
    按用户名搜索用户（管理员）
    """
    users = await access_service.search_users(db, q)
    return ResponseModel(code=200, message="获取成功", data=[user_response(u) for u in users])


@router.get("/users/{user_id}", response_model=ResponseModel)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise NotFound("用户不存在")
    return ResponseModel(code=200, message="获取成功", data=user_response(user))


@router.patch("/users/{user_id}", response_model=ResponseModel)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    更新个人资料（只能修改自己的）
    """
    if user_id != current_user_id:
        raise Forbidden("只能修改自己的资料")

    user = await db.get(User, user_id)
    if not user:
        raise NotFound("用户不存在")

    if user_data.description is not None:
        user.description = user_data.description
    await db.commit()
    await db.refresh(user)

    return ResponseModel(code=200, message="资料更新成功", data=user_response(user))
