"""
管理后台API：订阅数/浏览数调整、API访问授权
"""
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound
from app.db.database import get_db
from app.models.article import Article
from app.models.channel import Channel
from app.schemas.article import AdminArticleResponse
from app.schemas.channel import AdminChannelResponse
from app.schemas.common import ResponseModel
from app.schemas.engagement import SubscriberCountUpdate, ViewCountUpdate
from app.schemas.user import AdminStatusResponse, ApiAccessGrantCreate, ApiAccessGrantResponse
from app.services import access_service, subscription_service, view_service
from app.utils.auth import get_current_user_id, is_admin_user, require_admin

router = APIRouter(prefix="/api", tags=["管理"])


def admin_channel_response(channel: Channel, real_count: int) -> AdminChannelResponse:
    return AdminChannelResponse(
        id=channel.id,
        name=channel.name,
        description=channel.description,
        userId=channel.user_id,
        createdAt=channel.created_at,
        adminSubscriberCount=channel.admin_subscriber_count or 0,
        realSubscriberCount=real_count,
        subscriberCount=subscription_service.effective_count(channel, real_count),
    )


async def _admin_article_response(db: AsyncSession, article: Article) -> AdminArticleResponse:
    channel = await db.get(Channel, article.channel_id)
    return AdminArticleResponse(
        id=article.id,
        title=article.title,
        createdAt=article.created_at,
        viewCount=article.view_count or 0,
        channelName=channel.name if channel else None,
    )


@router.get("/is-admin", response_model=ResponseModel)
async def check_admin(
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    当前用户是否为管理员、是否可以使用内容API
    """
    return ResponseModel(
        code=200,
        message="获取成功",
        data=AdminStatusResponse(
            isAdmin=await is_admin_user(db, current_user_id),
            hasApiAccess=await access_service.has_api_access(db, current_user_id),
        ),
    )


@router.get("/admin-channels", response_model=ResponseModel)
async def list_admin_channels(
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """
    频道列表，包含真实订阅数、运营偏移量和展示订阅数
    """
    result = await db.execute(select(Channel).order_by(Channel.created_at.desc()))
    channels = list(result.scalars().all())
    real_counts = await subscription_service.subscription_counts(db, [c.id for c in channels])

    data = [admin_channel_response(c, real_counts.get(c.id, 0)) for c in channels]
    return ResponseModel(code=200, message="获取成功", data=data)


@router.patch("/admin-channels/{channel_id}", response_model=ResponseModel)
async def update_admin_channel(
    channel_id: int,
    update_data: SubscriberCountUpdate,
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """
    设置频道的目标订阅数

    存储值为 max(0, 目标 - 真实订阅数)，展示订阅数 = 真实订阅数 + 存储值
    """
    channel, real_count = await subscription_service.set_target_subscriber_count(
        db, channel_id, update_data.subscriberCount
    )
    return ResponseModel(
        code=200,
        message="订阅数已更新",
        data=admin_channel_response(channel, real_count),
    )


@router.get("/admin-articles", response_model=ResponseModel)
async def list_admin_articles(
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    result = await db.execute(
        select(Article, Channel.name)
        .join(Channel, Channel.id == Article.channel_id)
        .order_by(Article.created_at.desc())
    )
    data = [
        AdminArticleResponse(
            id=article.id,
            title=article.title,
            createdAt=article.created_at,
            viewCount=article.view_count or 0,
            channelName=channel_name,
        )
        for article, channel_name in result.all()
    ]
    return ResponseModel(code=200, message="获取成功", data=data)


@router.get("/admin-articles/{article_id}", response_model=ResponseModel)
async def get_admin_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    article = await db.get(Article, article_id)
    if not article:
        raise NotFound(f"文章 {article_id} 不存在")
    return ResponseModel(code=200, message="获取成功", data=await _admin_article_response(db, article))


@router.patch("/admin-articles/{article_id}", response_model=ResponseModel)
async def update_admin_article(
    article_id: int,
    update_data: ViewCountUpdate,
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """
    直接设置浏览数，之后的自然浏览在此基础上递增
    """
    article = await view_service.set_view_count(db, article_id, update_data.viewCount)
    return ResponseModel(code=200, message="浏览数已更新", data=await _admin_article_response(db, article))


@router.get("/v1/api-access-users", response_model=ResponseModel)
async def list_api_access_users(
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    grants = await access_service.list_grants(db)
    data = [
        ApiAccessGrantResponse(
            userId=user.id,
            username=user.username,
            grantedBy=grant.granted_by,
            grantedAt=grant.created_at,
        )
        for grant, user in grants
    ]
    return ResponseModel(code=200, message="获取成功", data=data)


@router.post("/v1/api-access-users", response_model=ResponseModel)
async def grant_api_access(
    grant_data: ApiAccessGrantCreate,
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """
    按用户名授予API访问权限
    """
    grant, user = await access_service.grant_access(db, grant_data.username, admin_id)
    return ResponseModel(
        code=200,
        message="授权成功",
        data=ApiAccessGrantResponse(
            userId=user.id,
            username=user.username,
            grantedBy=grant.granted_by,
            grantedAt=grant.created_at,
        ),
    )


@router.delete("/v1/api-access-users/{user_id}", response_model=ResponseModel)
async def revoke_api_access(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    await access_service.revoke_access(db, user_id)
    return ResponseModel(code=200, message="已撤销API访问权限", data={"userId": user_id})
