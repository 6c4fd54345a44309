"""
频道API：创建、查询、编辑、订阅
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden
from app.db.database import get_db
from app.models.channel import Channel
from app.schemas.channel import ChannelCreate, ChannelUpdate, ChannelResponse, SubscriberInfo
from app.schemas.common import ResponseModel
from app.schemas.engagement import SubscriptionResponse
from app.services import channel_service, subscription_service
from app.api.articles import build_list_items
from app.utils.auth import get_current_user_id, get_optional_user_id

router = APIRouter(prefix="/api", tags=["频道"])


def channel_response(
    channel: Channel,
    subscriber_count: int = 0,
    article_count: int = 0,
    is_subscribed: Optional[bool] = None,
) -> ChannelResponse:
    return ChannelResponse(
        id=channel.id,
        userId=channel.user_id,
        name=channel.name,
        slug=channel.slug,
        description=channel.description,
        category=channel.category,
        location=channel.location,
        profileImage=channel.profile_image,
        bannerImage=channel.banner_image,
        subscriberCount=subscriber_count,
        articleCount=article_count,
        isSubscribed=is_subscribed,
        createdAt=channel.created_at,
        updatedAt=channel.updated_at,
    )


async def build_channel_responses(db: AsyncSession, channels: List[Channel]) -> List[ChannelResponse]:
    """批量统计订阅数（含运营偏移）和已发布文章数"""
    ids = [c.id for c in channels]
    real_counts = await subscription_service.subscription_counts(db, ids)
    article_counts = await channel_service.published_article_counts(db, ids)
    return [
        channel_response(
            channel,
            subscriber_count=subscription_service.effective_count(channel, real_counts.get(channel.id, 0)),
            article_count=article_counts.get(channel.id, 0),
        )
        for channel in channels
    ]


@router.get("/channels", response_model=ResponseModel)
async def list_channels(db: AsyncSession = Depends(get_db)):
    """
    获取所有频道
    """
    channels = await channel_service.list_channels(db)
    data = await build_channel_responses(db, channels)
    return ResponseModel(code=200, message="获取成功", data=data)


@router.post("/channels", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_channel(
    channel_data: ChannelCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    创建频道
    """
    channel = await channel_service.create_channel(
        db,
        user_id=current_user_id,
        name=channel_data.name,
        description=channel_data.description,
        category=channel_data.category,
        location=channel_data.location,
        profile_image=channel_data.profileImage,
        banner_image=channel_data.bannerImage,
    )
    return ResponseModel(code=201, message="频道创建成功", data=channel_response(channel))


@router.get("/channels/{id_or_slug}", response_model=ResponseModel)
async def get_channel(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[int] = Depends(get_optional_user_id),
):
    """
    获取频道详情，支持ID或slug
    """
    channel = await channel_service.get_channel(db, id_or_slug)
    data = (await build_channel_responses(db, [channel]))[0]
    if current_user_id is not None:
        data.isSubscribed = await subscription_service.is_subscribed(db, channel.id, current_user_id)
    return ResponseModel(code=200, message="获取成功", data=data)


@router.patch("/channels/{channel_id}", response_model=ResponseModel)
async def update_channel(
    channel_id: int,
    channel_data: ChannelUpdate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    更新频道信息（仅所有者）
    """
    channel = await channel_service.update_channel(
        db,
        channel_id,
        current_user_id,
        {
            "name": channel_data.name,
            "description": channel_data.description,
            "category": channel_data.category,
            "location": channel_data.location,
            "profile_image": channel_data.profileImage,
            "banner_image": channel_data.bannerImage,
        },
    )
    data = (await build_channel_responses(db, [channel]))[0]
    return ResponseModel(code=200, message="频道更新成功", data=data)


@router.post("/channels/{channel_id}/subscribe", response_model=ResponseModel)
async def subscribe_channel(
    channel_id: int,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    订阅频道；已订阅时返回200，不会重复创建
    """
    _, created = await subscription_service.subscribe(db, channel_id, current_user_id)
    channel = await db.get(Channel, channel_id)
    count = await subscription_service.effective_subscriber_count(db, channel)

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ResponseModel(
        code=response.status_code,
        message="订阅成功" if created else "已订阅",
        data=SubscriptionResponse(channelId=channel_id, subscribed=True, subscriberCount=count),
    )


@router.delete("/channels/{channel_id}/subscribe", response_model=ResponseModel)
async def unsubscribe_channel(
    channel_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    取消订阅；未订阅时同样返回成功
    """
    removed = await subscription_service.unsubscribe(db, channel_id, current_user_id)
    channel = await db.get(Channel, channel_id)
    count = await subscription_service.effective_subscriber_count(db, channel) if channel else 0
    return ResponseModel(
        code=200,
        message="已取消订阅" if removed else "未订阅",
        data=SubscriptionResponse(channelId=channel_id, subscribed=False, subscriberCount=count),
    )


@router.get("/channels/{channel_id}/subscribers", response_model=ResponseModel)
async def list_channel_subscribers(
    channel_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    订阅者列表（仅频道所有者）
    """
    await channel_service.get_owned_channel(db, channel_id, current_user_id)
    users = await subscription_service.list_subscribers(db, channel_id)
    return ResponseModel(
        code=200,
        message="获取成功",
        data=[SubscriberInfo(id=u.id, username=u.username) for u in users],
    )


@router.get("/channels/{channel_id}/articles", response_model=ResponseModel)
async def list_channel_articles(
    channel_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[int] = Depends(get_optional_user_id),
):
    channel = await channel_service.get_channel(db, str(channel_id))
    articles = await channel_service.list_channel_articles(db, channel.id)
    items = await build_list_items(db, articles, current_user_id)
    return ResponseModel(code=200, message="获取成功", data=items)


@router.get("/channels/{channel_id}/drafts", response_model=ResponseModel)
async def list_channel_drafts(
    channel_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    草稿列表（仅频道所有者）
    """
    channel = await channel_service.get_channel(db, str(channel_id))
    if channel.user_id != current_user_id:
        raise Forbidden("无权查看此频道的草稿")
    articles = await channel_service.list_channel_articles(db, channel.id, drafts=True)
    items = await build_list_items(db, articles, current_user_id)
    return ResponseModel(code=200, message="获取成功", data=items)
