"""
频道服务
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFound, Forbidden, InvalidInput
from app.models.article import Article, ARTICLE_STATUS_PUBLISHED, ARTICLE_STATUS_DRAFT
from app.models.channel import Channel
from app.services.slug_service import slugify, insert_with_unique_slug, resolve_by_id_or_slug

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "category", "location", "profile_image", "banner_image")


async def count_user_channels(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Channel.id)).where(Channel.user_id == user_id)
    )
    return result.scalar() or 0


async def create_channel(
    db: AsyncSession,
    user_id: int,
    name: str,
    description: str,
    category: Optional[str] = None,
    location: Optional[str] = None,
    profile_image: Optional[str] = None,
    banner_image: Optional[str] = None,
) -> Channel:
    """
    创建频道，每个账号最多拥有MAX_CHANNELS_PER_USER个频道

    Raises:
        InvalidInput: 名称或描述为空，或已达到频道数量上限
    """
    name = (name or "").strip()
    if not name:
        raise InvalidInput("频道名称不能为空")
    if not description or not description.strip():
        raise InvalidInput("频道描述不能为空")

    if await count_user_channels(db, user_id) >= settings.MAX_CHANNELS_PER_USER:
        raise InvalidInput(f"已达到上限，每个账号最多创建{settings.MAX_CHANNELS_PER_USER}个频道")

    def build(slug: str) -> Channel:
        return Channel(
            user_id=user_id,
            name=name,
            slug=slug,
            description=description,
            category=category,
            location=location,
            profile_image=profile_image,
            banner_image=banner_image,
            admin_subscriber_count=0,
        )

    base = slugify(name, settings.SLUG_MAX_LENGTH) or "channel"
    channel = await insert_with_unique_slug(db, Channel, base, build)
    await db.commit()
    await db.refresh(channel)

    logger.info("Channel %s (%s) created by user %s", channel.id, channel.slug, user_id)
    return channel


async def get_channel(db: AsyncSession, id_or_slug: str) -> Channel:
    channel = await resolve_by_id_or_slug(db, Channel, id_or_slug)
    if not channel:
        raise NotFound("频道不存在")
    return channel


async def get_owned_channel(db: AsyncSession, channel_id: int, user_id: int) -> Channel:
    """获取频道并校验所有权"""
    channel = await db.get(Channel, channel_id)
    if not channel:
        raise NotFound("频道不存在")
    if channel.user_id != user_id:
        raise Forbidden("无权操作此频道")
    return channel


async def update_channel(db: AsyncSession, channel_id: int, user_id: int, updates: Dict) -> Channel:
    channel = await get_owned_channel(db, channel_id, user_id)

    for field in UPDATABLE_FIELDS:
        if field in updates and updates[field] is not None:
            setattr(channel, field, updates[field])

    await db.commit()
    await db.refresh(channel)
    return channel


async def list_channels(db: AsyncSession, user_id: Optional[int] = None) -> List[Channel]:
    stmt = select(Channel).order_by(Channel.created_at.desc())
    if user_id is not None:
        stmt = stmt.where(Channel.user_id == user_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def published_article_counts(db: AsyncSession, channel_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(channel_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Article.channel_id, func.count(Article.id))
        .where(Article.channel_id.in_(ids), Article.status == ARTICLE_STATUS_PUBLISHED)
        .group_by(Article.channel_id)
    )
    return {row[0]: row[1] for row in result.all()}


async def list_channel_articles(db: AsyncSession, channel_id: int, drafts: bool = False) -> List[Article]:
    status = ARTICLE_STATUS_DRAFT if drafts else ARTICLE_STATUS_PUBLISHED
    result = await db.execute(
        select(Article)
        .where(Article.channel_id == channel_id, Article.status == status)
        .order_by(Article.created_at.desc())
    )
    return list(result.scalars().all())
