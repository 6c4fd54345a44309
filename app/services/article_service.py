"""
文章服务：创建（含重复检测与slug）、查询、编辑、删除、发布状态切换
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFound, Forbidden, Conflict, InvalidInput
from app.db.database import utcnow
from app.models.article import (
    Article, ArticleCategory, ArticleImage, ARTICLE_STATUS_DRAFT, ARTICLE_STATUS_PUBLISHED
)
from app.models.category import Category, Location
from app.models.channel import Channel
from app.models.comment import Comment
from app.models.engagement import ArticleView, Reaction
from app.services.slug_service import article_base_slug, insert_with_unique_slug, resolve_by_id_or_slug

logger = logging.getLogger(__name__)


async def find_recent_duplicate(
    db: AsyncSession,
    channel_id: int,
    title: str,
    now: Optional[datetime] = None,
) -> Optional[int]:
    """
    查找同一频道在时间窗口内创建的同标题文章

    Returns:
        已存在文章的ID，没有则返回None
    """
    now = now or utcnow()
    window_start = now - timedelta(hours=settings.DUPLICATE_ARTICLE_WINDOW_HOURS)
    result = await db.execute(
        select(Article.id)
        .where(
            Article.channel_id == channel_id,
            Article.title == title.strip(),
            Article.created_at >= window_start,
        )
        .order_by(Article.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _validate_categories(db: AsyncSession, category_ids: Sequence[int]):
    if len(category_ids) > settings.MAX_ARTICLE_CATEGORIES:
        raise InvalidInput(f"最多选择{settings.MAX_ARTICLE_CATEGORIES}个分类")
    if len(set(category_ids)) != len(category_ids):
        raise InvalidInput("分类不能重复")
    if not category_ids:
        return
    result = await db.execute(select(Category.id).where(Category.id.in_(category_ids)))
    found = set(result.scalars().all())
    if found != set(category_ids):
        raise NotFound("分类不存在")


async def create_article(
    db: AsyncSession,
    user_id: int,
    title: str,
    content: str,
    channel_id: int,
    content_format: str = "html",
    category_ids: Optional[Sequence[int]] = None,
    location_id: Optional[int] = None,
    location_name: Optional[str] = None,
    location_lat: Optional[float] = None,
    location_lng: Optional[float] = None,
    published: bool = True,
    images: Optional[Sequence[Dict[str, Any]]] = None,
    check_duplicate: bool = False,
) -> Article:
    """
    创建文章

    Args:
        db: 数据库会话
        user_id: 作者ID，必须是频道所有者
        title: 标题
        content: 正文（按content_format原样保存）
        channel_id: 所属频道
        category_ids: 分类ID列表，第一个为主分类
        images: 图片列表，元素包含url和可选的caption
        check_duplicate: 是否检查24小时内同频道同标题的重复提交

    Returns:
        Article: 新建的文章

    Raises:
        InvalidInput: 标题/正文为空，分类或图片超出数量限制
        NotFound: 频道、分类或地区不存在
        Forbidden: 频道不属于当前用户
        Conflict: 重复文章（带已存在文章ID）或slug无法生成
    """
    title = (title or "").strip()
    category_ids = list(category_ids or [])
    images = list(images or [])

    if not title:
        raise InvalidInput("标题不能为空")
    if not content or not content.strip():
        raise InvalidInput("正文不能为空")
    if len(images) > settings.MAX_ARTICLE_IMAGES:
        raise InvalidInput(f"最多上传{settings.MAX_ARTICLE_IMAGES}张图片")

    channel = await db.get(Channel, channel_id)
    if not channel:
        raise NotFound("频道不存在")
    if channel.user_id != user_id:
        raise Forbidden("无权在此频道发布文章")

    if check_duplicate:
        existing_id = await find_recent_duplicate(db, channel_id, title)
        if existing_id is not None:
            logger.info("Duplicate article rejected: channel=%s title=%r existing=%s", channel_id, title, existing_id)
            raise Conflict(f"\"{title}\" 在最近24小时内已发布", existing_id=existing_id)

    await _validate_categories(db, category_ids)

    if location_id is not None:
        location = await db.get(Location, location_id)
        if not location:
            raise NotFound("地区不存在")
        location_name = location_name or location.name

    now = utcnow()
    status = ARTICLE_STATUS_PUBLISHED if published else ARTICLE_STATUS_DRAFT

    def build(slug: str) -> Article:
        return Article(
            title=title,
            content=content,
            content_format=content_format,
            slug=slug,
            channel_id=channel_id,
            user_id=user_id,
            status=status,
            location_id=location_id,
            location_name=location_name,
            location_lat=location_lat,
            location_lng=location_lng,
            view_count=0,
            published_at=now if published else None,
            created_at=now,
            updated_at=now,
        )

    article = await insert_with_unique_slug(db, Article, article_base_slug(title, now), build)

    for index, category_id in enumerate(category_ids):
        db.add(ArticleCategory(article_id=article.id, category_id=category_id, is_primary=index == 0))

    for index, image in enumerate(images):
        db.add(ArticleImage(
            article_id=article.id,
            image_url=image["url"],
            caption=image.get("caption"),
            order=index,
        ))

    await db.commit()
    await db.refresh(article)

    logger.info("Article %s (%s) created in channel %s by user %s", article.id, article.slug, channel_id, user_id)
    return article


async def get_article(db: AsyncSession, id_or_slug: str) -> Article:
    article = await resolve_by_id_or_slug(db, Article, id_or_slug)
    if not article:
        raise NotFound("文章不存在")
    return article


async def get_owned_article(db: AsyncSession, article_id: int, user_id: int) -> Article:
    """获取文章并校验作者身份"""
    article = await db.get(Article, article_id)
    if not article:
        raise NotFound("文章不存在")
    if article.user_id != user_id:
        raise Forbidden("无权操作此文章")
    return article


async def update_article(db: AsyncSession, article_id: int, user_id: int, updates: Dict[str, Any]) -> Article:
    """
    作者编辑文章（标题、正文、分类、地区），发布状态只能通过toggle_status切换
    """
    article = await get_owned_article(db, article_id, user_id)

    if updates.get("title") is not None:
        title = updates["title"].strip()
        if not title:
            raise InvalidInput("标题不能为空")
        article.title = title
    if updates.get("content") is not None:
        article.content = updates["content"]
    if updates.get("location_id") is not None:
        location = await db.get(Location, updates["location_id"])
        if not location:
            raise NotFound("地区不存在")
        article.location_id = location.id
        article.location_name = location.name
    if updates.get("category_ids") is not None:
        category_ids = list(updates["category_ids"])
        await _validate_categories(db, category_ids)
        await db.execute(delete(ArticleCategory).where(ArticleCategory.article_id == article_id))
        for index, category_id in enumerate(category_ids):
            db.add(ArticleCategory(article_id=article_id, category_id=category_id, is_primary=index == 0))

    article.updated_at = utcnow()
    await db.commit()
    await db.refresh(article)
    return article


async def delete_article(db: AsyncSession, article_id: int, user_id: int):
    """删除文章及其关联数据"""
    await get_owned_article(db, article_id, user_id)

    for model in (ArticleView, Reaction, Comment, ArticleCategory, ArticleImage):
        await db.execute(delete(model).where(model.article_id == article_id))
    await db.execute(delete(Article).where(Article.id == article_id))
    await db.commit()

    logger.info("Article %s deleted by user %s", article_id, user_id)


async def toggle_status(db: AsyncSession, article_id: int, user_id: int) -> Article:
    """
    在草稿与发布之间切换，只有作者可以操作
    """
    article = await get_owned_article(db, article_id, user_id)

    if article.status == ARTICLE_STATUS_PUBLISHED:
        article.status = ARTICLE_STATUS_DRAFT
    else:
        article.status = ARTICLE_STATUS_PUBLISHED
        article.published_at = utcnow()
    article.updated_at = utcnow()

    await db.commit()
    await db.refresh(article)

    logger.info("Article %s status -> %s", article_id, article.status)
    return article


async def list_published(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    channel_id: Optional[int] = None,
    category_id: Optional[int] = None,
):
    """
    分页查询已发布文章

    Returns:
        (文章列表, 总数)
    """
    conditions = [Article.status == ARTICLE_STATUS_PUBLISHED]
    if channel_id is not None:
        conditions.append(Article.channel_id == channel_id)
    if category_id is not None:
        conditions.append(
            Article.id.in_(
                select(ArticleCategory.article_id).where(ArticleCategory.category_id == category_id)
            )
        )

    count_result = await db.execute(select(func.count(Article.id)).where(*conditions))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Article)
        .where(*conditions)
        .order_by(Article.created_at.desc(), Article.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def comment_counts(db: AsyncSession, article_ids: Sequence[int]) -> Dict[int, int]:
    if not article_ids:
        return {}
    result = await db.execute(
        select(Comment.article_id, func.count(Comment.id))
        .where(Comment.article_id.in_(list(article_ids)))
        .group_by(Comment.article_id)
    )
    return {row[0]: row[1] for row in result.all()}


async def get_article_categories(db: AsyncSession, article_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Category.id, Category.name, ArticleCategory.is_primary)
        .join(ArticleCategory, ArticleCategory.category_id == Category.id)
        .where(ArticleCategory.article_id == article_id)
        .order_by(ArticleCategory.is_primary.desc(), ArticleCategory.id)
    )
    return [{"id": row[0], "name": row[1], "isPrimary": row[2]} for row in result.all()]


async def get_article_images(db: AsyncSession, article_id: int) -> List[ArticleImage]:
    result = await db.execute(
        select(ArticleImage)
        .where(ArticleImage.article_id == article_id)
        .order_by(ArticleImage.order)
    )
    return list(result.scalars().all())


async def add_comment(db: AsyncSession, article_id: int, user_id: int, content: str) -> Comment:
    exists = await db.execute(select(Article.id).where(Article.id == article_id))
    if exists.scalar_one_or_none() is None:
        raise NotFound("文章不存在")

    content = (content or "").strip()
    if not content:
        raise InvalidInput("评论内容不能为空")

    comment = Comment(article_id=article_id, user_id=user_id, content=content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment


async def list_comments(db: AsyncSession, article_id: int) -> List[Comment]:
    exists = await db.execute(select(Article.id).where(Article.id == article_id))
    if exists.scalar_one_or_none() is None:
        raise NotFound("文章不存在")

    result = await db.execute(
        select(Comment)
        .where(Comment.article_id == article_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    return list(result.scalars().all())
