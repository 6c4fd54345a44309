"""
内容API（API Key或会话认证），供外部工具发布文章
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError, Forbidden
from app.db.database import get_db
from app.models.article import Article
from app.models.channel import Channel
from app.schemas.common import ResponseModel
from app.schemas.content import (
    ContentArticleCreate, ContentArticleBatch, ContentArticleResult, BatchFailure,
)
from app.services import article_service, category_service, channel_service
from app.api.channels import build_channel_responses
from app.utils.auth import get_api_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/content", tags=["内容API"])


async def _create_from_payload(db: AsyncSession, user_id: int, payload: ContentArticleCreate) -> Article:
    return await article_service.create_article(
        db,
        user_id=user_id,
        title=payload.title,
        content=payload.content,
        channel_id=payload.channelId,
        content_format=payload.contentFormat,
        category_ids=payload.categoryIds,
        location_name=payload.location,
        location_lat=payload.locationLat,
        location_lng=payload.locationLng,
        published=payload.published,
        images=[image.model_dump() for image in payload.images],
        check_duplicate=True,
    )


async def _article_result(db: AsyncSession, article: Article) -> ContentArticleResult:
    images = await article_service.get_article_images(db, article.id)
    categories = await article_service.get_article_categories(db, article.id)
    return ContentArticleResult(
        id=article.id,
        title=article.title,
        slug=article.slug,
        channelId=article.channel_id,
        status=article.status,
        createdAt=article.created_at,
        url=f"/articles/{article.slug or article.id}",
        images=[{"url": img.image_url, "caption": img.caption, "order": img.order} for img in images],
        categories=[c["id"] for c in categories],
    )


@router.post("/articles", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_content_article(
    payload: ContentArticleCreate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_api_user_id),
):
    """
    创建文章

    同一频道24小时内出现相同标题时返回409，并附带已存在文章的ID
    """
    article = await _create_from_payload(db, user_id, payload)
    logger.info("Content API: article %s created by user %s", article.id, user_id)
    return ResponseModel(code=201, message="文章创建成功", data=await _article_result(db, article))


@router.post("/articles/batch", response_model=ResponseModel)
async def create_content_articles_batch(
    batch: ContentArticleBatch,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_api_user_id),
):
    """
    批量创建文章（1~10篇）

    每篇单独校验和创建，失败项记录在failed中，不影响其他文章
    """
    created = []
    failed = []

    for index, item in enumerate(batch.articles):
        title = str(item.get("title", ""))
        try:
            payload = ContentArticleCreate.model_validate(item)
            article = await _create_from_payload(db, user_id, payload)
            created.append((await _article_result(db, article)).model_dump())
        except ValidationError as exc:
            failed.append(BatchFailure(
                index=index,
                title=title,
                error=exc.errors(include_url=False, include_context=False),
            ).model_dump())
        except AppError as exc:
            failed.append(BatchFailure(index=index, title=title, error=exc.detail).model_dump())
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Content API batch item %s (%r) failed to store", index, title)
            failed.append(BatchFailure(index=index, title=title, error="服务器内部错误").model_dump())

    logger.info(
        "Content API batch by user %s: %s created, %s failed",
        user_id, len(created), len(failed),
    )

    summary: Dict[str, Any] = {
        "total": len(batch.articles),
        "created": len(created),
        "failed": len(failed),
    }
    return ResponseModel(
        code=200,
        message=f"成功创建{len(created)}篇，失败{len(failed)}篇",
        data={"created": created, "failed": failed, "summary": summary},
    )


@router.get("/articles/{id_or_slug}", response_model=ResponseModel)
async def get_content_article(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_api_user_id),
):
    """
    获取自己的文章
    """
    article = await article_service.get_article(db, id_or_slug)
    if article.user_id != user_id:
        raise Forbidden("只能查看自己的文章")

    channel = await db.get(Channel, article.channel_id)
    result = await _article_result(db, article)
    data = result.model_dump()
    data.update({
        "content": article.content,
        "contentFormat": article.content_format,
        "channelName": channel.name if channel else None,
        "viewCount": article.view_count or 0,
        "locationName": article.location_name,
        "locationLat": article.location_lat,
        "locationLng": article.location_lng,
    })
    return ResponseModel(code=200, message="获取成功", data=data)


@router.get("/channels", response_model=ResponseModel)
async def list_content_channels(
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_api_user_id),
):
    channels = await channel_service.list_channels(db, user_id=user_id)
    data = await build_channel_responses(db, channels)
    return ResponseModel(code=200, message="获取成功", data=data)


@router.get("/categories", response_model=ResponseModel)
async def list_content_categories(db: AsyncSession = Depends(get_db)):
    tree = await category_service.get_category_tree(db)
    return ResponseModel(code=200, message="获取成功", data=tree)
