"""
文章API：列表、详情、编辑、发布状态、浏览计数、点赞/点踩、评论
"""
from math import ceil
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.core.exceptions import NotFound
from app.models.article import Article, ARTICLE_STATUS_PUBLISHED
from app.models.channel import Channel
from app.models.user import User
from app.schemas.article import (
    ArticleCreate, ArticleUpdate, ArticleResponse, ArticleListItem, ArticleDetailResponse,
    ChannelInfo, AuthorInfo, CommentCreate, CommentResponse,
)
from app.schemas.common import ResponseModel, PaginationModel
from app.schemas.engagement import ViewResponse, ReactionRequest, ReactionResponse
from app.services import article_service, reaction_service, view_service
from app.utils.auth import get_current_user_id, get_optional_user_id, get_client_identifier

router = APIRouter(prefix="/api", tags=["文章"])


def article_response(article: Article) -> ArticleResponse:
    return ArticleResponse(
        id=article.id,
        title=article.title,
        content=article.content,
        contentFormat=article.content_format,
        slug=article.slug,
        channelId=article.channel_id,
        userId=article.user_id,
        status=article.status,
        locationId=article.location_id,
        locationName=article.location_name,
        locationLat=article.location_lat,
        locationLng=article.location_lng,
        viewCount=article.view_count or 0,
        publishedAt=article.published_at,
        createdAt=article.created_at,
        updatedAt=article.updated_at,
    )


async def build_list_items(
    db: AsyncSession,
    articles: List[Article],
    user_id: Optional[int] = None,
) -> List[ArticleListItem]:
    """批量加载频道、互动统计和评论数，组装列表项"""
    article_ids = [a.id for a in articles]
    channel_ids = {a.channel_id for a in articles}

    channels: Dict[int, Channel] = {}
    if channel_ids:
        result = await db.execute(select(Channel).where(Channel.id.in_(channel_ids)))
        channels = {c.id: c for c in result.scalars().all()}

    reactions = await reaction_service.count_reactions_for(db, article_ids)
    user_reactions = await reaction_service.get_user_reactions_for(db, article_ids, user_id)
    comments = await article_service.comment_counts(db, article_ids)

    items = []
    for article in articles:
        channel = channels.get(article.channel_id)
        likes, dislikes = reactions.get(article.id, (0, 0))
        items.append(ArticleListItem(
            **article_response(article).model_dump(),
            channel=ChannelInfo(id=channel.id, name=channel.name, slug=channel.slug) if channel else None,
            likes=likes,
            dislikes=dislikes,
            userReaction=user_reactions.get(article.id),
            commentCount=comments.get(article.id, 0),
        ))
    return items


@router.get("/articles", response_model=ResponseModel)
async def list_articles(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(20, ge=1, le=100, description="每页数量"),
    channelId: Optional[int] = Query(None, description="频道ID"),
    categoryId: Optional[int] = Query(None, description="分类ID"),
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[int] = Depends(get_optional_user_id),
):
    """
    获取已发布文章列表（按创建时间倒序）
    """
    articles, total = await article_service.list_published(
        db, page=page, limit=limit, channel_id=channelId, category_id=categoryId
    )
    items = await build_list_items(db, articles, current_user_id)

    return ResponseModel(
        code=200,
        message="获取成功",
        data={
            "list": [item.model_dump() for item in items],
            "pagination": PaginationModel(
                page=page,
                limit=limit,
                total=total,
                totalPages=ceil(total / limit) if total > 0 else 0,
            ).model_dump(),
        },
    )


@router.post("/articles", response_model=ResponseModel)
async def create_article(
    article_data: ArticleCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    在自己的频道下创建文章
    """
    article = await article_service.create_article(
        db,
        user_id=current_user_id,
        title=article_data.title,
        content=article_data.content,
        channel_id=article_data.channelId,
        content_format="html",
        category_ids=article_data.categoryIds,
        location_id=article_data.locationId,
        published=article_data.published,
    )
    return ResponseModel(code=200, message="文章创建成功", data=article_response(article))


@router.get("/articles/{id_or_slug}", response_model=ResponseModel)
async def get_article(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[int] = Depends(get_optional_user_id),
):
    """
    获取文章详情，支持ID或slug；草稿只有作者可见
    """
    article = await article_service.get_article(db, id_or_slug)
    if article.status != ARTICLE_STATUS_PUBLISHED and article.user_id != current_user_id:
        raise NotFound("文章不存在")

    item = (await build_list_items(db, [article], current_user_id))[0]
    author = await db.get(User, article.user_id)
    categories = await article_service.get_article_categories(db, article.id)

    detail = ArticleDetailResponse(
        **item.model_dump(),
        author=AuthorInfo(id=author.id, username=author.username) if author else None,
        categories=categories,
    )
    return ResponseModel(code=200, message="获取成功", data=detail)


@router.patch("/articles/{article_id}", response_model=ResponseModel)
async def update_article(
    article_id: int,
    article_data: ArticleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    更新文章（仅作者）
    """
    article = await article_service.update_article(
        db,
        article_id,
        current_user_id,
        {
            "title": article_data.title,
            "content": article_data.content,
            "location_id": article_data.locationId,
            "category_ids": article_data.categoryIds,
        },
    )
    return ResponseModel(code=200, message="文章更新成功", data=article_response(article))


@router.delete("/articles/{article_id}", response_model=ResponseModel)
async def delete_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    await article_service.delete_article(db, article_id, current_user_id)
    return ResponseModel(code=200, message="文章删除成功", data={"id": article_id})


@router.post("/articles/{article_id}/toggle-status", response_model=ResponseModel)
async def toggle_article_status(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    在草稿和已发布之间切换（仅作者）
    """
    article = await article_service.toggle_status(db, article_id, current_user_id)
    message = "文章已发布" if article.status == ARTICLE_STATUS_PUBLISHED else "文章已转为草稿"
    return ResponseModel(code=200, message=message, data=article_response(article))


@router.post("/articles/{article_id}/view", response_model=ResponseModel)
async def record_article_view(
    article_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[int] = Depends(get_optional_user_id),
):
    """
    记录浏览：同一客户端对同一文章只计一次
    """
    client_identifier = get_client_identifier(request, current_user_id)
    result = await view_service.record_view(db, article_id, client_identifier, current_user_id)
    return ResponseModel(
        code=200,
        message="浏览已记录" if result.counted else "已浏览过",
        data=ViewResponse(
            counted=result.counted,
            view_count=result.view_count,
            message="View counted" if result.counted else "Already viewed",
        ),
    )


@router.post("/articles/{article_id}/reactions", response_model=ResponseModel)
async def react_to_article(
    article_id: int,
    reaction_data: ReactionRequest,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    """
    点赞/点踩；重复提交同一反应会取消，提交相反反应会切换

    取消时isLike为被取消的反应
    """
    result = await reaction_service.set_reaction(db, article_id, current_user_id, reaction_data.isLike)
    return ResponseModel(
        code=200,
        message="已取消" if result.removed else "操作成功",
        data=ReactionResponse(
            likes=result.likes,
            dislikes=result.dislikes,
            userReaction=result.user_reaction,
            removed=result.removed,
            isLike=reaction_data.isLike if result.removed else None,
        ),
    )


@router.get("/articles/{article_id}/reactions", response_model=ResponseModel)
async def get_article_reactions(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[int] = Depends(get_optional_user_id),
):
    result = await reaction_service.get_reaction_summary(db, article_id, current_user_id)
    return ResponseModel(
        code=200,
        message="获取成功",
        data=ReactionResponse(
            likes=result.likes,
            dislikes=result.dislikes,
            userReaction=result.user_reaction,
        ),
    )


@router.post("/articles/{article_id}/comments", response_model=ResponseModel)
async def create_comment(
    article_id: int,
    comment_data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    comment = await article_service.add_comment(db, article_id, current_user_id, comment_data.content)
    author = await db.get(User, current_user_id)
    return ResponseModel(
        code=200,
        message="评论成功",
        data=CommentResponse(
            id=comment.id,
            articleId=comment.article_id,
            content=comment.content,
            createdAt=comment.created_at,
            user=AuthorInfo(id=author.id, username=author.username) if author else None,
        ),
    )


@router.get("/articles/{article_id}/comments", response_model=ResponseModel)
async def list_comments(
    article_id: int,
    db: AsyncSession = Depends(get_db),
):
    """
    评论列表（最早的在前）
    """
    comments = await article_service.list_comments(db, article_id)

    user_ids = {c.user_id for c in comments}
    users = {}
    if user_ids:
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        users = {u.id: u for u in result.scalars().all()}

    data = []
    for comment in comments:
        author = users.get(comment.user_id)
        data.append(CommentResponse(
            id=comment.id,
            articleId=comment.article_id,
            content=comment.content,
            createdAt=comment.created_at,
            user=AuthorInfo(id=author.id, username=author.username) if author else None,
        ).model_dump())

    return ResponseModel(code=200, message="获取成功", data=data)
