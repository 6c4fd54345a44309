"""
文章浏览计数

每个客户端标识对每篇文章只计一次浏览，浏览记录与计数自增在同一事务内提交
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, PersistenceError
from app.models.article import Article
from app.models.engagement import ArticleView

logger = logging.getLogger(__name__)


@dataclass
class ViewResult:
    counted: bool
    view_count: int


async def _find_view(db: AsyncSession, article_id: int, client_identifier: str) -> Optional[int]:
    result = await db.execute(
        select(ArticleView.id).where(
            ArticleView.article_id == article_id,
            ArticleView.client_identifier == client_identifier,
        )
    )
    return result.scalar_one_or_none()


async def _stored_view_count(db: AsyncSession, article_id: int) -> int:
    result = await db.execute(
        select(Article.view_count).where(Article.id == article_id)
    )
    return result.scalar_one_or_none() or 0


async def record_view(
    db: AsyncSession,
    article_id: int,
    client_identifier: str,
    user_id: Optional[int] = None,
) -> ViewResult:
    """
    记录一次浏览

    已有浏览记录时直接返回当前计数；否则写入浏览记录并在当前存储值（可能是管理员设置的值）上+1。
    并发首次浏览时由唯一约束判定胜负，失败方按"已计数"返回。

    Args:
        db: 数据库会话
        article_id: 文章ID
        client_identifier: 客户端标识（user-<id> 或 ip-<addr>）
        user_id: 登录用户ID，可为空

    Returns:
        ViewResult: 是否计数以及最新浏览数

    Raises:
        NotFound: 文章不存在
        PersistenceError: 写入失败（不会留下部分状态）
    """
    exists = await db.execute(select(Article.id).where(Article.id == article_id))
    if exists.scalar_one_or_none() is None:
        raise NotFound("文章不存在")

    if await _find_view(db, article_id, client_identifier) is not None:
        return ViewResult(counted=False, view_count=await _stored_view_count(db, article_id))

    try:
        db.add(ArticleView(
            article_id=article_id,
            user_id=user_id,
            client_identifier=client_identifier,
        ))
        await db.flush()
        await db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(view_count=Article.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(
            "Concurrent first view resolved by constraint: article=%s client=%s",
            article_id, client_identifier,
        )
        return ViewResult(counted=False, view_count=await _stored_view_count(db, article_id))
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to record view for article %s", article_id)
        raise PersistenceError("浏览记录失败") from exc

    view_count = await _stored_view_count(db, article_id)
    logger.info("View counted: article=%s client=%s count=%s", article_id, client_identifier, view_count)
    return ViewResult(counted=True, view_count=view_count)


async def set_view_count(db: AsyncSession, article_id: int, view_count: int) -> Article:
    """
    管理员直接设置浏览数，之后的自然浏览在该值基础上递增
    """
    article = await db.get(Article, article_id)
    if not article:
        raise NotFound(f"文章 {article_id} 不存在")

    article.view_count = view_count
    await db.commit()
    await db.refresh(article)

    logger.info("Admin set view_count of article %s to %s", article_id, view_count)
    return article
