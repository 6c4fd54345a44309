"""
点赞/点踩切换

状态机（每个文章-用户对）：
    无反应 + 提交X      -> X（新增记录）
    已赞   + 再次点赞   -> 无反应（删除记录）
    已赞   + 点踩       -> 已踩（原地更新）
    已踩与已赞对称
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select, update, delete, func, case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, PersistenceError
from app.models.article import Article
from app.models.engagement import Reaction

logger = logging.getLogger(__name__)


@dataclass
class ReactionResult:
    likes: int
    dislikes: int
    user_reaction: Optional[bool]
    removed: bool = False


async def count_reactions(db: AsyncSession, article_id: int) -> Tuple[int, int]:
    """按当前记录统计点赞数和点踩数"""
    result = await db.execute(
        select(
            func.count(case((Reaction.is_like == True, 1))),
            func.count(case((Reaction.is_like == False, 1))),
        ).where(Reaction.article_id == article_id)
    )
    likes, dislikes = result.one()
    return likes or 0, dislikes or 0


async def count_reactions_for(db: AsyncSession, article_ids: Iterable[int]) -> Dict[int, Tuple[int, int]]:
    """批量统计，用于列表页"""
    ids = list(article_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(
            Reaction.article_id,
            func.count(case((Reaction.is_like == True, 1))),
            func.count(case((Reaction.is_like == False, 1))),
        )
        .where(Reaction.article_id.in_(ids))
        .group_by(Reaction.article_id)
    )
    return {row[0]: (row[1], row[2]) for row in result.all()}


async def get_user_reaction(db: AsyncSession, article_id: int, user_id: Optional[int]) -> Optional[bool]:
    if user_id is None:
        return None
    result = await db.execute(
        select(Reaction.is_like).where(
            Reaction.article_id == article_id,
            Reaction.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_user_reactions_for(
    db: AsyncSession, article_ids: Iterable[int], user_id: Optional[int]
) -> Dict[int, bool]:
    ids = list(article_ids)
    if user_id is None or not ids:
        return {}
    result = await db.execute(
        select(Reaction.article_id, Reaction.is_like).where(
            Reaction.article_id.in_(ids),
            Reaction.user_id == user_id,
        )
    )
    return {row[0]: row[1] for row in result.all()}


async def get_reaction_summary(db: AsyncSession, article_id: int, user_id: Optional[int] = None) -> ReactionResult:
    """
    查询文章的点赞/点踩统计及当前用户的反应
    """
    exists = await db.execute(select(Article.id).where(Article.id == article_id))
    if exists.scalar_one_or_none() is None:
        raise NotFound("文章不存在")

    likes, dislikes = await count_reactions(db, article_id)
    user_reaction = await get_user_reaction(db, article_id, user_id)
    return ReactionResult(likes=likes, dislikes=dislikes, user_reaction=user_reaction)


async def _find_reaction(db: AsyncSession, article_id: int, user_id: int):
    result = await db.execute(
        select(Reaction.id, Reaction.is_like).where(
            Reaction.article_id == article_id,
            Reaction.user_id == user_id,
        )
    )
    return result.one_or_none()


async def set_reaction(db: AsyncSession, article_id: int, user_id: int, is_like: bool) -> ReactionResult:
    """
    提交一次点赞/点踩，按状态机切换

    Args:
        db: 数据库会话
        article_id: 文章ID
        user_id: 当前用户ID（调用前已完成认证）
        is_like: True为点赞，False为点踩

    Returns:
        ReactionResult: 重新统计后的点赞/点踩数、用户当前反应、是否为取消操作

    Raises:
        NotFound: 文章不存在
        PersistenceError: 写入失败
    """
    exists = await db.execute(select(Article.id).where(Article.id == article_id))
    if exists.scalar_one_or_none() is None:
        raise NotFound("文章不存在")

    existing = await _find_reaction(db, article_id, user_id)

    removed = False
    try:
        if existing is None:
            db.add(Reaction(article_id=article_id, user_id=user_id, is_like=is_like))
            await db.flush()
            transition = "none -> %s" % ("liked" if is_like else "disliked")
        elif existing.is_like == is_like:
            await db.execute(delete(Reaction).where(Reaction.id == existing.id))
            removed = True
            transition = "%s -> none" % ("liked" if is_like else "disliked")
        else:
            await db.execute(
                update(Reaction).where(Reaction.id == existing.id).values(is_like=is_like)
            )
            transition = "%s -> %s" % (
                "liked" if existing.is_like else "disliked",
                "liked" if is_like else "disliked",
            )
        await db.commit()
    except IntegrityError:
        # 并发的首次反应已由另一请求写入，以其结果为准
        await db.rollback()
        transition = "converged after concurrent insert"
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to set reaction for article %s user %s", article_id, user_id)
        raise PersistenceError("点赞操作失败") from exc

    logger.info("Reaction article=%s user=%s: %s", article_id, user_id, transition)

    likes, dislikes = await count_reactions(db, article_id)
    user_reaction = await get_user_reaction(db, article_id, user_id)
    return ReactionResult(likes=likes, dislikes=dislikes, user_reaction=user_reaction, removed=removed)
