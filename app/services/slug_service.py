"""
slug生成与冲突处理
"""
import logging
import re
from datetime import datetime
from typing import Any, Callable, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import Conflict

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = None) -> str:
    """转换为URL友好的slug：小写，非字母数字替换为-，去掉首尾-"""
    slug = _NON_ALNUM.sub("-", (text or "").lower()).strip("-")
    if max_length:
        slug = slug[:max_length].rstrip("-")
    return slug


def article_base_slug(title: str, now: datetime) -> str:
    """文章slug带日期前缀：YYYY-MM-DD-标题"""
    base = slugify(title, settings.SLUG_MAX_LENGTH)
    date_str = now.strftime("%Y-%m-%d")
    return f"{date_str}-{base}" if base else date_str


def slug_candidate(base: str, attempt: int) -> str:
    """第attempt次尝试对应的slug：base, base-2, base-3 ..."""
    return base if attempt == 0 else f"{base}-{attempt + 1}"


async def slug_taken(db: AsyncSession, model, candidate: str) -> bool:
    result = await db.execute(
        select(model.id).where(model.slug == candidate).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def generate_unique_slug(db: AsyncSession, model, base: str, start: int = 0) -> Tuple[str, int]:
    """
    从第start次尝试开始依次检查 base, base-2, base-3 ... 直到找到未占用的slug

    Returns:
        (slug, 尝试序号)

    Raises:
        Conflict: 超过最大尝试次数
    """
    for attempt in range(start, settings.SLUG_MAX_ATTEMPTS):
        candidate = slug_candidate(base, attempt)
        if not await slug_taken(db, model, candidate):
            return candidate, attempt

    raise Conflict(f"无法为 '{base}' 生成唯一的slug")


async def insert_with_unique_slug(db: AsyncSession, model, base: str, build: Callable[[str], Any]):
    """
    生成slug并插入记录

    检查与插入之间slug可能被并发请求占用，此时唯一约束报错，
    回滚后从下一个后缀继续，直到成功或超过最大尝试次数

    Args:
        build: 接收slug、返回待插入对象的函数

    Returns:
        已flush（尚未commit）的对象
    """
    attempt = 0
    while True:
        slug, attempt = await generate_unique_slug(db, model, base, start=attempt)
        obj = build(slug)
        db.add(obj)
        try:
            await db.flush()
            return obj
        except IntegrityError:
            await db.rollback()
            logger.info("Slug %s taken by a concurrent insert, retrying", slug)
            attempt += 1


_TRAILING_ID = re.compile(r"-(\d+)$")


async def resolve_by_id_or_slug(db: AsyncSession, model, value: str):
    """
    按ID或slug查找记录

    纯数字按ID查找；否则按slug查找；slug未命中时尝试解析末尾的 -<id>
    """
    value = (value or "").strip()
    if value.isdigit():
        return await db.get(model, int(value))

    result = await db.execute(select(model).where(model.slug == value))
    row = result.scalar_one_or_none()
    if row is not None:
        return row

    match = _TRAILING_ID.search(value)
    if match:
        return await db.get(model, int(match.group(1)))
    return None
