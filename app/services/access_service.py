"""
管理员与API访问授权
"""
import logging
from typing import List, Tuple

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, Conflict, InvalidInput
from app.models.user import User, AdminUser, ApiAccessUser

logger = logging.getLogger(__name__)


async def has_api_access(db: AsyncSession, user_id: int) -> bool:
    """管理员或被授权的用户可以生成API Key"""
    admin = await db.execute(select(AdminUser.user_id).where(AdminUser.user_id == user_id))
    if admin.scalar_one_or_none() is not None:
        return True
    grant = await db.execute(select(ApiAccessUser.user_id).where(ApiAccessUser.user_id == user_id))
    return grant.scalar_one_or_none() is not None


async def list_grants(db: AsyncSession) -> List[Tuple[ApiAccessUser, User]]:
    result = await db.execute(
        select(ApiAccessUser, User)
        .join(User, User.id == ApiAccessUser.user_id)
        .order_by(ApiAccessUser.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def grant_access(db: AsyncSession, username: str, granted_by: int) -> Tuple[ApiAccessUser, User]:
    username = (username or "").strip()
    if not username:
        raise InvalidInput("用户名不能为空")

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("用户不存在")

    if await db.get(ApiAccessUser, user.id):
        raise Conflict("该用户已拥有API访问权限")

    grant = ApiAccessUser(user_id=user.id, granted_by=granted_by)
    db.add(grant)
    await db.commit()
    await db.refresh(grant)

    logger.info("API access granted to user %s by %s", user.id, granted_by)
    return grant, user


async def revoke_access(db: AsyncSession, user_id: int):
    await db.execute(delete(ApiAccessUser).where(ApiAccessUser.user_id == user_id))
    await db.commit()
    logger.info("API access revoked for user %s", user_id)


async def search_users(db: AsyncSession, query: str, limit: int = 10) -> List[User]:
    query = (query or "").strip()
    if not query:
        return []
    result = await db.execute(
        select(User).where(User.username.ilike(f"%{query}%")).order_by(User.username).limit(limit)
    )
    return list(result.scalars().all())
