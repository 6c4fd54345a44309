"""
API Key服务：生成、哈希、认证、吊销
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import Unauthorized, NotFound, Forbidden, InvalidInput
from app.db.database import utcnow
from app.models.api_key import ApiKey

logger = logging.getLogger(__name__)

PREFIX_HEX_CHARS = 8


def generate_api_key() -> Tuple[str, str, str]:
    """
    生成新的API Key

    格式为 nk_ + 64位十六进制字符（32字节随机数）

    Returns:
        (原始key, 哈希值, 展示用前缀)
    """
    key = f"{settings.API_KEY_PREFIX}{secrets.token_hex(32)}"
    prefix = key[:len(settings.API_KEY_PREFIX) + PREFIX_HEX_CHARS]
    return key, hash_api_key(key), prefix


def hash_api_key(key: str) -> str:
    """带盐哈希，用于存储和查找"""
    return hmac.new(
        settings.API_KEY_SECRET.encode("utf-8"),
        key.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def create_api_key(
    db: AsyncSession,
    user_id: int,
    name: str,
    expires_in_days: Optional[int] = None,
) -> Tuple[ApiKey, str]:
    """
    为用户创建API Key，原始key只在此处返回一次

    Returns:
        (ApiKey记录, 原始key)
    """
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Key名称不能为空")

    key, key_hash, prefix = generate_api_key()
    expires_at = utcnow() + timedelta(days=expires_in_days) if expires_in_days else None

    api_key = ApiKey(
        key_prefix=prefix,
        key_hash=key_hash,
        user_id=user_id,
        name=name,
        expires_at=expires_at,
    )
    db.add(api_key)
    await db.commit()
    await db.refresh(api_key)

    logger.info("API key %s created for user %s", prefix, user_id)
    return api_key, key


async def list_api_keys(db: AsyncSession, user_id: int) -> List[ApiKey]:
    result = await db.execute(
        select(ApiKey)
        .where(ApiKey.user_id == user_id)
        .order_by(ApiKey.created_at.desc())
    )
    return list(result.scalars().all())


async def revoke_api_key(db: AsyncSession, key_id: str, user_id: int) -> ApiKey:
    """吊销API Key，重复吊销不报错"""
    api_key = await db.get(ApiKey, key_id)
    if not api_key:
        raise NotFound("API Key不存在")
    if api_key.user_id != user_id:
        raise Forbidden("无权吊销此API Key")

    if not api_key.is_revoked:
        api_key.is_revoked = True
        await db.commit()
        logger.info("API key %s revoked by user %s", api_key.key_prefix, user_id)
    return api_key


async def authenticate_api_key(db: AsyncSession, raw_key: str) -> int:
    """
    通过X-API-Key认证，返回绑定的用户ID

    Raises:
        Unauthorized: 格式错误、不存在、已吊销或已过期
    """
    if not raw_key or not raw_key.startswith(settings.API_KEY_PREFIX):
        raise Unauthorized("API Key格式错误")

    result = await db.execute(
        select(ApiKey).where(ApiKey.key_hash == hash_api_key(raw_key))
    )
    api_key = result.scalar_one_or_none()

    if not api_key:
        raise Unauthorized("API Key无效")
    if api_key.is_revoked:
        raise Unauthorized("API Key已被吊销")
    if api_key.expires_at and _as_utc(api_key.expires_at) < utcnow():
        raise Unauthorized("API Key已过期")

    await db.execute(
        update(ApiKey).where(ApiKey.id == api_key.id).values(last_used_at=utcnow())
    )
    await db.commit()

    return api_key.user_id
