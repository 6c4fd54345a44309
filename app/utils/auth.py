"""
认证工具函数
"""
import logging
from datetime import timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi import Cookie, Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import Unauthorized, Forbidden
from app.db.database import get_db, utcnow
from app.models.user import User, AdminUser
from app.services import api_key_service

logger = logging.getLogger(__name__)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    创建JWT访问token

    Args:
        data: 要编码到token中的数据，用户ID放在sub中
        expires_delta: token过期时间增量，默认使用配置中的时间

    Returns:
        str: JWT token字符串
    """
    to_encode = data.copy()

    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def verify_token(token: str, raise_on_error: bool = True) -> Optional[Dict[str, Any]]:
    """
    验证JWT token

    Args:
        token: JWT token字符串
        raise_on_error: 验证失败时是否抛出异常，False时返回None

    Returns:
        Dict: token中的payload数据，验证失败时返回None（如果raise_on_error=False）

    Raises:
        Unauthorized: token无效或过期（如果raise_on_error=True）
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        if raise_on_error:
            raise Unauthorized("Token无效或已过期")
        return None


def _extract_token(authorization: Optional[str], session_token: Optional[str]) -> Optional[str]:
    """优先从Authorization头获取Bearer token，其次是会话cookie"""
    if authorization:
        parts = authorization.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise Unauthorized("认证格式错误，应为: Bearer {token}")
        return parts[1]
    return session_token or None


async def _resolve_user_id(db: AsyncSession, token: str, raise_on_error: bool) -> Optional[int]:
    payload = verify_token(token, raise_on_error=raise_on_error)
    if not payload:
        return None

    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        if raise_on_error:
            raise Unauthorized("Token中未找到用户ID")
        return None

    result = await db.execute(
        select(User.id).where(User.id == user_id, User.is_active == True)
    )
    if result.scalar_one_or_none() is None:
        if raise_on_error:
            raise Unauthorized("用户不存在")
        return None
    return user_id


async def get_current_user_id(
    authorization: Optional[str] = Header(None),
    session_token: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
) -> int:
    """
    从请求头或cookie获取当前用户ID（通过JWT token），未认证时返回401

    Returns:
        int: 用户ID
    """
    token = _extract_token(authorization, session_token)
    if not token:
        raise Unauthorized("未提供认证信息")
    return await _resolve_user_id(db, token, raise_on_error=True)


async def get_optional_user_id(
    authorization: Optional[str] = Header(None),
    session_token: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
) -> Optional[int]:
    """
    获取可选的当前用户ID，token缺失或无效时按匿名用户处理
    """
    try:
        token = _extract_token(authorization, session_token)
    except Unauthorized:
        return None
    if not token:
        return None
    return await _resolve_user_id(db, token, raise_on_error=False)


def get_client_identifier(request: Request, user_id: Optional[int]) -> str:
    """
    生成浏览去重用的客户端标识：登录用户优先，否则使用IP
    """
    if user_id is not None:
        return f"user-{user_id}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    elif request.client:
        client_ip = request.client.host
    else:
        client_ip = ""
    return f"ip-{client_ip or 'unknown'}"


async def is_admin_user(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        select(AdminUser.user_id).where(AdminUser.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def require_admin(
    current_user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> int:
    """
    管理员权限依赖，返回管理员用户ID
    """
    if not await is_admin_user(db, current_user_id):
        logger.warning("Non-admin user %s attempted admin access", current_user_id)
        raise Forbidden("需要管理员权限")
    return current_user_id


async def get_api_user_id(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    session_user_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
) -> int:
    """
    内容API认证：优先使用X-API-Key，其次回退到会话认证
    """
    if x_api_key:
        return await api_key_service.authenticate_api_key(db, x_api_key)
    if session_user_id is not None:
        return session_user_id
    raise Unauthorized("需要认证")
