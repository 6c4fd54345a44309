"""
业务异常定义

所有异常均继承自HTTPException，服务层可直接抛出，由FastAPI统一渲染为 {"detail": ...}
"""
from typing import Any, Optional, Dict
from fastapi import HTTPException, status


class AppError(HTTPException):
    """业务异常基类"""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "服务器内部错误"

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=self.http_status,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )


class Unauthorized(AppError):
    http_status = status.HTTP_401_UNAUTHORIZED
    default_detail = "未提供有效的认证信息"

    def __init__(self, detail: Any = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    default_detail = "无权执行此操作"


class NotFound(AppError):
    http_status = status.HTTP_404_NOT_FOUND
    default_detail = "资源不存在"


class Conflict(AppError):
    http_status = status.HTTP_409_CONFLICT
    default_detail = "资源冲突"

    def __init__(self, detail: Any = None, existing_id: Optional[int] = None):
        self.existing_id = existing_id
        if existing_id is not None:
            detail = {
                "message": detail or self.default_detail,
                "existingArticleId": existing_id,
            }
        super().__init__(detail)


class InvalidInput(AppError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_detail = "请求参数错误"


class PersistenceError(AppError):
    """下游存储失败，对外只返回通用错误信息"""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "服务器内部错误"
