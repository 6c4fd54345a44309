"""
内容API与API Key的Schema模型
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

from app.core.config import settings


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Key名称")
    expiresInDays: Optional[int] = Field(None, ge=1, le=3650, description="有效天数，不填则永久有效")


class ApiKeyCreatedResponse(BaseModel):
    """创建成功时返回原始key，仅此一次"""
    id: str
    key: str
    prefix: str
    name: str
    createdAt: datetime
    expiresAt: Optional[datetime] = None


class ApiKeyResponse(BaseModel):
    id: str
    prefix: str
    name: str
    createdAt: datetime
    lastUsedAt: Optional[datetime] = None
    expiresAt: Optional[datetime] = None
    isRevoked: bool


class ContentImage(BaseModel):
    url: str = Field(..., min_length=1)
    caption: Optional[str] = None


class ContentArticleCreate(BaseModel):
    """内容API创建文章请求模型"""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    contentFormat: Literal["markdown", "html"] = "markdown"
    channelId: int
    categoryIds: List[int] = Field(default_factory=list)
    location: Optional[str] = Field(None, max_length=200)
    locationLat: Optional[float] = Field(None, ge=-90, le=90)
    locationLng: Optional[float] = Field(None, ge=-180, le=180)
    published: bool = True
    images: List[ContentImage] = Field(default_factory=list)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, value: str):
        if not value.strip():
            raise ValueError("不能为空")
        return value

    @field_validator("categoryIds")
    @classmethod
    def max_categories(cls, value: List[int]):
        if len(value) > settings.MAX_ARTICLE_CATEGORIES:
            raise ValueError(f"最多{settings.MAX_ARTICLE_CATEGORIES}个分类")
        return value

    @field_validator("images")
    @classmethod
    def max_images(cls, value: List[ContentImage]):
        if len(value) > settings.MAX_ARTICLE_IMAGES:
            raise ValueError(f"最多{settings.MAX_ARTICLE_IMAGES}张图片")
        return value


class ContentArticleBatch(BaseModel):
    """批量创建，单项校验在处理时进行，失败项不影响其他项"""
    articles: List[Dict[str, Any]] = Field(..., min_length=1)

    @field_validator("articles")
    @classmethod
    def max_batch(cls, value: List[Dict[str, Any]]):
        if len(value) > settings.MAX_BATCH_ARTICLES:
            raise ValueError(f"每批最多{settings.MAX_BATCH_ARTICLES}篇文章")
        return value


class ContentArticleResult(BaseModel):
    id: int
    title: str
    slug: Optional[str] = None
    channelId: int
    status: str
    createdAt: datetime
    url: str
    images: List[Dict[str, Any]] = []
    categories: List[int] = []


class BatchFailure(BaseModel):
    index: int
    title: str
    error: Any
