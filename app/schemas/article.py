"""
文章Schema模型
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


class ArticleCreate(BaseModel):
    """创建文章请求模型"""
    title: str = Field(..., min_length=1, max_length=255, description="文章标题")
    content: str = Field(..., min_length=1, description="文章内容（HTML）")
    channelId: int = Field(..., description="所属频道ID")
    categoryIds: List[int] = Field(default_factory=list, description="分类ID，第一个为主分类")
    locationId: Optional[int] = None
    published: bool = True


class ArticleUpdate(BaseModel):
    """更新文章请求模型"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    categoryIds: Optional[List[int]] = None
    locationId: Optional[int] = None


class ChannelInfo(BaseModel):
    id: int
    name: str
    slug: Optional[str] = None


class AuthorInfo(BaseModel):
    id: int
    username: Optional[str] = None


class ArticleResponse(BaseModel):
    """文章响应模型"""
    id: int
    title: str
    content: str
    contentFormat: str
    slug: Optional[str] = None
    channelId: int
    userId: int
    status: str
    locationId: Optional[int] = None
    locationName: Optional[str] = None
    locationLat: Optional[float] = None
    locationLng: Optional[float] = None
    viewCount: int = 0
    publishedAt: Optional[datetime] = None
    createdAt: datetime
    updatedAt: Optional[datetime] = None


class ArticleListItem(ArticleResponse):
    """文章列表项模型（包含互动统计）"""
    channel: Optional[ChannelInfo] = None
    likes: int = 0
    dislikes: int = 0
    userReaction: Optional[bool] = None
    commentCount: int = 0


class ArticleDetailResponse(ArticleListItem):
    """文章详情响应模型"""
    author: Optional[AuthorInfo] = None
    categories: List[Dict[str, Any]] = []


class CommentCreate(BaseModel):
    content: str = Field(..., description="评论内容")


class CommentResponse(BaseModel):
    id: int
    articleId: int
    content: str
    createdAt: datetime
    user: Optional[AuthorInfo] = None


class AdminArticleResponse(BaseModel):
    id: int
    title: str
    createdAt: datetime
    viewCount: int
    channelName: Optional[str] = None
