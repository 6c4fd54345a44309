"""
频道Schema模型
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime


class ChannelCreate(BaseModel):
    """创建频道请求模型"""
    name: str = Field(..., min_length=1, max_length=120, description="频道名称")
    description: str = Field(..., min_length=1, description="频道简介")
    category: Optional[str] = None
    location: Optional[str] = None
    profileImage: Optional[str] = None
    bannerImage: Optional[str] = None

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, value: str):
        value = value.strip()
        if not value:
            raise ValueError("不能为空")
        return value


class ChannelUpdate(BaseModel):
    """更新频道请求模型"""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    location: Optional[str] = None
    profileImage: Optional[str] = None
    bannerImage: Optional[str] = None

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, value: Optional[str]):
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("不能为空")
        return value


class ChannelResponse(BaseModel):
    """频道响应模型"""
    id: int
    userId: int
    name: str
    slug: Optional[str] = None
    description: str
    category: Optional[str] = None
    location: Optional[str] = None
    profileImage: Optional[str] = None
    bannerImage: Optional[str] = None
    subscriberCount: int = 0
    articleCount: int = 0
    isSubscribed: Optional[bool] = None
    subscriptionDate: Optional[datetime] = None
    createdAt: datetime
    updatedAt: Optional[datetime] = None


class AdminChannelResponse(BaseModel):
    """管理后台频道响应模型"""
    id: int
    name: str
    description: str
    userId: int
    createdAt: datetime
    adminSubscriberCount: int
    realSubscriberCount: int
    subscriberCount: int


class SubscriberInfo(BaseModel):
    id: int
    username: str
