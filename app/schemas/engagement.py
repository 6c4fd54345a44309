"""
互动Schema：浏览、点赞/点踩、订阅
"""
from pydantic import BaseModel, Field, AliasChoices, field_validator
from typing import Optional, Any


class ViewResponse(BaseModel):
    """浏览计数响应"""
    counted: bool
    view_count: int
    message: str


class ReactionRequest(BaseModel):
    """点赞/点踩请求"""
    isLike: bool = Field(..., description="True为点赞，False为点踩")

    @field_validator("isLike", mode="before")
    @classmethod
    def strict_bool(cls, value: Any):
        if not isinstance(value, bool):
            raise ValueError("isLike必须为布尔值")
        return value


class ReactionResponse(BaseModel):
    """点赞/点踩统计响应"""
    likes: int
    dislikes: int
    userReaction: Optional[bool] = None
    removed: bool = False
    isLike: Optional[bool] = None


class SubscriptionResponse(BaseModel):
    """订阅操作响应"""
    channelId: int
    subscribed: bool
    subscriberCount: int


class SubscriberCountUpdate(BaseModel):
    """运营设置目标订阅数"""
    subscriberCount: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("subscriberCount", "subscriber_count"),
        description="期望展示的订阅总数",
    )

    @field_validator("subscriberCount", mode="before")
    @classmethod
    def strict_int(cls, value: Any):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("subscriber_count必须为整数")
        return value


class ViewCountUpdate(BaseModel):
    """管理员设置浏览数"""
    viewCount: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("viewCount", "view_count"),
    )

    @field_validator("viewCount", mode="before")
    @classmethod
    def strict_int(cls, value: Any):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("view_count必须为整数")
        return value
