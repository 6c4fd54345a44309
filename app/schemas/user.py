"""
用户Schema模型
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserResponse(BaseModel):
    id: int
    username: str
    description: Optional[str] = None
    avatarUrl: Optional[str] = None
    createdAt: datetime


class UserUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=2000)


class AdminStatusResponse(BaseModel):
    isAdmin: bool
    hasApiAccess: bool


class ApiAccessGrantCreate(BaseModel):
    username: str = Field(..., min_length=1)


class ApiAccessGrantResponse(BaseModel):
    userId: int
    username: str
    grantedBy: Optional[int] = None
    grantedAt: Optional[datetime] = None
