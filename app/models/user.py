"""
用户模型
"""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, TIMESTAMP, ForeignKey, func
from app.db.database import Base, IdType, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    description = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class AdminUser(Base):
    """管理员白名单"""
    __tablename__ = "admin_users"

    user_id = Column(BigInteger, ForeignKey('users.id', ondelete="CASCADE"), primary_key=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class ApiAccessUser(Base):
    """允许生成API Key的用户（管理员默认拥有）"""
    __tablename__ = "api_access_users"

    user_id = Column(BigInteger, ForeignKey('users.id', ondelete="CASCADE"), primary_key=True)
    granted_by = Column(BigInteger, ForeignKey('users.id'), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
