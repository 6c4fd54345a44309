"""
频道与订阅模型
"""
from sqlalchemy import Column, BigInteger, Integer, String, Text, TIMESTAMP, ForeignKey, UniqueConstraint, func
from app.db.database import Base, IdType, utcnow


class Channel(Base):
    __tablename__ = "channels"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('users.id'), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(160), unique=True, nullable=True)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=True)
    location = Column(String(200), nullable=True)
    profile_image = Column(String, nullable=True)
    banner_image = Column(String, nullable=True)
    # 运营设置的订阅数偏移量，与真实订阅数相加得到展示值
    admin_subscriber_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "channel_id", name="uq_subscriptions_user_channel"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('users.id', ondelete="CASCADE"), nullable=False)
    channel_id = Column(BigInteger, ForeignKey('channels.id', ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
