"""
文章模型
"""
from sqlalchemy import (
    Column, BigInteger, Integer, String, Text, Boolean, Float, TIMESTAMP, ForeignKey, UniqueConstraint, func
)
from app.db.database import Base, IdType, utcnow

ARTICLE_STATUS_DRAFT = "draft"
ARTICLE_STATUS_PUBLISHED = "published"


class Article(Base):
    __tablename__ = "articles"

    id = Column(IdType, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    content_format = Column(String(16), nullable=False, default="html")  # markdown | html
    slug = Column(String(200), unique=True, nullable=True)
    channel_id = Column(BigInteger, ForeignKey('channels.id'), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey('users.id'), nullable=False)
    status = Column(String(16), nullable=False, default=ARTICLE_STATUS_PUBLISHED)  # draft | published
    location_id = Column(BigInteger, ForeignKey('locations.id'), nullable=True)
    location_name = Column(String(200), nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    view_count = Column(Integer, nullable=False, default=0, server_default="0")
    published_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)


class ArticleCategory(Base):
    __tablename__ = "article_categories"
    __table_args__ = (
        UniqueConstraint("article_id", "category_id", name="uq_article_categories"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    article_id = Column(BigInteger, ForeignKey('articles.id', ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(BigInteger, ForeignKey('categories.id'), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)


class ArticleImage(Base):
    __tablename__ = "article_images"

    id = Column(IdType, primary_key=True, autoincrement=True)
    article_id = Column(BigInteger, ForeignKey('articles.id', ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    caption = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
