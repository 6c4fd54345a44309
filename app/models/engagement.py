"""
互动模型：浏览记录、点赞/点踩
"""
from sqlalchemy import Column, BigInteger, String, Boolean, TIMESTAMP, ForeignKey, UniqueConstraint, func
from app.db.database import Base, IdType, utcnow


class ArticleView(Base):
    """每个客户端对每篇文章只计一次浏览"""
    __tablename__ = "article_views"
    __table_args__ = (
        UniqueConstraint("article_id", "client_identifier", name="uq_article_views_client"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    article_id = Column(BigInteger, ForeignKey('articles.id', ondelete="CASCADE"), nullable=False)
    user_id = Column(BigInteger, ForeignKey('users.id'), nullable=True)
    client_identifier = Column(String(128), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class Reaction(Base):
    __tablename__ = "reactions"
    __table_args__ = (
        UniqueConstraint("article_id", "user_id", name="uq_reactions_article_user"),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    article_id = Column(BigInteger, ForeignKey('articles.id', ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey('users.id'), nullable=False)
    is_like = Column(Boolean, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
