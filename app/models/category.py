"""
分类与地区模型
"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, ForeignKey, Float, func
from app.db.database import Base, IdType, utcnow


class Category(Base):
    __tablename__ = "categories"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    parent_id = Column(BigInteger, ForeignKey('categories.id'), nullable=True)
    slug = Column(String(120), unique=True, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class Location(Base):
    __tablename__ = "locations"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    parent_id = Column(BigInteger, ForeignKey('locations.id'), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
