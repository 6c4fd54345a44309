"""
测试夹具：每个测试使用独立的sqlite数据库文件
"""
import os
import uuid
from datetime import datetime
from typing import Optional, Sequence

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.db.database import Base, get_db, utcnow
from app.models import (
    User, AdminUser, ApiAccessUser, Category, Location, Channel, Subscription,
    Article, ArticleCategory,
)
from app.models.article import ARTICLE_STATUS_PUBLISHED
from app.utils.auth import create_access_token
from main import app


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


class Factory:
    """造数据的帮助类，每次写入使用独立会话并提交"""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _save(self, obj):
        async with self.session_factory() as session:
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
        return obj

    async def user(self, username: Optional[str] = None, admin: bool = False, api_access: bool = False) -> User:
        user = await self._save(User(username=username or f"user-{uuid.uuid4().hex[:8]}"))
        if admin:
            await self._save(AdminUser(user_id=user.id))
        if api_access:
            await self._save(ApiAccessUser(user_id=user.id))
        return user

    async def channel(self, owner: User, name: str = "Local News", admin_subscriber_count: int = 0) -> Channel:
        return await self._save(Channel(
            user_id=owner.id,
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}",
            description=f"{name} description",
            admin_subscriber_count=admin_subscriber_count,
        ))

    async def article(
        self,
        channel: Channel,
        title: str = "Hello World",
        status: str = ARTICLE_STATUS_PUBLISHED,
        created_at: Optional[datetime] = None,
        view_count: int = 0,
        category_ids: Sequence[int] = (),
        slug: Optional[str] = None,
    ) -> Article:
        created_at = created_at or utcnow()
        article = await self._save(Article(
            title=title,
            content=f"<p>{title}</p>",
            slug=slug,
            content_format="html",
            channel_id=channel.id,
            user_id=channel.user_id,
            status=status,
            view_count=view_count,
            published_at=created_at if status == ARTICLE_STATUS_PUBLISHED else None,
            created_at=created_at,
            updated_at=created_at,
        ))
        for index, category_id in enumerate(category_ids):
            await self._save(ArticleCategory(article_id=article.id, category_id=category_id, is_primary=index == 0))
        return article

    async def subscription(self, user: User, channel: Channel) -> Subscription:
        return await self._save(Subscription(user_id=user.id, channel_id=channel.id))

    async def category(self, name: str, parent: Optional[Category] = None) -> Category:
        return await self._save(Category(
            name=name,
            slug=name.lower(),
            parent_id=parent.id if parent else None,
        ))

    async def location(self, name: str, parent: Optional[Location] = None) -> Location:
        return await self._save(Location(name=name, parent_id=parent.id if parent else None))


@pytest.fixture
def factory(session_factory):
    return Factory(session_factory)


@pytest.fixture
def auth():
    return auth_headers
