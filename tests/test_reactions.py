"""
点赞/点踩状态机测试
"""
from sqlalchemy import func, select

from app.models import Reaction
from app.services import reaction_service


async def _react(client, article_id, headers, is_like):
    resp = await client.post(
        f"/api/articles/{article_id}/reactions",
        json={"isLike": is_like},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def _reaction_rows(db_session, article_id):
    result = await db_session.execute(
        select(func.count(Reaction.id)).where(Reaction.article_id == article_id)
    )
    return result.scalar()


async def test_unauthenticated_reaction_is_rejected(client, factory, db_session):
    owner = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    resp = await client.post(f"/api/articles/{article.id}/reactions", json={"isLike": True})
    assert resp.status_code == 401
    assert await _reaction_rows(db_session, article.id) == 0


async def test_like_then_like_again_toggles_off(client, factory, auth, db_session):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    data = await _react(client, article.id, auth(reader), True)
    assert data == {"likes": 1, "dislikes": 0, "userReaction": True, "removed": False, "isLike": None}

    data = await _react(client, article.id, auth(reader), True)
    assert data == {"likes": 0, "dislikes": 0, "userReaction": None, "removed": True, "isLike": True}
    assert await _reaction_rows(db_session, article.id) == 0


async def test_opposite_reaction_switches_in_place(client, factory, auth, db_session):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    await _react(client, article.id, auth(reader), True)
    data = await _react(client, article.id, auth(reader), False)
    assert data["likes"] == 0
    assert data["dislikes"] == 1
    assert data["userReaction"] is False
    assert data["removed"] is False
    assert await _reaction_rows(db_session, article.id) == 1

    data = await _react(client, article.id, auth(reader), False)
    assert data["dislikes"] == 0
    assert data["removed"] is True
    assert data["isLike"] is False


async def test_counts_are_recomputed_across_users(client, factory, auth):
    owner = await factory.user()
    alice = await factory.user()
    bob = await factory.user()
    carol = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    await _react(client, article.id, auth(alice), True)
    await _react(client, article.id, auth(bob), False)
    data = await _react(client, article.id, auth(carol), True)
    assert (data["likes"], data["dislikes"]) == (2, 1)

    resp = await client.get(f"/api/articles/{article.id}/reactions")
    summary = resp.json()["data"]
    assert (summary["likes"], summary["dislikes"]) == (2, 1)
    assert summary["userReaction"] is None

    resp = await client.get(f"/api/articles/{article.id}/reactions", headers=auth(bob))
    assert resp.json()["data"]["userReaction"] is False


async def test_non_boolean_is_like_is_rejected(client, factory, auth):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    resp = await client.post(
        f"/api/articles/{article.id}/reactions",
        json={"isLike": "yes"},
        headers=auth(reader),
    )
    assert resp.status_code == 400
    assert isinstance(resp.json()["detail"], list)


async def test_reaction_on_unknown_article_returns_404(client, factory, auth):
    reader = await factory.user()
    resp = await client.post("/api/articles/424242/reactions", json={"isLike": True}, headers=auth(reader))
    assert resp.status_code == 404


async def test_list_includes_reaction_counts(client, factory, auth):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)
    await _react(client, article.id, auth(reader), True)

    resp = await client.get("/api/articles", headers=auth(reader))
    item = resp.json()["data"]["list"][0]
    assert item["likes"] == 1
    assert item["userReaction"] is True
    assert item["channel"]["id"] == channel.id


async def test_third_like_returns_to_liked(client, factory, auth, db_session):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    first = await _react(client, article.id, auth(reader), True)
    assert (first["likes"], first["userReaction"]) == (1, True)

    second = await _react(client, article.id, auth(reader), True)
    assert (second["likes"], second["userReaction"], second["removed"]) == (0, None, True)

    third = await _react(client, article.id, auth(reader), True)
    assert third == {"likes": 1, "dislikes": 0, "userReaction": True, "removed": False, "isLike": None}
    assert await _reaction_rows(db_session, article.id) == 1


async def test_dislike_then_like_then_like(client, factory, auth, db_session):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    data = await _react(client, article.id, auth(reader), False)
    assert (data["likes"], data["dislikes"], data["userReaction"]) == (0, 1, False)

    data = await _react(client, article.id, auth(reader), True)
    assert (data["likes"], data["dislikes"], data["userReaction"]) == (1, 0, True)

    data = await _react(client, article.id, auth(reader), True)
    assert (data["likes"], data["dislikes"], data["userReaction"]) == (0, 0, None)
    assert data["removed"] is True
    assert await _reaction_rows(db_session, article.id) == 0


async def test_concurrent_first_reaction_converges_on_constraint(db_session, factory, monkeypatch):
    owner = await factory.user()
    reader = await factory.user()
    channel = await factory.channel(owner)
    article = await factory.article(channel)

    first = await reaction_service.set_reaction(db_session, article.id, reader.id, True)
    assert first.user_reaction is True

    # 模拟另一请求在检查之后抢先写入
    async def no_existing_reaction(db, article_id, user_id):
        return None

    monkeypatch.setattr(reaction_service, "_find_reaction", no_existing_reaction)

    second = await reaction_service.set_reaction(db_session, article.id, reader.id, False)
    assert second.likes == 1
    assert second.dislikes == 0
    assert second.user_reaction is True
    assert second.removed is False
    assert await _reaction_rows(db_session, article.id) == 1
