"""
API Key生命周期测试
"""
import re
from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.exceptions import Unauthorized
from app.db.database import utcnow
from app.models import ApiKey
from app.services import api_key_service


async def test_key_creation_requires_api_access(client, factory, auth):
    user = await factory.user()
    resp = await client.post("/api/v1/api-keys", json={"name": "bot"}, headers=auth(user))
    assert resp.status_code == 403


async def test_admin_can_create_key_without_grant(client, factory, auth):
    admin = await factory.user(admin=True)
    resp = await client.post("/api/v1/api-keys", json={"name": "ops"}, headers=auth(admin))
    assert resp.status_code == 200


async def test_raw_key_is_returned_once_and_stored_hashed(client, factory, auth, db_session):
    user = await factory.user(api_access=True)

    resp = await client.post(
        "/api/v1/api-keys",
        json={"name": "newsroom", "expiresInDays": 30},
        headers=auth(user),
    )
    data = resp.json()["data"]
    raw = data["key"]
    assert re.fullmatch(r"nk_[0-9a-f]{64}", raw)
    assert data["prefix"] == raw[:11]
    assert data["expiresAt"] is not None

    stored = (await db_session.execute(select(ApiKey).where(ApiKey.id == data["id"]))).scalar_one()
    assert stored.key_hash != raw
    assert stored.key_hash == api_key_service.hash_api_key(raw)

    listed = await client.get("/api/v1/api-keys", headers=auth(user))
    keys = listed.json()["data"]
    assert len(keys) == 1
    assert keys[0]["prefix"] == raw[:11]
    assert "key" not in keys[0]


async def test_revoked_key_is_rejected(client, factory, auth):
    user = await factory.user(api_access=True)
    other = await factory.user()
    created = (await client.post("/api/v1/api-keys", json={"name": "tmp"}, headers=auth(user))).json()["data"]
    headers = {"X-API-Key": created["key"]}

    assert (await client.get("/api/v1/content/channels", headers=headers)).status_code == 200

    resp = await client.delete(f"/api/v1/api-keys/{created['id']}", headers=auth(other))
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/api-keys/{created['id']}", headers=auth(user))
    assert resp.status_code == 200
    assert resp.json()["data"]["isRevoked"] is True

    # 重复吊销不报错
    resp = await client.delete(f"/api/v1/api-keys/{created['id']}", headers=auth(user))
    assert resp.status_code == 200

    assert (await client.get("/api/v1/content/channels", headers=headers)).status_code == 401


async def test_expired_key_is_rejected(db_session, factory):
    user = await factory.user()
    api_key, raw = await api_key_service.create_api_key(db_session, user.id, "short-lived", expires_in_days=1)
    assert await api_key_service.authenticate_api_key(db_session, raw) == user.id

    api_key.expires_at = utcnow() - timedelta(minutes=1)
    await db_session.commit()

    with pytest.raises(Unauthorized):
        await api_key_service.authenticate_api_key(db_session, raw)


async def test_authenticate_updates_last_used(db_session, factory):
    user = await factory.user()
    api_key, raw = await api_key_service.create_api_key(db_session, user.id, "tracker")
    assert api_key.last_used_at is None

    await api_key_service.authenticate_api_key(db_session, raw)
    await db_session.refresh(api_key)
    assert api_key.last_used_at is not None


async def test_blank_key_name_is_rejected(client, factory, auth):
    user = await factory.user(api_access=True)
    resp = await client.post("/api/v1/api-keys", json={"name": ""}, headers=auth(user))
    assert resp.status_code == 400
