"""사용자 API 키 저장/조회 서비스 테스트"""
import asyncio

import pytest
from fastapi import HTTPException

from app.config import settings
from app.modules.api_keys import service as api_key_service
from app.modules.api_keys.crypto import decrypt_api_key
from app.modules.api_keys.schemas import ApiKeySave
from app.modules.api_keys.service import ApiKeyService
from tests.conftest import FakeSupabase

KEY = "0123456789abcdef" * 4
YOUTUBE_KEY = "AIza" + "A" * 35


@pytest.fixture(autouse=True)
def _encryption_key(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", KEY)


async def _valid(api_key):
    return {"is_valid": True, "error": None, "quota_remaining": 9000}


def test_save_encrypts_and_hides_secret(monkeypatch):
    monkeypatch.setattr(api_key_service, "validate_youtube_key", _valid)
    db = FakeSupabase()

    saved = asyncio.run(ApiKeyService(db).save("user-1", ApiKeySave(apiKey=f"  {YOUTUBE_KEY} ")))

    row = db.rows("user_api_keys")[0]
    assert decrypt_api_key(row["encrypted_key"], KEY) == YOUTUBE_KEY
    assert row["metadata"] == {"quotaRemaining": 9000}
    assert "encrypted_key" not in saved
    assert saved["is_valid"] is True


def test_save_rejects_bad_format():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(ApiKeyService(FakeSupabase()).save("user-1", ApiKeySave(apiKey="not-a-key")))
    assert exc.value.status_code == 400


def test_save_rejects_key_youtube_refuses(monkeypatch):
    async def _invalid(key):
        return {"is_valid": False, "error": "API key not valid", "quota_remaining": None}

    monkeypatch.setattr(api_key_service, "validate_youtube_key", _invalid)
    db = FakeSupabase()
    with pytest.raises(HTTPException) as exc:
        asyncio.run(ApiKeyService(db).save("user-1", ApiKeySave(apiKey=YOUTUBE_KEY)))

    assert exc.value.detail == "API key not valid"
    assert db.rows("user_api_keys") == []


def test_save_twice_replaces_existing_key():
    db = FakeSupabase()
    service = ApiKeyService(db)
    first = "AIza" + "B" * 35
    asyncio.run(service.save("user-1", ApiKeySave(apiKey=first, validate=False)))
    asyncio.run(service.save("user-1", ApiKeySave(apiKey=YOUTUBE_KEY, validate=False)))

    assert len(db.rows("user_api_keys")) == 1
    assert service.get_decrypted("user-1") == YOUTUBE_KEY
    assert db.rpc_calls == [("increment_api_key_usage", {"p_user_id": "user-1", "p_service_name": "youtube"})]


def test_get_decrypted_returns_none_for_corrupt_value():
    db = FakeSupabase({"user_api_keys": [
        {"user_id": "user-1", "service_name": "youtube", "encrypted_key": "garbage", "is_active": True},
    ]})
    assert ApiKeyService(db).get_decrypted("user-1") is None
    assert db.rpc_calls == []


def test_delete_missing_key_is_404():
    with pytest.raises(HTTPException) as exc:
        ApiKeyService(FakeSupabase()).delete("user-1", "youtube")
    assert exc.value.status_code == 404


def test_routes_list_and_delete(client_factory, supabase):
    asyncio.run(ApiKeyService(supabase).save("user-1", ApiKeySave(apiKey=YOUTUBE_KEY, validate=False)))
    client = client_factory()

    listed = client.get("/api/v1/user/api-keys").json()
    assert [k["service_name"] for k in listed["data"]] == ["youtube"]

    assert client.delete("/api/v1/user/api-keys", params={"service": "youtube"}).status_code == 200
    assert client.delete("/api/v1/user/api-keys", params={"service": "youtube"}).status_code == 404


def test_auto_setup_stores_server_key_encrypted(monkeypatch):
    """개발 환경에서는 서버 YouTube 키를 암호화해 사용자 키로 저장한다"""
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "youtube_api_key", YOUTUBE_KEY)
    db = FakeSupabase()
    service = ApiKeyService(db)

    first = asyncio.run(service.auto_setup("user-1", "youtube"))
    second = asyncio.run(service.auto_setup("user-1", "youtube"))

    assert first["message"] == "API key saved successfully"
    assert second["message"] == "API key already exists"
    assert "encrypted_key" not in second["data"]
    rows = db.rows("user_api_keys")
    assert len(rows) == 1
    assert decrypt_api_key(rows[0]["encrypted_key"], KEY) == YOUTUBE_KEY


@pytest.mark.parametrize(
    "environment, server_key, service_name, status",
    [
        ("production", YOUTUBE_KEY, "youtube", 403),
        ("development", YOUTUBE_KEY, "openai", 400),
        ("development", None, "youtube", 500),
    ],
)
def test_auto_setup_rejections(monkeypatch, environment, server_key, service_name, status):
    monkeypatch.setattr(settings, "environment", environment)
    monkeypatch.setattr(settings, "youtube_api_key", server_key)
    db = FakeSupabase()
    with pytest.raises(HTTPException) as exc:
        asyncio.run(ApiKeyService(db).auto_setup("user-1", service_name))
    assert exc.value.status_code == status
    assert db.rows("user_api_keys") == []


def test_auto_setup_route(client_factory, supabase, monkeypatch):
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "youtube_api_key", YOUTUBE_KEY)
    client = client_factory()

    response = client.post("/api/v1/user/api-keys/auto-setup", json={"service_name": "youtube"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["service_name"] == "youtube"
    assert "encrypted_key" not in body["data"]
