"""알림 API 테스트"""
from tests.conftest import ADMIN, USER


def _seed(supabase):
    supabase.tables["notifications"] = [
        {"id": "n-1", "user_id": "user-1", "title": "a", "message": "m", "is_read": False, "created_at": "2025-01-01T00:00:00+00:00"},
        {"id": "n-2", "user_id": "user-1", "title": "b", "message": "m", "is_read": True, "created_at": "2025-01-02T00:00:00+00:00"},
        {"id": "n-3", "user_id": "user-2", "title": "c", "message": "m", "is_read": False, "created_at": "2025-01-03T00:00:00+00:00"},
    ]


def test_list_returns_own_notifications_with_unread_count(client_factory, supabase):
    _seed(supabase)
    response = client_factory().get("/api/v1/notifications", params={"limit": 10})

    body = response.json()
    assert response.status_code == 200
    assert [n["id"] for n in body["notifications"]] == ["n-2", "n-1"]
    assert body["pagination"] == {"total": 2, "limit": 10, "offset": 0}
    assert body["unreadCount"] == 1


def test_only_admin_can_notify_other_users(client_factory, supabase):
    payload = {"title": "공지", "message": "내용", "targetUserId": "user-2"}

    assert client_factory(USER).post("/api/v1/notifications", json=payload).status_code == 403
    response = client_factory(ADMIN).post("/api/v1/notifications", json=payload)
    assert response.status_code == 201
    assert supabase.rows("notifications")[0]["user_id"] == "user-2"


def test_mark_all_read(client_factory, supabase):
    _seed(supabase)
    response = client_factory().put("/api/v1/notifications", json={"markAll": True})

    assert response.status_code == 200
    own = [n for n in supabase.rows("notifications") if n["user_id"] == "user-1"]
    assert all(n["is_read"] for n in own)
    assert supabase.rows("notifications")[2]["is_read"] is False


def test_mark_read_requires_ids_or_mark_all(client_factory):
    assert client_factory().put("/api/v1/notifications", json={}).status_code == 400


def test_delete_requires_id(client_factory, supabase):
    _seed(supabase)
    client = client_factory()
    assert client.delete("/api/v1/notifications").status_code == 400
    assert client.delete("/api/v1/notifications", params={"id": "n-1"}).status_code == 200
    assert [n["id"] for n in supabase.rows("notifications")] == ["n-2", "n-3"]
