"""영상 컬렉션 API 테스트"""
from tests.conftest import USER

OTHER = {"id": "user-2", "email": "other@example.com", "app_metadata": {}}
BASE = "/api/v1/youtube/collections"


def _seed(supabase, is_public=False):
    supabase.tables["collections"] = [
        {"id": "col-1", "user_id": "user-1", "name": "레퍼런스", "is_public": is_public, "video_count": 0},
    ]


def test_create_and_list_collections(client_factory, supabase):
    client = client_factory()
    created = client.post(BASE, json={"name": "쇼츠 모음", "tags": ["shorts"]})

    assert created.status_code == 201
    assert created.json()["collection"]["user_id"] == "user-1"
    assert [c["name"] for c in client.get(BASE).json()["collections"]] == ["쇼츠 모음"]


def test_add_items_assigns_positions_and_counts(client_factory, supabase):
    _seed(supabase)
    client = client_factory()

    first = client.post(f"{BASE}/items", json={"collection_id": "col-1", "video_id": "vid-a"})
    second = client.post(f"{BASE}/items", json={"collection_id": "col-1", "video_id": "vid-b"})

    assert first.json()["item"]["position"] == 0
    assert second.json()["item"]["position"] == 1
    assert supabase.rows("collections")[0]["video_count"] == 2


def test_duplicate_item_is_rejected(client_factory, supabase):
    _seed(supabase)
    client = client_factory()
    client.post(f"{BASE}/items", json={"collection_id": "col-1", "video_id": "vid-a"})

    response = client.post(f"{BASE}/items", json={"collection_id": "col-1", "video_id": "vid-a"})
    assert response.status_code == 400


def test_only_owner_can_modify(client_factory, supabase):
    _seed(supabase, is_public=True)
    client = client_factory(OTHER)

    assert client.put(f"{BASE}/col-1", json={"name": "변경"}).status_code == 403
    assert client.post(f"{BASE}/items", json={"collection_id": "col-1", "video_id": "v"}).status_code == 403
    assert client.get(f"{BASE}/col-1").status_code == 200


def test_private_collection_is_hidden_from_others(client_factory, supabase):
    _seed(supabase, is_public=False)
    assert client_factory(OTHER).get(f"{BASE}/col-1").status_code == 404
    assert client_factory(USER).get(f"{BASE}/col-1").status_code == 200


def test_update_requires_fields(client_factory, supabase):
    _seed(supabase)
    assert client_factory().put(f"{BASE}/col-1", json={}).status_code == 400


def test_remove_and_reorder_items(client_factory, supabase):
    _seed(supabase)
    supabase.tables["collection_items"] = [
        {"id": "i-1", "collection_id": "col-1", "video_id": "vid-a", "position": 0},
        {"id": "i-2", "collection_id": "col-1", "video_id": "vid-b", "position": 1},
    ]
    client = client_factory()

    reorder = client.put(f"{BASE}/items/reorder", json={
        "collection_id": "col-1",
        "items": [{"video_id": "vid-a", "position": 1}, {"video_id": "vid-b", "position": 0}],
    })
    assert reorder.status_code == 200
    items = client.get(f"{BASE}/items", params={"collection_id": "col-1"}).json()["items"]
    assert [i["video_id"] for i in items] == ["vid-b", "vid-a"]

    removed = client.delete(f"{BASE}/items", params={"collection_id": "col-1", "video_id": "vid-a"})
    assert removed.status_code == 200
    missing = client.delete(f"{BASE}/items", params={"collection_id": "col-1", "video_id": "vid-a"})
    assert missing.status_code == 404
    assert supabase.rows("collections")[0]["video_count"] == 1


def test_delete_collection_removes_items(client_factory, supabase):
    _seed(supabase)
    supabase.tables["collection_items"] = [{"id": "i-1", "collection_id": "col-1", "video_id": "vid-a", "position": 0}]

    assert client_factory().delete(f"{BASE}/col-1").status_code == 200
    assert supabase.rows("collections") == []
    assert supabase.rows("collection_items") == []
