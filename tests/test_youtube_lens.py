"""YouTube Lens 채널 관리, 일일 배치, 키워드 트렌드 테스트"""
from datetime import date, datetime, timezone

import pytest

from app.modules.youtube.client import YouTubeAPIError
from app.modules.youtube_lens import keywords
from app.modules.youtube_lens.batch import compute_delta, run_daily_batch
from app.modules.youtube_lens.routes import get_admin_youtube_client
from app.modules.youtube_lens.service import LensService
from tests.conftest import ADMIN, USER, FakeSupabase

NOW = datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc)


class FakeYouTubeClient:
    def __init__(self, items=None, error=None):
        self.items = {item["id"]: item for item in (items or [])}
        self.error = error
        self.requested = []

    async def get_channels(self, channel_ids):
        self.requested.append(list(channel_ids))
        if self.error:
            raise self.error
        return [self.items[c] for c in channel_ids if c in self.items]


def _api_channel(channel_id, views, subscribers, title="채널"):
    return {
        "id": channel_id,
        "snippet": {"title": title, "customUrl": "@handle", "thumbnails": {"default": {"url": "https://img/1.jpg"}}},
        "statistics": {"viewCount": str(views), "subscriberCount": str(subscribers), "videoCount": "5"},
    }


# 키워드 추출


def test_normalize_text_strips_noise():
    assert keywords.normalize_text("Hello 🔥 <b>world</b> https://x.com/a!") == "Hello world"


def test_extract_hashtags_unique_and_lowercase():
    assert keywords.extract_hashtags("#Shorts 영상 #shorts #a #먹방") == ["#shorts", "#먹방"]


def test_extract_keywords_drops_stopwords_and_numbers():
    assert keywords.extract_keywords("the 2024 먹방 먹방 리뷰 a 그리고 x") == ["먹방", "리뷰"]


def test_extract_ngrams_skips_stopword_only_pairs():
    assert keywords.extract_ngrams("the and 먹방") == ["and 먹방"]
    assert keywords.extract_ngrams("하나") == []


@pytest.mark.parametrize("current, previous, channels, expected", [
    (3, 0, 5, 100.0),
    (2, 0, 5, 40.0),
    (2, 1, 2, 100.0),
    (1, 10, 10, -50.0),
    (100, 1, 1, 500.0),
])
def test_trend_score(current, previous, channels, expected):
    assert keywords.trend_score(current, previous, channels) == pytest.approx(expected)


def test_analyze_keyword_trends_requires_spread():
    videos = [
        {"title": "먹방 브이로그 #먹방", "channel_id": "c1", "category": "음식"},
        {"title": "오늘의 먹방", "channel_id": "c2", "category": "음식"},
    ]
    trends = keywords.analyze_keyword_trends(videos)

    assert trends == [{"keyword": "먹방", "frequency": 2, "growth": 40, "channels": ["c1", "c2"], "category": "음식"}]
    assert keywords.analyze_keyword_trends(videos, {"먹방": 1})[0]["growth"] == 100


def test_keyword_stats_and_grouping():
    trends = [
        {"keyword": "a", "frequency": 3, "growth": 80, "category": "게임"},
        {"keyword": "b", "frequency": 2, "growth": 30, "category": None},
        {"keyword": "c", "frequency": 4, "growth": -40, "category": "게임"},
    ]
    stats = keywords.keyword_stats(trends)

    assert stats["totalKeywords"] == 9
    assert (stats["trendingKeywords"], stats["risingKeywords"], stats["decliningKeywords"]) == (1, 1, 1)
    assert stats["topCategories"][0] == {"category": "게임", "count": 2}
    assert [t["keyword"] for t in keywords.group_by_category(trends)["게임"]] == ["a", "c"]
    assert list(keywords.group_by_category(trends)) == ["게임", keywords.UNCATEGORIZED]


# 일일 배치


def test_compute_delta_without_previous_is_zero():
    today = {"channel_id": "c1", "date": "2025-03-10", "view_count_total": 10, "subscriber_count": 1}
    assert compute_delta(today, None) == {
        "channel_id": "c1", "date": "2025-03-10", "delta_views": 0, "delta_subscribers": 0, "growth_rate": 0.0,
    }


def test_compute_delta_clamps_negative_views():
    today = {"channel_id": "c1", "date": "2025-03-10", "view_count_total": 900, "subscriber_count": 8}
    delta = compute_delta(today, {"view_count_total": 1000, "subscriber_count": 10})
    assert (delta["delta_views"], delta["delta_subscribers"], delta["growth_rate"]) == (0, -2, 0.0)


@pytest.mark.asyncio
async def test_run_daily_batch_snapshots_and_deltas():
    db = FakeSupabase({
        "yl_channels": [
            {"channel_id": "c1", "approval_status": "approved"},
            {"channel_id": "c2", "approval_status": "approved"},
            {"channel_id": "c3", "approval_status": "pending"},
        ],
        "yl_channel_daily_snapshot": [
            {"channel_id": "c1", "date": "2025-03-09", "view_count_total": 1000, "subscriber_count": 10},
            {"channel_id": "c1", "date": "2025-01-01", "view_count_total": 1, "subscriber_count": 1},
        ],
    })
    client = FakeYouTubeClient([_api_channel("c1", 1500, 12), _api_channel("c2", 200, 3)])

    result = await run_daily_batch(db, client, now=NOW)

    assert result["success"] is True
    assert result["processed"] == 2
    assert client.requested == [["c1", "c2"]]
    deltas = {d["channel_id"]: d for d in db.rows("yl_channel_daily_delta")}
    assert (deltas["c1"]["delta_views"], deltas["c1"]["delta_subscribers"], deltas["c1"]["growth_rate"]) == (500, 2, 50.0)
    assert deltas["c2"]["delta_views"] == 0
    assert sorted(s["date"] for s in db.rows("yl_channel_daily_snapshot")) == ["2025-03-09", "2025-03-10", "2025-03-10"]
    assert db.rows("yl_batch_logs")[0]["processed_count"] == 2


@pytest.mark.asyncio
async def test_run_daily_batch_without_yesterday_skips_deltas():
    db = FakeSupabase({"yl_channels": [{"channel_id": "c1", "approval_status": "approved"}]})

    result = await run_daily_batch(db, FakeYouTubeClient([_api_channel("c1", 10, 1)]), now=NOW)

    assert result["success"] is True
    assert db.rows("yl_channel_daily_delta") == []
    assert len(db.rows("yl_channel_daily_snapshot")) == 1


@pytest.mark.asyncio
async def test_run_daily_batch_records_api_errors():
    db = FakeSupabase({"yl_channels": [{"channel_id": "c1", "approval_status": "approved"}]})
    client = FakeYouTubeClient(error=YouTubeAPIError("quota", 403, code="quotaExceeded"))

    result = await run_daily_batch(db, client, now=NOW)

    assert result["success"] is False
    assert result["errors"] == ["YouTube API error: quota"]
    assert db.rows("yl_batch_logs")[0]["success"] is False


@pytest.mark.asyncio
async def test_run_daily_batch_without_channels():
    result = await run_daily_batch(FakeSupabase(), FakeYouTubeClient(), now=NOW)
    assert result["success"] is True
    assert result["errors"] == ["No approved channels to process"]


# 관리자 채널 관리


def _admin_client(client_factory, youtube):
    from app.main import app

    client = client_factory(ADMIN)
    app.dependency_overrides[get_admin_youtube_client] = lambda: youtube
    return client


def test_admin_routes_require_admin(client_factory, supabase):
    client = client_factory(USER)
    assert client.get("/api/v1/youtube-lens/admin/channels").status_code == 403
    assert client.post("/api/v1/youtube-lens/admin/batch").status_code == 403


def test_add_channel_stores_pending_with_audit(client_factory, supabase):
    client = _admin_client(client_factory, FakeYouTubeClient([_api_channel("UCabc", 100, 7, "요리왕")]))

    response = client.post("/api/v1/youtube-lens/admin/channels", json={"channelId": "UCabc"})

    assert response.status_code == 201
    assert response.json()["data"] == {"channelId": "UCabc", "title": "요리왕", "subscriberCount": 7}
    row = supabase.rows("yl_channels")[0]
    assert (row["approval_status"], row["source"], row["handle"]) == ("pending", "manual", "handle")
    assert supabase.rows("yl_approval_logs")[0]["action"] == "pending"

    duplicate = client.post("/api/v1/youtube-lens/admin/channels", json={"channelId": "UCabc"})
    assert duplicate.status_code == 409


def test_add_unknown_channel_returns_404(client_factory, supabase):
    client = _admin_client(client_factory, FakeYouTubeClient())
    assert client.post("/api/v1/youtube-lens/admin/channels", json={"channelId": "UCnone"}).status_code == 404


def test_approve_sets_approver(client_factory, supabase):
    supabase.tables["yl_channels"] = [{"channel_id": "UCabc", "approval_status": "pending", "title": "요리왕"}]
    client = client_factory(ADMIN)

    response = client.put("/api/v1/youtube-lens/admin/channels/UCabc", json={
        "status": "approved", "notes": "좋은 채널", "dominantFormat": "shorts",
    })

    assert response.json()["data"]["approvalStatus"] == "approved"
    row = supabase.rows("yl_channels")[0]
    assert row["approved_by"] == "admin-1"
    assert row["dominant_format"] == "shorts"
    assert supabase.rows("yl_approval_logs")[0]["action"] == "approved"
    assert client.put("/api/v1/youtube-lens/admin/channels/nope", json={"status": "rejected"}).status_code == 404


def test_delete_writes_audit_before_removal(client_factory, supabase):
    supabase.tables["yl_channels"] = [{"channel_id": "UCabc", "approval_status": "approved"}]

    assert client_factory(ADMIN).delete("/api/v1/youtube-lens/admin/channels/UCabc").status_code == 200

    tables = [(table, action) for table, action, _ in supabase.calls if action in ("insert", "delete")]
    assert tables == [("yl_approval_logs", "insert"), ("yl_channels", "delete")]
    assert supabase.rows("yl_channels") == []


def test_list_channels_filters_status_and_search():
    db = FakeSupabase({"yl_channels": [
        {"channel_id": "UC1", "title": "게임 채널", "approval_status": "approved", "created_at": "2025-01-02"},
        {"channel_id": "UC2", "title": "요리 채널", "approval_status": "approved", "created_at": "2025-01-01"},
        {"channel_id": "UC3", "title": "게임 리뷰", "approval_status": "pending", "created_at": "2025-01-03"},
    ]})
    service = LensService(db)

    assert [c["channelId"] for c in service.list_channels("approved", "게임")] == ["UC1"]
    assert [c["channelId"] for c in service.list_channels("all", "(게임),")] == ["UC3", "UC1"]


def test_channel_stats_counts_and_recent_log_titles():
    db = FakeSupabase({
        "yl_channels": [
            {"channel_id": "UC1", "title": "게임 채널", "approval_status": "approved", "category": "게임"},
            {"channel_id": "UC2", "approval_status": "pending", "dominant_format": "shorts"},
        ],
        "yl_approval_logs": [
            {"id": "l1", "channel_id": "UC1", "action": "approved", "actor_id": "admin-1", "created_at": "2025-01-02"},
            {"id": "l2", "channel_id": "UCgone", "action": "delete", "actor_id": "admin-1", "created_at": "2025-01-01"},
        ],
    })
    stats = LensService(db).channel_stats()

    assert (stats["totalChannels"], stats["approvedChannels"], stats["pendingChannels"]) == (2, 1, 1)
    assert stats["channelsByCategory"] == {"게임": 1}
    assert stats["channelsByFormat"] == {"shorts": 1}
    assert [r["channelTitle"] for r in stats["recentApprovals"]] == ["게임 채널", "Unknown Channel"]


# 대시보드와 키워드 트렌드


def test_trending_summary():
    db = FakeSupabase({
        "yl_channels": [
            {"channel_id": "UC1", "approval_status": "approved", "category": "게임", "approved_at": "2025-03-09T00:00:00+00:00"},
            {"channel_id": "UC2", "approval_status": "approved", "category": "게임", "approved_at": "2025-01-01T00:00:00+00:00"},
            {"channel_id": "UC3", "approval_status": "approved", "category": None, "approved_at": "2025-01-01T00:00:00+00:00"},
            {"channel_id": "UC4", "approval_status": "pending", "category": "음악"},
        ],
        "yl_channel_daily_delta": [
            {"channel_id": "UC1", "date": "2025-03-10", "delta_views": 10},
            {"channel_id": "UC2", "date": "2025-03-10", "delta_views": 300},
            {"channel_id": "UC3", "date": "2025-03-09", "delta_views": 999},
        ],
    })
    data = LensService(db).trending_summary(now=NOW)["data"]

    assert data["date"] == "2025-03-10"
    assert data["categoryStats"] == [
        {"category": "게임", "channelCount": 2, "share": 66.67},
        {"category": keywords.UNCATEGORIZED, "channelCount": 1, "share": 33.33},
    ]
    assert [d["channel_id"] for d in data["topDeltas"]] == ["UC2", "UC1"]
    assert [n["channel_id"] for n in data["newcomers"]] == ["UC1"]


def test_categories_merge_defaults_with_custom(client_factory, supabase):
    supabase.tables["yl_channels"] = [
        {"channel_id": "UC1", "category": "게임"},
        {"channel_id": "UC2", "category": "Gaming"},
        {"channel_id": "UC3", "category": "ASMR"},
    ]
    data = client_factory(USER).get("/api/v1/youtube-lens/categories").json()["data"]
    by_name = {c["nameKo"]: c for c in data}

    assert by_name["게임"]["channelCount"] == 2
    assert by_name["ASMR"]["categoryId"] == "custom_ASMR"
    assert [c["displayOrder"] for c in data] == list(range(1, len(data) + 1))


def test_keyword_trends_window_and_category():
    db = FakeSupabase({"yl_keyword_trends": [
        {"keyword": "먹방", "date": "2025-03-10", "frequency": 5, "growth_rate": 40, "category": "음식"},
        {"keyword": "게임", "date": "2025-03-09", "frequency": 3, "growth_rate": 90, "category": "게임"},
        {"keyword": "옛날", "date": "2025-03-01", "frequency": 9, "growth_rate": 500, "category": "게임"},
    ]})
    service = LensService(db)

    data = service.keyword_trends(days=1, now=NOW)["data"]
    assert [t["keyword"] for t in data["trends"]] == ["게임", "먹방"]
    assert set(data["categories"]) == {"게임", "음식"}
    assert [t["keyword"] for t in service.keyword_trends(days=7, category="음식", now=NOW)["data"]["trends"]] == ["먹방"]


def test_analyze_keywords_stores_trends():
    db = FakeSupabase({
        "yl_videos": [
            {"video_id": "v1", "channel_id": "c1", "title": "먹방 브이로그", "published_at": "2025-03-09"},
            {"video_id": "v2", "channel_id": "c2", "title": "오늘의 먹방", "published_at": "2025-03-08"},
        ],
        "yl_keyword_trends": [{"keyword": "먹방", "date": "2025-03-09", "frequency": 1}],
    })
    data = LensService(db).analyze_keywords(now=NOW)["data"]

    assert data["analyzed"] == 2
    assert data["stored"] == 1
    assert data["trends"][0]["growth"] == 100
    stored = [r for r in db.rows("yl_keyword_trends") if r["date"] == "2025-03-10"]
    assert stored[0]["growth_rate"] == 100


def test_analyze_keywords_takes_category_from_channel():
    """영상 키워드 트렌드의 카테고리는 채널 카테고리를 따른다"""
    db = FakeSupabase({
        "yl_videos": [
            {"video_id": "v1", "channel_id": "c1", "title": "먹방 브이로그"},
            {"video_id": "v2", "channel_id": "c2", "title": "오늘의 먹방"},
        ],
        "yl_channels": [
            {"channel_id": "c1", "category": "음식"},
            {"channel_id": "c2", "category": "음식"},
        ],
    })
    data = LensService(db).analyze_keywords(now=NOW)["data"]

    assert data["trends"][0]["category"] == "음식"
    assert db.rows("yl_keyword_trends")[0]["category"] == "음식"

    trends = LensService(db).keyword_trends(now=NOW)["data"]
    assert list(trends["categories"]) == ["음식"]


def test_analyze_keywords_preview_and_fallback():
    db = FakeSupabase({"yl_videos": [{"video_id": "v1", "channel_id": "c1", "title": "먹방"}]})
    assert LensService(db).analyze_keywords(analyze=False, now=NOW)["data"]["videoCount"] == 1

    fallback = FakeSupabase({"yl_channels": [
        {"channel_id": "c1", "title": "먹방 채널"},
        {"channel_id": "c2", "title": "먹방 여행"},
    ]})
    data = LensService(fallback).analyze_keywords(now=NOW)["data"]
    assert data["analyzed"] == 2
    assert "stored" not in data
    assert fallback.rows("yl_keyword_trends") == []


def test_analyze_keywords_survives_storage_failure():
    db = FakeSupabase({"yl_videos": [
        {"video_id": "v1", "channel_id": "c1", "title": "먹방 브이로그"},
        {"video_id": "v2", "channel_id": "c2", "title": "오늘의 먹방"},
    ]})
    original = db.table

    def _broken_upsert(*args, **kwargs):
        raise RuntimeError("db down")

    def _table(name):
        query = original(name)
        if name == "yl_keyword_trends":
            query.upsert = _broken_upsert
        return query

    db.table = _table
    data = LensService(db).analyze_keywords(now=NOW)["data"]
    assert data["stored"] == 1
