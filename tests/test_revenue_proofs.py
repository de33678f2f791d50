"""수익 인증 서비스 테스트"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.core.time_utils import utcnow
from app.modules.revenue_proofs.schemas import ProofCreate, ProofReportCreate, ProofUpdate
from app.modules.revenue_proofs.service import (
    DailyLimitExceeded,
    RevenueProofService,
    aggregate_ranking,
    annotate_own_proof,
    list_period_start,
    proof_stats,
)
from tests.conftest import FakeSupabase


class _FakeStorage:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploaded = []
        self.deleted = []

    def upload_file(self, data, key, content_type=None, bucket=None):
        if self.fail:
            raise RuntimeError("s3 down")
        self.uploaded.append((key, bucket))
        return f"https://cdn.example.com/{bucket}/{key}"

    def delete_file(self, key, bucket=None):
        self.deleted.append((key, bucket))
        return True


BODY = ProofCreate(title="첫 수익", content="애드센스 첫 수익 인증합니다", amount=15000, platform="youtube")


def _proof(**overrides):
    row = {
        "id": "proof-1", "user_id": "user-1", "title": "인증", "content": "수익 인증 본문입니다",
        "amount": 1000, "platform": "youtube", "reports_count": 0, "is_hidden": False,
        "screenshot_path": "user-1/1_shot.png", "created_at": utcnow().isoformat(),
    }
    row.update(overrides)
    return row


def test_aggregate_ranking_sums_per_user():
    rows = [
        {"user_id": "a", "amount": 100, "platform": "youtube"},
        {"user_id": "b", "amount": 300, "platform": "tiktok"},
        {"user_id": "a", "amount": 250, "platform": "instagram"},
        {"user_id": None, "amount": 999},
    ]
    ranked = aggregate_ranking(rows)

    assert [(e["user_id"], e["total_amount"], e["rank"]) for e in ranked] == [("a", 350, 1), ("b", 300, 2)]
    assert ranked[0]["platforms"] == ["youtube", "instagram"]


def test_list_period_start_uses_kst_day():
    now = datetime(2025, 3, 10, 16, 0, tzinfo=timezone.utc)  # KST 3/11 01:00
    daily = list_period_start("daily", now)

    assert daily.astimezone(timezone.utc) == datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)
    assert list_period_start("all", now) is None


def test_annotate_own_proof_edit_window():
    now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
    fresh = annotate_own_proof({"created_at": "2025-03-10T02:30:00+00:00"}, now)
    stale = annotate_own_proof({"created_at": "2025-03-08T12:00:00+00:00"}, now)

    assert fresh["canEdit"] is True
    assert fresh["hoursRemaining"] == 14
    assert stale["canEdit"] is False
    assert stale["hoursRemaining"] == 0


def test_proof_stats():
    stats = proof_stats([
        {"amount": 100, "platform": "youtube", "likes_count": 2, "is_hidden": True},
        {"amount": 50, "platform": "tiktok", "comments_count": 3},
    ])
    assert stats["totalAmount"] == 150
    assert stats["hiddenCount"] == 1
    assert stats["platforms"] == {"youtube": 1, "instagram": 0, "tiktok": 1}


def test_create_proof_uploads_screenshot():
    storage = _FakeStorage()
    db = FakeSupabase()
    proof = RevenueProofService(db, storage).create_proof("user-1", BODY, b"png", "my shot.png", "image/png")

    assert proof["screenshot_url"].startswith("https://cdn.example.com/revenue-proofs/user-1/")
    assert storage.uploaded[0][1] == "revenue-proofs"
    assert db.rows("revenue_proofs")[0]["is_hidden"] is False


def test_second_proof_same_day_is_limited():
    db = FakeSupabase({"revenue_proofs": [_proof()]})
    with pytest.raises(DailyLimitExceeded) as exc:
        RevenueProofService(db, _FakeStorage()).create_proof("user-1", BODY, b"png", "a.png", "image/png")

    assert exc.value.status_code == 429
    assert "nextAvailable" in exc.value.detail


def test_create_proof_rejects_non_image():
    with pytest.raises(HTTPException) as exc:
        RevenueProofService(FakeSupabase(), _FakeStorage()).create_proof("user-1", BODY, b"%PDF", "a.pdf", "application/pdf")
    assert exc.value.status_code == 400


def test_failed_insert_removes_uploaded_screenshot():
    storage = _FakeStorage()
    db = FakeSupabase()
    service = RevenueProofService(db, storage)
    # 오늘 인증 조회는 통과시키고 insert만 실패시킨다
    service._todays_proof = lambda user_id, now: None
    db.failing_tables.add("revenue_proofs")

    with pytest.raises(HTTPException) as exc:
        service.create_proof("user-1", BODY, b"png", "a.png", "image/png")

    assert exc.value.status_code == 500
    assert storage.deleted == [(storage.uploaded[0][0], "revenue-proofs")]


def test_update_after_edit_window_is_forbidden():
    old = (utcnow() - timedelta(hours=25)).isoformat()
    db = FakeSupabase({"revenue_proofs": [_proof(created_at=old)]})

    with pytest.raises(HTTPException) as exc:
        RevenueProofService(db).update_proof("proof-1", "user-1", ProofUpdate(title="수정된 제목"))
    assert exc.value.status_code == 403


def test_hidden_proof_visible_only_to_owner():
    db = FakeSupabase({"revenue_proofs": [_proof(is_hidden=True)]})
    service = RevenueProofService(db)

    assert service.get_proof("proof-1", "user-1")["id"] == "proof-1"
    with pytest.raises(HTTPException) as exc:
        service.get_proof("proof-1", "user-2")
    assert exc.value.status_code == 403


def test_third_report_hides_proof_and_notifies_admins():
    db = FakeSupabase({"revenue_proofs": [_proof(reports_count=2)]})
    report = ProofReportCreate(reason="fake", acknowledged=True)

    result = RevenueProofService(db).report("proof-1", "user-9", report)

    assert result == {"success": True, "is_hidden": True, "reportsCount": 3}
    assert db.rows("revenue_proofs")[0]["is_hidden"] is True
    assert db.rows("admin_notifications")[0]["type"] == "auto_hidden_proof"


@pytest.mark.parametrize("reporter, body", [
    ("user-1", ProofReportCreate(reason="spam", acknowledged=True)),
    ("user-2", ProofReportCreate(reason="spam", acknowledged=False)),
])
def test_invalid_reports_are_rejected(reporter, body):
    db = FakeSupabase({"revenue_proofs": [_proof()]})
    with pytest.raises(HTTPException) as exc:
        RevenueProofService(db).report("proof-1", reporter, body)
    assert exc.value.status_code == 400


def test_duplicate_report_is_rejected():
    db = FakeSupabase({
        "revenue_proofs": [_proof()],
        "proof_reports": [{"id": "r-1", "proof_id": "proof-1", "reporter_id": "user-2", "reason": "spam"}],
    })
    with pytest.raises(HTTPException) as exc:
        RevenueProofService(db).report("proof-1", "user-2", ProofReportCreate(reason="spam", acknowledged=True))
    assert exc.value.status_code == 400


def test_ranking_excludes_hidden_and_reports_my_rank():
    now = utcnow().isoformat()
    db = FakeSupabase({"revenue_proofs": [
        _proof(id="p1", user_id="user-1", amount=100, created_at=now),
        _proof(id="p2", user_id="user-2", amount=500, created_at=now),
        _proof(id="p3", user_id="user-3", amount=9000, created_at=now, is_hidden=True),
    ]})

    result = RevenueProofService(db).ranking("daily", current_user_id="user-1")

    assert [e["user_id"] for e in result["rankings"]] == ["user-2", "user-1"]
    assert result["myRank"] == 2
    assert result["totalParticipants"] == 2


def test_delete_all_requires_confirmation():
    storage = _FakeStorage()
    db = FakeSupabase({"revenue_proofs": [_proof()]})
    service = RevenueProofService(db, storage)

    with pytest.raises(HTTPException):
        service.delete_all_mine("user-1", "yes")

    assert service.delete_all_mine("user-1", "DELETE_ALL_MY_PROOFS") == {"success": True, "deletedCount": 1}
    assert storage.deleted == [("user-1/1_shot.png", "revenue-proofs")]
