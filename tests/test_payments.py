"""결제 의도 생성/승인 및 Stripe 웹훅 테스트"""
import asyncio
import json
import time

import httpx
import pytest
from fastapi import HTTPException

from app.modules.payments.schemas import PaymentConfirm, PaymentIntentCreate
from app.modules.payments.service import PaymentService, StripeWebhookService, build_order_id
from app.modules.payments.stripe_signature import (
    SignatureVerificationError,
    compute_signature,
    verify_signature,
)
from app.modules.payments.toss_client import TossPaymentsClient, TossPaymentsError
from tests.conftest import USER, FakeSupabase
from tests.test_toss_client import _patch_async_client

SECRET = "whsec_test"


class FakeToss:
    def __init__(self, error=None, lookup=None):
        self.error = error
        self.lookup = lookup
        self.cancelled = []

    async def confirm_payment(self, payment_key, order_id, amount):
        if self.error:
            raise self.error
        return {"method": "카드", "approvedAt": "2025-01-01T00:00:00+09:00", "receipt": {"url": "https://r"}}

    async def cancel_payment(self, payment_key, cancel_reason, cancel_amount=None):
        self.cancelled.append((payment_key, cancel_reason))
        return {"status": "CANCELED"}

    async def get_payment(self, payment_key):
        return self.lookup or {}


def _db(**tables):
    base = {
        "courses": [{"id": "course-1", "title": "유튜브 입문", "price": 50000, "student_count": 3}],
        "profiles": [{"id": "user-1", "username": "홍길동"}],
        "purchases": [],
        "coupons": [],
    }
    base.update(tables)
    return FakeSupabase(base)


def _pending(amount=50000):
    return {
        "id": "purchase-1",
        "user_id": "user-1",
        "course_id": "course-1",
        "amount": 50000,
        "final_amount": amount,
        "payment_intent_id": "ORDER_1",
        "status": "pending",
    }


def test_build_order_id_format():
    assert build_order_id("course-1", "abcdef123456", now_ms=1700000000000) == "ORDER_1700000000000_course-1_abcdef12"


def test_create_intent_inserts_pending_purchase():
    db = _db()
    result = PaymentService(db).create_intent(USER, PaymentIntentCreate(courseId="course-1"))

    assert result["amount"] == 50000
    assert result["orderName"] == "유튜브 입문"
    assert result["customerName"] == "홍길동"
    purchase = db.rows("purchases")[0]
    assert purchase["status"] == "pending"
    assert purchase["payment_intent_id"] == result["orderId"]


def test_create_intent_rejects_already_purchased_course():
    db = _db(purchases=[{**_pending(), "status": "completed"}])
    with pytest.raises(HTTPException) as exc:
        PaymentService(db).create_intent(USER, PaymentIntentCreate(courseId="course-1"))
    assert exc.value.status_code == 400


def test_create_intent_missing_course():
    with pytest.raises(HTTPException) as exc:
        PaymentService(_db()).create_intent(USER, PaymentIntentCreate(courseId="nope"))
    assert exc.value.status_code == 404


def test_confirm_completes_purchase_and_enrolls():
    db = _db(purchases=[_pending()])
    service = PaymentService(db, FakeToss())

    result = asyncio.run(service.confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000)))

    assert result["success"] is True
    assert db.rows("purchases")[0]["status"] == "completed"
    assert db.rows("course_enrollments")[0]["is_active"] is True
    assert db.rows("courses")[0]["student_count"] == 4


def test_confirm_amount_mismatch():
    service = PaymentService(_db(purchases=[_pending()]), FakeToss())
    with pytest.raises(HTTPException) as exc:
        asyncio.run(service.confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=100)))
    assert exc.value.status_code == 400


def test_confirm_already_completed_returns_conflict():
    service = PaymentService(_db(purchases=[{**_pending(), "status": "completed"}]), FakeToss())
    with pytest.raises(HTTPException) as exc:
        asyncio.run(service.confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000)))
    assert exc.value.status_code == 409


def test_confirm_provider_error_is_reported():
    toss = FakeToss(error=TossPaymentsError("카드 한도 초과", 400, code="EXCEED_MAX_CARD_LIMIT"))
    service = PaymentService(_db(purchases=[_pending()]), toss)
    with pytest.raises(HTTPException) as exc:
        asyncio.run(service.confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000)))
    assert exc.value.status_code == 400
    assert exc.value.detail["code"] == "EXCEED_MAX_CARD_LIMIT"


def test_confirm_cancels_payment_when_purchase_update_fails():
    """DB 갱신 실패 시 승인된 결제를 취소하고 500을 반환한다"""
    db = _db(purchases=[_pending()])
    toss = FakeToss()
    service = PaymentService(db, toss)
    original_table = db.table

    def table(name):
        query = original_table(name)
        if name == "purchases":
            original_update = query.update

            def failing_update(payload):
                if payload.get("status") == "completed":
                    raise RuntimeError("db down")
                return original_update(payload)

            query.update = failing_update
        return query

    db.table = table
    with pytest.raises(HTTPException) as exc:
        asyncio.run(service.confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000)))

    assert exc.value.status_code == 500
    assert toss.cancelled == [("pk", "Order processing failed")]


def test_verify_signature_accepts_valid_header():
    payload = b'{"id":"evt_1"}'
    ts = int(time.time())
    header = f"t={ts},v1={compute_signature(payload, ts, SECRET)}"
    assert verify_signature(payload, header, SECRET) == ts


def test_verify_signature_rejects_stale_timestamp():
    payload = b'{"id":"evt_1"}'
    ts = 1_000_000
    header = f"t={ts},v1={compute_signature(payload, ts, SECRET)}"
    with pytest.raises(SignatureVerificationError):
        verify_signature(payload, header, SECRET, tolerance=300, now=ts + 301)


def test_verify_signature_rejects_tampered_payload():
    ts = int(time.time())
    header = f"t={ts},v1={compute_signature(b'original', ts, SECRET)}"
    with pytest.raises(SignatureVerificationError):
        verify_signature(b"tampered", header, SECRET)


def _refund_event(event_id="evt_refund", amount=50000, refunded=True):
    return {
        "id": event_id,
        "type": "charge.refunded",
        "data": {"object": {"payment_intent": "pi_1", "amount_refunded": amount, "refunded": refunded}},
    }


def test_refund_event_deactivates_enrollment_once():
    db = _db(
        purchases=[{**_pending(), "payment_intent_id": "pi_1", "status": "completed"}],
        course_enrollments=[{"user_id": "user-1", "course_id": "course-1", "is_active": True}],
    )
    service = StripeWebhookService(db)

    assert service.handle_event(_refund_event()) == {"received": True}
    assert service.handle_event(_refund_event()) == {"received": True, "duplicate": True}

    assert db.rows("purchases")[0]["status"] == "refunded"
    assert db.rows("course_enrollments")[0]["is_active"] is False
    assert db.rows("courses")[0]["student_count"] == 2
    assert len(db.rows("webhook_events")) == 1


def test_webhook_route_checks_signature(client_factory, supabase, monkeypatch):
    monkeypatch.setattr("app.modules.payments.routes.settings.stripe_webhook_secret", SECRET)
    client = client_factory()
    payload = json.dumps({"id": "evt_1", "type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_x"}}})
    ts = int(time.time())

    bad = client.post("/api/v1/payment/webhook", content=payload, headers={"stripe-signature": f"t={ts},v1=deadbeef"})
    assert bad.status_code == 400

    missing = client.post("/api/v1/payment/webhook", content=payload)
    assert missing.status_code == 400

    signature = compute_signature(payload.encode(), ts, SECRET)
    ok = client.post("/api/v1/payment/webhook", content=payload, headers={"stripe-signature": f"t={ts},v1={signature}"})
    assert ok.status_code == 200
    assert ok.json() == {"received": True}
    assert supabase.rows("webhook_events")[0]["event_id"] == "evt_1"


def test_confirm_completes_order_when_toss_already_approved_it():
    """재시도가 ALREADY_PROCESSED_PAYMENT 를 받으면 결제 조회 후 주문을 완료한다"""
    db = _db(purchases=[_pending()])
    toss = FakeToss(
        error=TossPaymentsError("이미 처리된 결제 입니다.", 400, code="ALREADY_PROCESSED_PAYMENT"),
        lookup={"status": "DONE", "orderId": "ORDER_1", "totalAmount": 50000, "method": "카드"},
    )

    result = asyncio.run(
        PaymentService(db, toss).confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000))
    )

    assert result["success"] is True
    assert db.rows("purchases")[0]["status"] == "completed"
    assert db.rows("course_enrollments")[0]["is_active"] is True


@pytest.mark.parametrize(
    "lookup",
    [
        {"status": "CANCELED", "orderId": "ORDER_1", "totalAmount": 50000},
        {"status": "DONE", "orderId": "ORDER_2", "totalAmount": 50000},
        {"status": "DONE", "orderId": "ORDER_1", "totalAmount": 100},
    ],
)
def test_confirm_already_processed_without_matching_payment_fails(lookup):
    db = _db(purchases=[_pending()])
    toss = FakeToss(
        error=TossPaymentsError("이미 처리된 결제 입니다.", 400, code="ALREADY_PROCESSED_PAYMENT"),
        lookup=lookup,
    )
    with pytest.raises(HTTPException) as exc:
        asyncio.run(
            PaymentService(db, toss).confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000))
        )
    assert exc.value.status_code == 400
    assert db.rows("purchases")[0]["status"] == "pending"


def test_confirm_recovers_when_first_attempt_returns_server_error(monkeypatch):
    """첫 승인 요청이 500 이고 재시도가 이미 처리됨을 받아도 구매가 완료된다"""
    requests = _patch_async_client(
        monkeypatch,
        [
            httpx.Response(500, json={"code": "FAILED_INTERNAL_SYSTEM_PROCESSING", "message": "내부 오류"}),
            httpx.Response(400, json={"code": "ALREADY_PROCESSED_PAYMENT", "message": "이미 처리된 결제 입니다."}),
            httpx.Response(200, json={"status": "DONE", "orderId": "ORDER_1", "totalAmount": 50000, "method": "카드"}),
        ],
    )
    toss = TossPaymentsClient(secret_key="test_sk", base_url="https://toss.example.com", backoff_factor=0)
    db = _db(purchases=[_pending()])

    result = asyncio.run(
        PaymentService(db, toss).confirm("user-1", PaymentConfirm(paymentKey="pk", orderId="ORDER_1", amount=50000))
    )

    assert result["success"] is True
    assert [r["headers"].get("Idempotency-Key") for r in requests[:2]] == ["ORDER_1", "ORDER_1"]
    assert requests[2]["url"] == "https://toss.example.com/v1/payments/pk"
    assert db.rows("purchases")[0]["status"] == "completed"
    assert db.rows("courses")[0]["student_count"] == 4


def test_partial_refunds_keep_enrollment_until_fully_refunded():
    """부분 환불은 금액만 기록하고 전액 환불 시 한 번만 수강을 해지한다"""
    db = _db(
        purchases=[{**_pending(), "payment_intent_id": "pi_1", "status": "completed"}],
        course_enrollments=[{"user_id": "user-1", "course_id": "course-1", "is_active": True}],
    )
    service = StripeWebhookService(db)

    service.handle_event(_refund_event("evt_partial_1", amount=10000, refunded=False))
    service.handle_event(_refund_event("evt_partial_2", amount=20000, refunded=False))

    purchase = db.rows("purchases")[0]
    assert purchase["status"] == "completed"
    assert purchase["refund_amount"] == 20000
    assert db.rows("course_enrollments")[0]["is_active"] is True
    assert db.rows("courses")[0]["student_count"] == 3

    service.handle_event(_refund_event("evt_full", amount=50000, refunded=True))
    service.handle_event(_refund_event("evt_full_again", amount=50000, refunded=True))

    assert db.rows("purchases")[0]["status"] == "refunded"
    assert db.rows("course_enrollments")[0]["is_active"] is False
    assert db.rows("courses")[0]["student_count"] == 2
