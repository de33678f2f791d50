"""강의 목록, 수강 내역, 수료증 테스트"""
import re

import pytest

from app.modules.certificates.service import certificate_grade, certificate_number

OTHER = {"id": "user-2", "email": "other@example.com", "app_metadata": {}}


def _seed_courses(supabase):
    supabase.tables["courses"] = [
        {"id": "course-1", "title": "쇼츠 기초", "category": "shorts", "is_published": True, "created_at": "2025-01-01"},
        {"id": "course-2", "title": "롱폼 심화", "category": "longform", "is_published": True, "created_at": "2025-02-01"},
        {"id": "course-3", "title": "준비중", "category": "shorts", "is_published": False, "created_at": "2025-03-01"},
    ]
    supabase.tables["course_lessons"] = [
        {"id": "l2", "course_id": "course-1", "order_index": 2},
        {"id": "l1", "course_id": "course-1", "order_index": 1},
    ]


@pytest.mark.parametrize("score, grade", [(None, "Pass"), (95, "A"), (80, "B"), (70, "C"), (69, "Pass")])
def test_certificate_grade(score, grade):
    assert certificate_grade(score) == grade


def test_certificate_number_format():
    assert re.fullmatch(r"CERT-\d{13}-[0-9A-F]{8}", certificate_number())


def test_list_courses_only_published(client_factory, supabase):
    _seed_courses(supabase)
    client = client_factory(None)

    assert [c["id"] for c in client.get("/api/v1/courses").json()["courses"]] == ["course-2", "course-1"]
    shorts = client.get("/api/v1/courses", params={"category": "shorts"}).json()["courses"]
    assert [c["id"] for c in shorts] == ["course-1"]


def test_course_detail_orders_lessons(client_factory, supabase):
    _seed_courses(supabase)
    client = client_factory(None)

    course = client.get("/api/v1/courses/course-1").json()["course"]
    assert [l["id"] for l in course["lessons"]] == ["l1", "l2"]
    assert client.get("/api/v1/courses/missing").status_code == 404


def test_my_enrollments_include_course(client_factory, supabase):
    _seed_courses(supabase)
    supabase.tables["course_enrollments"] = [
        {"user_id": "user-1", "course_id": "course-1", "is_active": True, "enrolled_at": "2025-01-05"},
        {"user_id": "user-1", "course_id": "course-2", "is_active": False, "enrolled_at": "2025-02-05"},
    ]
    enrollments = client_factory().get("/api/v1/courses/my/enrollments").json()["enrollments"]

    assert [e["course"]["title"] for e in enrollments] == ["쇼츠 기초"]


def test_issue_certificate_once(client_factory, supabase):
    client = client_factory()

    created = client.post("/api/v1/certificates", json={"course_id": "course-1", "score": 150})
    assert created.status_code == 201
    cert = created.json()["data"]
    assert (cert["score"], cert["grade"], cert["is_public"]) == (100, "A", False)

    assert client.post("/api/v1/certificates", json={"course_id": "course-1"}).status_code == 409
    by_course = client.get("/api/v1/certificates", params={"courseId": "course-1"}).json()["data"]
    assert by_course["certificate_number"] == cert["certificate_number"]
    assert client.get("/api/v1/certificates", params={"courseId": "course-9"}).json()["data"] is None


def test_certificate_visibility(client_factory, supabase):
    supabase.tables["user_certificates"] = [{"id": "cert-1", "user_id": "user-1", "course_id": "c", "is_public": False}]

    assert client_factory(OTHER).get("/api/v1/certificates", params={"id": "cert-1"}).status_code == 403
    assert client_factory().patch("/api/v1/certificates", json={"id": "cert-1", "is_public": True}).status_code == 200
    assert client_factory(OTHER).get("/api/v1/certificates", params={"id": "cert-1"}).status_code == 200
    assert client_factory(OTHER).patch("/api/v1/certificates", json={"id": "cert-1", "is_public": False}).status_code == 403
