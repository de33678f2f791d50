import logging
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_courses(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.supabase.table("courses")\
            .select("*")\
            .eq("is_published", True)
        if category:
            query = query.eq("category", category)
        try:
            return query.order("created_at", desc=True).execute().data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def find_course(self, course_id: str) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("courses")
            .select("*")
            .eq("id", course_id)
            .limit(1)
            .execute()
        )

    def get_course(self, course_id: str) -> Dict[str, Any]:
        course = self.find_course(course_id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        lessons = self.supabase.table("course_lessons")\
            .select("*")\
            .eq("course_id", course_id)\
            .order("order_index")\
            .execute().data or []
        return {**course, "lessons": lessons}

    def list_enrollments(self, user_id: str) -> List[Dict[str, Any]]:
        enrollments = self.supabase.table("course_enrollments")\
            .select("*")\
            .eq("user_id", user_id)\
            .eq("is_active", True)\
            .order("enrolled_at", desc=True)\
            .execute().data or []
        course_ids = [e["course_id"] for e in enrollments]
        courses = {}
        if course_ids:
            rows = self.supabase.table("courses").select("*").in_("id", course_ids).execute().data or []
            courses = {c["id"]: c for c in rows}
        return [{**e, "course": courses.get(e["course_id"])} for e in enrollments]

    def enroll(self, user_id: str, course_id: str, purchase_id: Optional[str] = None) -> Dict[str, Any]:
        """Upsert an active enrollment (idempotent per user/course)."""
        result = self.supabase.table("course_enrollments")\
            .upsert({
                "user_id": user_id,
                "course_id": course_id,
                "purchase_id": purchase_id,
                "is_active": True,
                "enrolled_at": utcnow().isoformat(),
            }, on_conflict="user_id,course_id")\
            .execute()
        return first_row(result)

    def deactivate_enrollment(self, user_id: str, course_id: str) -> None:
        self.supabase.table("course_enrollments")\
            .update({"is_active": False})\
            .eq("user_id", user_id)\
            .eq("course_id", course_id)\
            .execute()

    def adjust_student_count(self, course_id: str, delta: int) -> int:
        course = self.find_course(course_id)
        if not course:
            logger.warning("Cannot adjust student count of missing course %s", course_id)
            return 0
        new_count = max(0, int(course.get("student_count") or 0) + delta)
        self.supabase.table("courses")\
            .update({"student_count": new_count})\
            .eq("id", course_id)\
            .execute()
        return new_count
