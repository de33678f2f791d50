from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.modules.courses.service import CourseService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/courses", tags=["courses"])


def get_course_service(supabase: Client = Depends(get_supabase)) -> CourseService:
    return CourseService(supabase)


@router.get("")
async def list_courses(
    category: Optional[str] = Query(None),
    service: CourseService = Depends(get_course_service)
):
    return {"courses": service.list_courses(category)}


@router.get("/my/enrollments")
async def my_enrollments(
    current_user: Dict = Depends(get_current_user_id),
    service: CourseService = Depends(get_course_service)
):
    return {"enrollments": service.list_enrollments(current_user["id"])}


@router.get("/{course_id}")
async def get_course(
    course_id: str,
    service: CourseService = Depends(get_course_service)
):
    return {"course": service.get_course(course_id)}
