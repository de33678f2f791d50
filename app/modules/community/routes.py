from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id, get_optional_user
from app.database.supabase_client import get_supabase
from app.modules.community.schemas import PostCreate, PostUpdate, CommentCreate, PostListResponse
from app.modules.community.service import CommunityService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/community/posts", tags=["community"])


def get_community_service(supabase: Client = Depends(get_supabase)) -> CommunityService:
    return CommunityService(supabase)


@router.get("", response_model=PostListResponse)
async def list_posts(
    category: str = Query("board", pattern="^(board|qna|study)$"),
    page: int = Query(1, ge=1),
    service: CommunityService = Depends(get_community_service)
):
    return service.list_posts(category, page)


@router.post("", status_code=201)
async def create_post(
    body: PostCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return {"post": service.create_post(current_user["id"], body)}


@router.get("/{post_id}")
async def get_post(
    post_id: str,
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: CommunityService = Depends(get_community_service)
):
    return {"post": service.get_post(post_id, current_user["id"] if current_user else None)}


@router.put("/{post_id}")
async def update_post(
    post_id: str,
    body: PostUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return {"post": service.update_post(post_id, current_user["id"], body)}


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    service.delete_post(post_id, current_user["id"])
    return {"success": True}


@router.post("/{post_id}/comments", status_code=201)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return {"comment": service.add_comment(post_id, current_user["id"], body)}


@router.delete("/{post_id}/comments/{comment_id}")
async def delete_comment(
    post_id: str,
    comment_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    service.delete_comment(post_id, comment_id, current_user["id"])
    return {"success": True}


@router.post("/{post_id}/like")
async def toggle_like(
    post_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.toggle_like(post_id, current_user["id"])
