import logging
import math
from collections import Counter
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.community.schemas import PostCreate, PostUpdate, CommentCreate
from app.modules.users.service import UserService, author_card
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

PAGE_SIZE = 20


class CommunityService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)

    def _get_post_row(self, post_id: str) -> Dict[str, Any]:
        post = first_row(
            self.supabase.table("community_posts")
            .select("*")
            .eq("id", post_id)
            .limit(1)
            .execute()
        )
        if not post:
            raise HTTPException(status_code=404, detail="Post not found")
        return post

    def _require_author(self, post_id: str, user_id: str) -> Dict[str, Any]:
        post = self._get_post_row(post_id)
        if post.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Only the author can modify this post")
        return post

    def _counts(self, table: str, post_ids: List[str]) -> Counter:
        if not post_ids:
            return Counter()
        result = self.supabase.table(table)\
            .select("post_id")\
            .in_("post_id", post_ids)\
            .execute()
        return Counter(row["post_id"] for row in (result.data or []))

    def list_posts(self, category: str = "board", page: int = 1) -> Dict[str, Any]:
        page = max(1, page)
        offset = (page - 1) * PAGE_SIZE
        try:
            result = self.supabase.table("community_posts")\
                .select("*", count="exact")\
                .eq("category", category)\
                .order("is_pinned", desc=True)\
                .order("created_at", desc=True)\
                .range(offset, offset + PAGE_SIZE - 1)\
                .execute()
        except Exception as e:
            logger.error("Failed to list community posts: %s", e)
            raise HTTPException(status_code=500, detail="Failed to fetch posts")

        posts = result.data or []
        post_ids = [p["id"] for p in posts]
        likes = self._counts("community_likes", post_ids)
        comments = self._counts("community_comments", post_ids)
        authors = self.users.get_profiles_by_ids([p.get("user_id") for p in posts])

        total = result.count if result.count is not None else len(posts)
        return {
            "posts": [
                {
                    **post,
                    "author": author_card(post.get("user_id"), authors.get(post.get("user_id"))),
                    "like_count": likes[post["id"]],
                    "comment_count": comments[post["id"]],
                }
                for post in posts
            ],
            "totalCount": total,
            "currentPage": page,
            "totalPages": math.ceil(total / PAGE_SIZE) if total else 0,
        }

    def create_post(self, user_id: str, body: PostCreate) -> Dict[str, Any]:
        now = utcnow().isoformat()
        try:
            result = self.supabase.table("community_posts").insert({
                "user_id": user_id,
                "category": body.category,
                "title": body.title.strip(),
                "content": body.content.strip(),
                "tags": body.tags,
                "is_pinned": False,
                "view_count": 0,
                "created_at": now,
                "updated_at": now,
            }).execute()
        except Exception as e:
            logger.error("Failed to create post for %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to create post")
        return first_row(result)

    def get_post(self, post_id: str, current_user_id: Optional[str] = None) -> Dict[str, Any]:
        """Post detail with comments; every read counts as a view."""
        post = self._get_post_row(post_id)
        try:
            self.supabase.rpc("increment_post_view_count", {"post_id": post_id}).execute()
            post["view_count"] = (post.get("view_count") or 0) + 1
        except Exception as e:
            logger.warning("Failed to increment view count for %s: %s", post_id, e)

        comments = self.supabase.table("community_comments")\
            .select("*")\
            .eq("post_id", post_id)\
            .order("created_at")\
            .execute().data or []
        likes = self.supabase.table("community_likes")\
            .select("user_id")\
            .eq("post_id", post_id)\
            .execute().data or []

        authors = self.users.get_profiles_by_ids([post.get("user_id")] + [c.get("user_id") for c in comments])
        return {
            **post,
            "author": author_card(post.get("user_id"), authors.get(post.get("user_id"))),
            "comments": [
                {**c, "author": author_card(c.get("user_id"), authors.get(c.get("user_id")))}
                for c in comments
            ],
            "like_count": len(likes),
            "comment_count": len(comments),
            "isLiked": bool(current_user_id) and any(l.get("user_id") == current_user_id for l in likes),
        }

    def update_post(self, post_id: str, user_id: str, body: PostUpdate) -> Dict[str, Any]:
        self._require_author(post_id, user_id)
        update_data = body.model_dump(exclude_none=True)
        if not update_data:
            raise HTTPException(status_code=400, detail="Nothing to update")
        update_data["updated_at"] = utcnow().isoformat()
        result = self.supabase.table("community_posts")\
            .update(update_data)\
            .eq("id", post_id)\
            .execute()
        return first_row(result)

    def delete_post(self, post_id: str, user_id: str) -> bool:
        self._require_author(post_id, user_id)
        self.supabase.table("community_posts").delete().eq("id", post_id).execute()
        logger.info("Post %s deleted by %s", post_id, user_id)
        return True

    def add_comment(self, post_id: str, user_id: str, body: CommentCreate) -> Dict[str, Any]:
        self._get_post_row(post_id)
        now = utcnow().isoformat()
        result = self.supabase.table("community_comments").insert({
            "post_id": post_id,
            "user_id": user_id,
            "content": body.content.strip(),
            "created_at": now,
            "updated_at": now,
        }).execute()
        return first_row(result)

    def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> bool:
        comment = first_row(
            self.supabase.table("community_comments")
            .select("*")
            .eq("id", comment_id)
            .eq("post_id", post_id)
            .limit(1)
            .execute()
        )
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Only the author can delete this comment")
        self.supabase.table("community_comments").delete().eq("id", comment_id).execute()
        return True

    def toggle_like(self, post_id: str, user_id: str) -> Dict[str, Any]:
        self._get_post_row(post_id)
        existing = first_row(
            self.supabase.table("community_likes")
            .select("id")
            .eq("post_id", post_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if existing:
            self.supabase.table("community_likes").delete().eq("id", existing["id"]).execute()
            liked = False
        else:
            self.supabase.table("community_likes").insert({"post_id": post_id, "user_id": user_id}).execute()
            liked = True
        count = self._counts("community_likes", [post_id])[post_id]
        return {"liked": liked, "likeCount": count}
