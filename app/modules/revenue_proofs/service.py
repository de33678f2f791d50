import logging
import math
import time
from collections import Counter
from datetime import datetime, timedelta
from supabase import Client
from app.core.time_utils import (
    utcnow, parse_timestamp, to_utc_iso, kst_day_start, kst_month_start, next_kst_midnight, is_same_kst_day
)
from app.database.supabase_client import first_row
from app.modules.revenue_proofs.schemas import ProofCreate, ProofUpdate, ProofCommentCreate, ProofReportCreate
from app.modules.uploads.service import validate_image, sanitize_filename
from app.modules.uploads.storage import ObjectStorage
from app.modules.users.service import UserService, author_card
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

AUTO_HIDE_THRESHOLD = 3
EDIT_WINDOW_HOURS = 24
SCREENSHOT_BUCKET = "revenue-proofs"
DELETE_ALL_CONFIRMATION = "DELETE_ALL_MY_PROOFS"
TRACKED_PLATFORMS = ("youtube", "instagram", "tiktok")


class DailyLimitExceeded(HTTPException):
    def __init__(self, next_available: datetime):
        super().__init__(
            status_code=429,
            detail={
                "error": "You can only post one revenue proof per day",
                "nextAvailable": to_utc_iso(next_available),
            },
        )


def list_period_start(period: str, now: datetime) -> Optional[datetime]:
    """Gallery filter: today (KST), last 7 days or last 30 days."""
    if period == "daily":
        return kst_day_start(now)
    if period == "weekly":
        return now - timedelta(days=7)
    if period == "monthly":
        return now - timedelta(days=30)
    return None


def ranking_period_start(period: str, now: datetime) -> datetime:
    """Ranking window: today (KST), last 7 days, or the current KST month."""
    if period == "daily":
        return kst_day_start(now)
    if period == "weekly":
        return now - timedelta(days=7)
    return kst_month_start(now)


def aggregate_ranking(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sum amounts per user, highest first, with 1-based ranks."""
    totals: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        user_id = row.get("user_id")
        if not user_id:
            continue
        entry = totals.setdefault(user_id, {"user_id": user_id, "total_amount": 0, "proof_count": 0, "platforms": []})
        entry["total_amount"] += int(row.get("amount") or 0)
        entry["proof_count"] += 1
        platform = row.get("platform")
        if platform and platform not in entry["platforms"]:
            entry["platforms"].append(platform)
    ranked = sorted(totals.values(), key=lambda e: (-e["total_amount"], -e["proof_count"], e["user_id"]))
    for index, entry in enumerate(ranked, start=1):
        entry["rank"] = index
    return ranked


def annotate_own_proof(proof: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    created = parse_timestamp(proof.get("created_at")) or now
    elapsed_hours = (now - created).total_seconds() / 3600
    can_edit = elapsed_hours < EDIT_WINDOW_HOURS
    return {
        **proof,
        "isToday": is_same_kst_day(created, now),
        "canEdit": can_edit,
        "hoursRemaining": max(0, math.floor(EDIT_WINDOW_HOURS - elapsed_hours)) if can_edit else 0,
    }


def proof_stats(proofs: List[Dict[str, Any]]) -> Dict[str, Any]:
    platforms = Counter(p.get("platform") for p in proofs)
    return {
        "totalProofs": len(proofs),
        "totalAmount": sum(int(p.get("amount") or 0) for p in proofs),
        "totalLikes": sum(int(p.get("likes_count") or 0) for p in proofs),
        "totalComments": sum(int(p.get("comments_count") or 0) for p in proofs),
        "hiddenCount": sum(1 for p in proofs if p.get("is_hidden")),
        "platforms": {name: platforms.get(name, 0) for name in TRACKED_PLATFORMS},
    }


class RevenueProofService:
    def __init__(self, supabase: Client, storage: Optional[ObjectStorage] = None):
        self.supabase = supabase
        self.storage = storage
        self.users = UserService(supabase)

    def _get_proof(self, proof_id: str) -> Dict[str, Any]:
        proof = first_row(
            self.supabase.table("revenue_proofs")
            .select("*")
            .eq("id", proof_id)
            .limit(1)
            .execute()
        )
        if not proof:
            raise HTTPException(status_code=404, detail="Revenue proof not found")
        return proof

    def _require_owner(self, proof_id: str, user_id: str) -> Dict[str, Any]:
        proof = self._get_proof(proof_id)
        if proof.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Only the owner can modify this proof")
        return proof

    def _with_authors(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        profiles = self.users.get_profiles_by_ids([r.get("user_id") for r in rows])
        return [{**r, "user": author_card(r.get("user_id"), profiles.get(r.get("user_id")))} for r in rows]

    def _todays_proof(self, user_id: str, now: datetime) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("revenue_proofs")
            .select("id, created_at")
            .eq("user_id", user_id)
            .gte("created_at", to_utc_iso(kst_day_start(now)))
            .limit(1)
            .execute()
        )

    def list_proofs(
        self,
        page: int = 1,
        limit: int = 20,
        platform: Optional[str] = None,
        period: str = "all",
    ) -> Dict[str, Any]:
        offset = (page - 1) * limit
        query = self.supabase.table("revenue_proofs")\
            .select("*", count="exact")\
            .eq("is_hidden", False)
        if platform:
            query = query.eq("platform", platform)
        start = list_period_start(period, utcnow())
        if start is not None:
            query = query.gte("created_at", to_utc_iso(start))
        try:
            result = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        except Exception as e:
            logger.error("Failed to list revenue proofs: %s", e)
            raise HTTPException(status_code=500, detail="Failed to fetch revenue proofs")

        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return {
            "data": self._with_authors(rows),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }

    def create_proof(
        self,
        user_id: str,
        body: ProofCreate,
        screenshot: bytes,
        filename: Optional[str],
        content_type: Optional[str],
    ) -> Dict[str, Any]:
        now = utcnow()
        if self._todays_proof(user_id, now):
            raise DailyLimitExceeded(next_kst_midnight(now))

        validate_image(content_type, len(screenshot))
        if self.storage is None:
            raise HTTPException(status_code=500, detail="Storage is not configured")
        path = f"{user_id}/{int(time.time() * 1000)}_{sanitize_filename(filename)}"
        try:
            url = self.storage.upload_file(screenshot, path, content_type, bucket=SCREENSHOT_BUCKET)
        except Exception as e:
            logger.error("Screenshot upload failed for %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to upload screenshot")

        try:
            result = self.supabase.table("revenue_proofs").insert({
                "user_id": user_id,
                "title": body.title.strip(),
                "content": body.content.strip(),
                "amount": body.amount,
                "platform": body.platform,
                "screenshot_url": url,
                "screenshot_path": path,
                "likes_count": 0,
                "comments_count": 0,
                "reports_count": 0,
                "is_hidden": False,
                "created_at": now.isoformat(),
                "updated_at": now.isoformat(),
            }).execute()
        except Exception as e:
            logger.error("Failed to insert revenue proof for %s: %s", user_id, e)
            self.storage.delete_file(path, bucket=SCREENSHOT_BUCKET)
            raise HTTPException(status_code=500, detail="Failed to create revenue proof")

        logger.info("Revenue proof created by %s (%s)", user_id, body.platform)
        return first_row(result)

    def get_proof(self, proof_id: str, current_user_id: Optional[str] = None) -> Dict[str, Any]:
        proof = self._get_proof(proof_id)
        if proof.get("is_hidden") and proof.get("user_id") != current_user_id:
            raise HTTPException(status_code=403, detail="This proof has been hidden")

        likes = self.supabase.table("proof_likes")\
            .select("user_id")\
            .eq("proof_id", proof_id)\
            .execute().data or []
        comments = self.list_comments(proof_id)
        detail = self._with_authors([proof])[0]
        return {
            **detail,
            "likes": likes,
            "comments": comments,
            "isLiked": bool(current_user_id) and any(l.get("user_id") == current_user_id for l in likes),
        }

    def update_proof(self, proof_id: str, user_id: str, body: ProofUpdate) -> Dict[str, Any]:
        proof = self._require_owner(proof_id, user_id)
        created = parse_timestamp(proof.get("created_at"))
        if created and utcnow() - created > timedelta(hours=EDIT_WINDOW_HOURS):
            raise HTTPException(status_code=403, detail="Proofs can only be edited within 24 hours of posting")
        update_data = {k: v.strip() for k, v in body.model_dump(exclude_none=True).items()}
        if not update_data:
            raise HTTPException(status_code=400, detail="Nothing to update")
        update_data["updated_at"] = utcnow().isoformat()
        result = self.supabase.table("revenue_proofs")\
            .update(update_data)\
            .eq("id", proof_id)\
            .execute()
        return first_row(result)

    def delete_proof(self, proof_id: str, user_id: str) -> bool:
        proof = self._require_owner(proof_id, user_id)
        self.supabase.table("revenue_proofs").delete().eq("id", proof_id).execute()
        if self.storage is not None and proof.get("screenshot_path"):
            self.storage.delete_file(proof["screenshot_path"], bucket=SCREENSHOT_BUCKET)
        logger.info("Revenue proof %s deleted by owner", proof_id)
        return True

    def toggle_like(self, proof_id: str, user_id: str) -> Dict[str, Any]:
        proof = self._get_proof(proof_id)
        existing = first_row(
            self.supabase.table("proof_likes")
            .select("id")
            .eq("proof_id", proof_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        count = int(proof.get("likes_count") or 0)
        if existing:
            self.supabase.table("proof_likes").delete().eq("id", existing["id"]).execute()
            count = max(0, count - 1)
            liked = False
        else:
            self.supabase.table("proof_likes").insert({"proof_id": proof_id, "user_id": user_id}).execute()
            count += 1
            liked = True
        self.supabase.table("revenue_proofs").update({"likes_count": count}).eq("id", proof_id).execute()
        return {"liked": liked, "likesCount": count}

    # Comments

    def list_comments(self, proof_id: str) -> List[Dict[str, Any]]:
        rows = self.supabase.table("proof_comments")\
            .select("*")\
            .eq("proof_id", proof_id)\
            .order("created_at")\
            .execute().data or []
        return self._with_authors(rows)

    def add_comment(self, proof_id: str, user_id: str, body: ProofCommentCreate) -> Dict[str, Any]:
        proof = self._get_proof(proof_id)
        if proof.get("is_hidden"):
            raise HTTPException(status_code=403, detail="Cannot comment on a hidden proof")
        comment = first_row(
            self.supabase.table("proof_comments").insert({
                "proof_id": proof_id,
                "user_id": user_id,
                "content": body.content.strip(),
                "created_at": utcnow().isoformat(),
            }).execute()
        )
        self.supabase.table("revenue_proofs")\
            .update({"comments_count": int(proof.get("comments_count") or 0) + 1})\
            .eq("id", proof_id)\
            .execute()
        return comment

    def delete_comment(self, proof_id: str, comment_id: str, user_id: str) -> bool:
        comment = first_row(
            self.supabase.table("proof_comments")
            .select("*")
            .eq("id", comment_id)
            .eq("proof_id", proof_id)
            .limit(1)
            .execute()
        )
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Only the author can delete this comment")
        self.supabase.table("proof_comments").delete().eq("id", comment_id).execute()
        proof = self._get_proof(proof_id)
        self.supabase.table("revenue_proofs")\
            .update({"comments_count": max(0, int(proof.get("comments_count") or 0) - 1)})\
            .eq("id", proof_id)\
            .execute()
        return True

    # Reports

    def report(self, proof_id: str, user_id: str, body: ProofReportCreate) -> Dict[str, Any]:
        """Record a report; the third one hides the proof and notifies admins."""
        if not body.acknowledged:
            raise HTTPException(status_code=400, detail="You must acknowledge the reporting policy")
        proof = self._get_proof(proof_id)
        if proof.get("user_id") == user_id:
            raise HTTPException(status_code=400, detail="You cannot report your own proof")
        if proof.get("is_hidden"):
            raise HTTPException(status_code=400, detail="This proof is already hidden")
        already = self.supabase.table("proof_reports")\
            .select("id")\
            .eq("proof_id", proof_id)\
            .eq("reporter_id", user_id)\
            .limit(1)\
            .execute()
        if already.data:
            raise HTTPException(status_code=400, detail="You have already reported this proof")

        self.supabase.table("proof_reports").insert({
            "proof_id": proof_id,
            "reporter_id": user_id,
            "reason": body.reason,
            "details": body.details,
            "created_at": utcnow().isoformat(),
        }).execute()

        reports_count = int(proof.get("reports_count") or 0) + 1
        is_hidden = reports_count >= AUTO_HIDE_THRESHOLD
        self.supabase.table("revenue_proofs")\
            .update({"reports_count": reports_count, "is_hidden": is_hidden})\
            .eq("id", proof_id)\
            .execute()

        if reports_count == AUTO_HIDE_THRESHOLD:
            logger.info("Revenue proof %s auto-hidden after %d reports", proof_id, reports_count)
            try:
                self.supabase.table("admin_notifications").insert({
                    "type": "auto_hidden_proof",
                    "title": "Revenue proof auto-hidden",
                    "message": f"Proof '{proof.get('title')}' was hidden after {reports_count} reports",
                    "metadata": {"proof_id": proof_id, "reports_count": reports_count},
                    "is_read": False,
                    "created_at": utcnow().isoformat(),
                }).execute()
            except Exception as e:
                logger.error("Failed to notify admins about proof %s: %s", proof_id, e)

        return {"success": True, "is_hidden": is_hidden, "reportsCount": reports_count}

    def get_reports(self, proof_id: str, user_id: str, admin: bool = False) -> Dict[str, Any]:
        proof = self._get_proof(proof_id)
        if not admin and proof.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Not allowed to view reports for this proof")
        reports = self.supabase.table("proof_reports")\
            .select("id, reason, details, created_at")\
            .eq("proof_id", proof_id)\
            .order("created_at", desc=True)\
            .execute().data or []
        return {"reports": reports, "reasonCounts": dict(Counter(r.get("reason") for r in reports))}

    # Ranking and personal views

    def ranking(self, period: str = "monthly", limit: int = 10, current_user_id: Optional[str] = None) -> Dict[str, Any]:
        start = ranking_period_start(period, utcnow())
        rows = self.supabase.table("revenue_proofs")\
            .select("user_id, amount, platform")\
            .eq("is_hidden", False)\
            .gte("created_at", to_utc_iso(start))\
            .execute().data or []
        ranked = aggregate_ranking(rows)
        top = ranked[:limit]
        profiles = self.users.get_profiles_by_ids([e["user_id"] for e in top])
        rankings = []
        for entry in top:
            card = author_card(entry["user_id"], profiles.get(entry["user_id"]))
            rankings.append({
                **entry,
                "username": card["username"],
                "nickname": card["nickname"],
                "avatar_url": card["avatar_url"],
            })
        my_rank = None
        if current_user_id:
            my_rank = next((e["rank"] for e in ranked if e["user_id"] == current_user_id), None)
        return {"period": period, "rankings": rankings, "myRank": my_rank, "totalParticipants": len(ranked)}

    def my_proofs(self, user_id: str, page: int = 1, limit: int = 10, include_hidden: bool = False) -> Dict[str, Any]:
        now = utcnow()
        all_rows = self.supabase.table("revenue_proofs")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .execute().data or []
        visible = all_rows if include_hidden else [p for p in all_rows if not p.get("is_hidden")]
        offset = (page - 1) * limit
        page_rows = visible[offset:offset + limit]

        can_create_today = not any(is_same_kst_day(p.get("created_at"), now) for p in all_rows)
        return {
            "data": [annotate_own_proof(p, now) for p in page_rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": len(visible),
                "totalPages": math.ceil(len(visible) / limit) if visible else 0,
            },
            "stats": proof_stats(all_rows),
            "canCreateToday": can_create_today,
            "nextAvailable": None if can_create_today else to_utc_iso(next_kst_midnight(now)),
        }

    def delete_all_mine(self, user_id: str, confirm: Optional[str]) -> Dict[str, Any]:
        if confirm != DELETE_ALL_CONFIRMATION:
            raise HTTPException(
                status_code=400,
                detail=f"Pass confirm={DELETE_ALL_CONFIRMATION} to delete all of your proofs"
            )
        rows = self.supabase.table("revenue_proofs")\
            .select("id, screenshot_path")\
            .eq("user_id", user_id)\
            .execute().data or []
        self.supabase.table("revenue_proofs").delete().eq("user_id", user_id).execute()
        if self.storage is not None:
            for row in rows:
                if row.get("screenshot_path"):
                    self.storage.delete_file(row["screenshot_path"], bucket=SCREENSHOT_BUCKET)
        logger.info("Deleted %d revenue proofs for %s", len(rows), user_id)
        return {"success": True, "deletedCount": len(rows)}
