from pydantic import BaseModel, Field
from typing import Optional, List, Literal

Platform = Literal["youtube", "instagram", "tiktok", "other"]
ReportReason = Literal["spam", "inappropriate", "fake", "copyright", "other"]
Period = Literal["all", "daily", "weekly", "monthly"]


class ProofCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=100)
    content: str = Field(..., min_length=10, max_length=5000)
    amount: int = Field(..., ge=0)
    platform: Platform


class ProofUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=100)
    content: Optional[str] = Field(None, min_length=10, max_length=5000)


class ProofCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class ProofReportCreate(BaseModel):
    reason: ReportReason
    details: Optional[str] = Field(None, max_length=500)
    acknowledged: bool = False


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class ProofListResponse(BaseModel):
    data: List[dict]
    pagination: Pagination


class RankingEntry(BaseModel):
    rank: int
    user_id: str
    username: str
    nickname: str
    avatar_url: Optional[str] = None
    total_amount: int
    proof_count: int
    platforms: List[str]
