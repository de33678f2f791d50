from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

WorkType = Literal["student", "employee", "freelancer", "business", "other"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced", "expert"]


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=2, max_length=30, pattern=r"^[a-zA-Z0-9_]+$")
    full_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    channel_name: Optional[str] = Field(None, max_length=100)
    channel_url: Optional[str] = Field(None, max_length=500)
    work_type: Optional[WorkType] = None
    job_category: Optional[str] = Field(None, max_length=100)
    current_income: Optional[str] = Field(None, max_length=50)
    target_income: Optional[str] = Field(None, max_length=50)
    experience_level: Optional[ExperienceLevel] = None

    @field_validator("channel_url", "avatar_url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        if value and not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value


class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    random_nickname: Optional[str] = None
    channel_name: Optional[str] = None
    channel_url: Optional[str] = None
    work_type: Optional[str] = None
    job_category: Optional[str] = None
    current_income: Optional[str] = None
    target_income: Optional[str] = None
    experience_level: Optional[str] = None
    naver_cafe_nickname: Optional[str] = None
    naver_cafe_member_url: Optional[str] = None
    naver_cafe_verified: bool = False
    naver_cafe_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NaverCafeVerifyRequest(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=50)
    member_url: str = Field(..., alias="memberUrl")

    model_config = {"populate_by_name": True}


class NaverCafeReview(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    approved: bool
    reason: Optional[str] = Field(None, max_length=500)

    model_config = {"populate_by_name": True}


class NaverCafeStatus(BaseModel):
    verified: bool
    nickname: Optional[str] = None
    memberUrl: Optional[str] = None
    verifiedAt: Optional[datetime] = None
    verificationHistory: List[dict] = []


class AccountDeleteRequest(BaseModel):
    password: str = Field(..., min_length=1)
    confirm_text: Optional[Literal["DELETE MY ACCOUNT"]] = Field(None, alias="confirmText")
    reason: Optional[str] = Field(None, max_length=500)

    model_config = {"populate_by_name": True}
