from pydantic import BaseModel, Field
from typing import List, Literal, Optional

ApprovalStatus = Literal["pending", "approved", "rejected"]


class ChannelCreate(BaseModel):
    channel_id: str = Field(..., alias="channelId", min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")

    model_config = {"populate_by_name": True}


class ChannelUpdate(BaseModel):
    status: Optional[ApprovalStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=50)
    subcategory: Optional[str] = Field(None, max_length=50)
    dominant_format: Optional[Literal["shorts", "longform", "live", "mixed"]] = Field(None, alias="dominantFormat")

    model_config = {"populate_by_name": True}


class KeywordAnalyzeRequest(BaseModel):
    channel_ids: Optional[List[str]] = Field(None, alias="channelIds", max_length=200)
    analyze: bool = True

    model_config = {"populate_by_name": True}
