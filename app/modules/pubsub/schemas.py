from pydantic import BaseModel, Field
from typing import Optional


class SubscribeRequest(BaseModel):
    channel_id: str = Field(..., alias="channelId", min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")
    channel_title: Optional[str] = Field(None, alias="channelTitle", max_length=200)

    model_config = {"populate_by_name": True}
