from pydantic import BaseModel, Field
from typing import List


class MetricsRequest(BaseModel):
    video_ids: List[str] = Field(..., alias="videoIds", min_length=1, max_length=200)
    subscriber_count: int = Field(10000, alias="subscriberCount", ge=0)

    model_config = {"populate_by_name": True}
