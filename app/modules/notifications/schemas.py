from pydantic import BaseModel, Field
from typing import Optional, List, Literal


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    type: Literal["info", "success", "warning", "error"] = "info"
    target_user_id: Optional[str] = Field(None, alias="targetUserId")

    model_config = {"populate_by_name": True}


class NotificationMarkRead(BaseModel):
    notification_ids: Optional[List[str]] = Field(None, alias="notificationIds")
    mark_all: bool = Field(False, alias="markAll")

    model_config = {"populate_by_name": True}
