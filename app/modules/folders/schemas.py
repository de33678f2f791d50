from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

DEFAULT_COLOR = "#3B82F6"
DEFAULT_ICON = "📁"


class FolderCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = Field(None, max_length=8)

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Folder name is required")
        return value


class FolderUpdate(BaseModel):
    id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = Field(None, max_length=8)


class FolderChannelsAdd(BaseModel):
    folder_id: str = Field(..., alias="folderId")
    channel_ids: List[str] = Field(..., alias="channelIds", min_length=1, max_length=50)

    model_config = {"populate_by_name": True}
