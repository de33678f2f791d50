from pydantic import BaseModel, Field
from typing import Optional, List


class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_public: bool = False
    tags: List[str] = Field(default_factory=list, max_length=10)
    cover_image: Optional[str] = None


class CollectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = Field(None, max_length=10)
    cover_image: Optional[str] = None


class CollectionItemCreate(BaseModel):
    collection_id: str
    video_id: str = Field(..., min_length=1, max_length=64)
    notes: Optional[str] = Field(None, max_length=1000)
    tags: List[str] = Field(default_factory=list, max_length=10)


class ItemPosition(BaseModel):
    video_id: str
    position: int = Field(..., ge=0)


class CollectionReorder(BaseModel):
    collection_id: str
    items: List[ItemPosition]
