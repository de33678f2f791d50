from pydantic import BaseModel, Field
from typing import Optional, List, Literal

PostCategory = Literal["board", "qna", "study"]


class PostCreate(BaseModel):
    category: PostCategory = "board"
    title: str = Field(..., min_length=2, max_length=100)
    content: str = Field(..., min_length=10, max_length=10000)
    tags: List[str] = Field(default_factory=list, max_length=10)


class PostUpdate(BaseModel):
    category: Optional[PostCategory] = None
    title: Optional[str] = Field(None, min_length=2, max_length=100)
    content: Optional[str] = Field(None, min_length=10, max_length=10000)
    tags: Optional[List[str]] = Field(None, max_length=10)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class PostListResponse(BaseModel):
    posts: List[dict]
    totalCount: int
    currentPage: int
    totalPages: int
