from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CertificateCreate(BaseModel):
    course_id: str
    completion_date: Optional[datetime] = None
    score: Optional[int] = None


class CertificateUpdate(BaseModel):
    id: str
    is_public: Optional[bool] = None
    certificate_url: Optional[str] = Field(None, max_length=500)
