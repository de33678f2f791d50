from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime


class ApiKeySave(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1, max_length=500)
    service_name: str = Field("youtube", alias="serviceName", pattern=r"^[a-z0-9_-]{2,30}$")
    validate_key: bool = Field(True, alias="validate")

    model_config = {"populate_by_name": True}


class ApiKeyAutoSetup(BaseModel):
    service_name: str = Field("youtube", alias="serviceName")

    model_config = {"populate_by_name": True}


class ApiKeyInfo(BaseModel):
    id: str
    service_name: str
    api_key_masked: str
    usage_count: int = 0
    usage_today: int = 0
    is_active: bool = True
    is_valid: Optional[bool] = None
    validation_error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class KeyValidation(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    quota_remaining: Optional[int] = None
