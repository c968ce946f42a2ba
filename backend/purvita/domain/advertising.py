"""
Advertising Script Domain Models

Third-party tracking snippets (pixels, tag managers) injected by the storefront.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ScriptPosition = Literal["head", "body_start", "body_end"]


class AdvertisingScriptCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    provider: Optional[str] = Field(None, max_length=60)
    position: ScriptPosition = "head"
    script_content: str = Field(..., min_length=1)
    is_active: bool = True


class AdvertisingScriptUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    provider: Optional[str] = Field(None, max_length=60)
    position: Optional[ScriptPosition] = None
    script_content: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class AdvertisingScript(AdvertisingScriptCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
