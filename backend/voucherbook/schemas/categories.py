from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=50)


class CategoryRename(BaseModel):
    name: str = Field(..., max_length=50)


class CategoryRead(BaseModel):
    id: str
    name: str
    is_default: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
