from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ThresholdIn(BaseModel):
    role_name: str = Field(..., min_length=1, max_length=100)
    threshold: int = Field(..., ge=0)


class ThresholdOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role_name: str
    threshold: int
    updated_at: Optional[datetime] = None
