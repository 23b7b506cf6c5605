from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SALES_PERIOD_DAYS = {"7days": 7, "30days": 30, "90days": 90, "year": 365}


class AnalyticsQueryDTO(BaseModel):
    """Query-string options shared by the analytics endpoints."""

    model_config = ConfigDict(frozen=True)

    period: Literal["7days", "30days", "90days", "year"] = "30days"
    limit: int = Field(default=10, ge=1, le=100)
    threshold: Optional[int] = Field(default=None, ge=0)
