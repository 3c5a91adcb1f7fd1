from __future__ import annotations

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class ViewQueryModel(BaseModel):
    sort_key: Optional[str] = None
    direction: Optional[Literal["ascending", "descending", "asc", "desc"]] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=200)
    top_n: int = Field(default=10, ge=1, le=200)


class StatusResponse(BaseModel):
    status: Literal["loading", "ready", "stale_error", "error"]
    error: Optional[str] = None
    empty_message: Optional[str] = None
    last_updated: Optional[datetime] = None
    refreshing: bool = False
    refresh_interval_seconds: float
    row_counts: Dict[str, int] = Field(default_factory=dict)
