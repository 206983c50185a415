from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, confloat, conint, constr

SessionId = constr(pattern=r"^[A-Za-z0-9_\-]{2,128}$")


class ViewEventIn(BaseModel):
    session_id: SessionId
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    watch_time: confloat(ge=0.0) = Field(0.0, description="Life-to-date seconds watched in this session")
    completed_quarters: List[conint(ge=0, le=3)] = []
    playback_positions: List[confloat(ge=0.0)] = Field([], max_length=512)
    viewer_info: Optional[Dict[str, Any]] = None


class QuarterEventIn(BaseModel):
    session_id: SessionId
    quarter: conint(ge=0, le=3)
    position: confloat(ge=0.0) = 0.0


class CtaClickIn(BaseModel):
    session_id: SessionId


class WatchTimeOut(BaseModel):
    total: float
    average: float


class RetentionOut(BaseModel):
    quarters: List[float]


class DailyViewsOut(BaseModel):
    date: str
    label: str
    count: int


class VideoAnalyticsOut(BaseModel):
    views: int = Field(..., description="Raw delivery counter")
    unique_viewers: int
    watch_time: WatchTimeOut
    retention: RetentionOut
    cta_clicks: int
    views_by_date: List[DailyViewsOut]
