from __future__ import annotations

"""
📊 SessionAnalyticsAggregator
=============================

Ingests playback telemetry per `(video_id, session_id)` and derives the
per-video aggregate.

Write model
-----------
Every mutation is one atomic SQL statement, so concurrent events for sibling
sessions of the same video never lose updates:

- session upsert  → ``INSERT … ON CONFLICT (video_id, session_id) DO UPDATE``
  (start/end/watch time are *replaced*; they are life-to-date totals)
- completed set   → ``INSERT … ON CONFLICT DO NOTHING`` per quarter
- quarter history → plain ``INSERT`` (append-only)
- CTA click       → upsert setting ``cta_clicked = true``

Read model
----------
`compute_aggregate` is read-only. ``views`` is the raw delivery counter on
the video row; every other figure is derived from sessions. The two are
reported side by side and never reconciled.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.metrics import inc_analytics_event
from app.db.base_class import ensure_utc, utcnow
from app.db.models.video import Video
from app.db.models.view_session import ViewSession, ViewSessionMark, ViewSessionQuarter
from app.db.session import unit_of_work
from app.db.upsert import insert_for

logger = logging.getLogger(__name__)

QUARTERS = 4


# ─────────────────────────────────────────────────────────────
# Pure helpers
# ─────────────────────────────────────────────────────────────
def quarter_for_position(position: float, duration: Optional[float], *, default_quarter_seconds: float = 60.0) -> int:
    """Watch quarter (0..3) of a playback position, clamped to range.

    Unknown or non-positive durations fall back to fixed-length quarters.
    """
    size = duration / QUARTERS if duration and duration > 0 else default_quarter_seconds
    q = math.floor(max(0.0, float(position)) / size)
    return min(max(q, 0), QUARTERS - 1)


@dataclass(frozen=True)
class SessionFacts:
    user_id: Optional[UUID]
    watch_time: float
    start_time: Optional[datetime]
    cta_clicked: bool


@dataclass
class VideoAggregate:
    views: int
    unique_viewers: int
    watch_time_total: float
    watch_time_average: float
    retention: List[float]
    cta_clicks: int
    views_by_date: List[Dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "views": self.views,
            "unique_viewers": self.unique_viewers,
            "watch_time": {"total": self.watch_time_total, "average": self.watch_time_average},
            "retention": {"quarters": self.retention},
            "cta_clicks": self.cta_clicks,
            "views_by_date": self.views_by_date,
        }


def _label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def aggregate(
    *,
    views: int,
    sessions: Sequence[SessionFacts],
    sessions_per_quarter: Mapping[int, int],
    today: date,
    window_days: int = 30,
) -> VideoAggregate:
    """
    Fold session facts into the per-video aggregate.

    - unique viewers: distinct non-null user ids
    - watch time: total and mean over all sessions (0/0 without sessions)
    - retention: per quarter, % of sessions that completed it
    - views by date: trailing `window_days` UTC days, oldest first, zero-filled
    """
    count = len(sessions)
    total = float(sum(s.watch_time or 0.0 for s in sessions))
    retention = [
        (sessions_per_quarter.get(q, 0) / count) * 100 if count else 0.0
        for q in range(QUARTERS)
    ]

    per_day: Dict[date, int] = {}
    for s in sessions:
        if s.start_time is not None:
            d = ensure_utc(s.start_time).date()
            per_day[d] = per_day.get(d, 0) + 1

    histogram = []
    for offset in range(window_days - 1, -1, -1):
        day = today - timedelta(days=offset)
        histogram.append({"date": day.isoformat(), "label": _label(day), "count": per_day.get(day, 0)})

    return VideoAggregate(
        views=int(views or 0),
        unique_viewers=len({s.user_id for s in sessions if s.user_id is not None}),
        watch_time_total=total,
        watch_time_average=total / count if count else 0.0,
        retention=retention,
        cta_clicks=sum(1 for s in sessions if s.cta_clicked),
        views_by_date=histogram,
    )


# ─────────────────────────────────────────────────────────────
# Aggregator
# ─────────────────────────────────────────────────────────────
class SessionAnalyticsAggregator:
    """Session event ingestion and aggregate computation over one `AsyncSession`."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _video_duration(self, video_id: UUID) -> Optional[float]:
        row = (await self.db.execute(select(Video.id, Video.duration).where(Video.id == video_id))).first()
        if row is None:
            raise NotFoundError("Video")
        return row.duration

    async def _ensure_session(self, video_id: UUID, session_id: str, now: datetime) -> None:
        ins = insert_for(self.db, ViewSession).values(
            id=uuid.uuid4(),
            video_id=video_id,
            session_id=session_id,
            start_time=now,
            watch_time=0.0,
            cta_clicked=False,
            created_at=now,
            updated_at=now,
        )
        await self.db.execute(ins.on_conflict_do_nothing(index_elements=["video_id", "session_id"]))

    async def _add_completed(self, video_id: UUID, session_id: str, quarters: Iterable[int]) -> None:
        for q in sorted(set(quarters)):
            ins = insert_for(self.db, ViewSessionQuarter).values(
                id=uuid.uuid4(), video_id=video_id, session_id=session_id, quarter=q
            )
            await self.db.execute(ins.on_conflict_do_nothing(index_elements=["video_id", "session_id", "quarter"]))

    async def _append_marks(self, video_id: UUID, session_id: str, marks: Sequence[Dict[str, Any]]) -> None:
        if not marks:
            return
        await self.db.execute(
            insert(ViewSessionMark),
            [
                {"id": uuid.uuid4(), "video_id": video_id, "session_id": session_id, **m}
                for m in marks
            ],
        )

    async def record_view_event(
        self,
        video_id: UUID,
        session_id: str,
        *,
        user_id: Optional[UUID] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        watch_time: float = 0.0,
        completed_quarters: Iterable[int] = (),
        playback_positions: Iterable[float] = (),
        viewer_info: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Upsert a session snapshot.

        Steps
        -----
        1) Resolve the video's duration (404 when the video is gone).
        2) Upsert the session row, replacing start/end/watch time.
        3) Union `completed_quarters` into the completed set.
        4) Append one quarter mark per playback position.
        """
        duration = await self._video_duration(video_id)
        now = utcnow()
        marks = [
            {
                "quarter": quarter_for_position(p, duration, default_quarter_seconds=settings.ANALYTICS_DEFAULT_QUARTER_SECONDS),
                "position": float(p),
                "recorded_at": now,
            }
            for p in playback_positions
        ]

        async with unit_of_work(self.db):
            ins = insert_for(self.db, ViewSession).values(
                id=uuid.uuid4(),
                video_id=video_id,
                session_id=session_id,
                user_id=user_id,
                start_time=start_time or now,
                end_time=end_time,
                watch_time=float(watch_time or 0.0),
                cta_clicked=False,
                viewer_info=viewer_info,
                created_at=now,
                updated_at=now,
            )
            await self.db.execute(
                ins.on_conflict_do_update(
                    index_elements=["video_id", "session_id"],
                    set_={
                        "start_time": ins.excluded.start_time,
                        "end_time": ins.excluded.end_time,
                        "watch_time": ins.excluded.watch_time,
                        "user_id": func.coalesce(ins.excluded.user_id, ViewSession.__table__.c.user_id),
                        "viewer_info": func.coalesce(ins.excluded.viewer_info, ViewSession.__table__.c.viewer_info),
                        "updated_at": now,
                    },
                )
            )
            await self._add_completed(video_id, session_id, completed_quarters)
            await self._append_marks(video_id, session_id, marks)
        inc_analytics_event("view")
        logger.debug("view event video=%s session=%s marks=%d", video_id, session_id, len(marks))

    async def record_quarter_event(self, video_id: UUID, session_id: str, quarter: int, position: float) -> None:
        """Mark `quarter` completed (idempotent) and append it to the history (always)."""
        await self._video_duration(video_id)
        now = utcnow()
        async with unit_of_work(self.db):
            await self._ensure_session(video_id, session_id, now)
            await self._add_completed(video_id, session_id, [quarter])
            await self._append_marks(
                video_id,
                session_id,
                [{"quarter": quarter, "position": float(position), "recorded_at": now}],
            )
        inc_analytics_event("quarter")

    async def record_cta_click(self, video_id: UUID, session_id: str) -> None:
        await self._video_duration(video_id)
        now = utcnow()
        async with unit_of_work(self.db):
            ins = insert_for(self.db, ViewSession).values(
                id=uuid.uuid4(),
                video_id=video_id,
                session_id=session_id,
                start_time=now,
                watch_time=0.0,
                cta_clicked=True,
                created_at=now,
                updated_at=now,
            )
            await self.db.execute(
                ins.on_conflict_do_update(
                    index_elements=["video_id", "session_id"],
                    set_={"cta_clicked": True, "updated_at": now},
                )
            )
        inc_analytics_event("cta")

    async def compute_aggregate(self, video_id: UUID, *, today: Optional[date] = None, window_days: Optional[int] = None) -> VideoAggregate:
        views = (await self.db.execute(select(Video.views_count).where(Video.id == video_id))).scalar_one_or_none()
        if views is None:
            raise NotFoundError("Video")

        rows = await self.db.execute(
            select(ViewSession.user_id, ViewSession.watch_time, ViewSession.start_time, ViewSession.cta_clicked)
            .where(ViewSession.video_id == video_id)
        )
        sessions = [SessionFacts(r.user_id, float(r.watch_time or 0.0), r.start_time, bool(r.cta_clicked)) for r in rows]

        per_quarter_rows = await self.db.execute(
            select(ViewSessionQuarter.quarter, func.count(func.distinct(ViewSessionQuarter.session_id)))
            .where(ViewSessionQuarter.video_id == video_id)
            .group_by(ViewSessionQuarter.quarter)
        )
        per_quarter = {int(q): int(n) for q, n in per_quarter_rows.all()}

        return aggregate(
            views=views,
            sessions=sessions,
            sessions_per_quarter=per_quarter,
            today=today or utcnow().date(),
            window_days=window_days or settings.ANALYTICS_WINDOW_DAYS,
        )

    async def completed_quarters(self, video_id: UUID, session_id: str) -> List[int]:
        rows = await self.db.execute(
            select(ViewSessionQuarter.quarter)
            .where(ViewSessionQuarter.video_id == video_id, ViewSessionQuarter.session_id == session_id)
            .order_by(ViewSessionQuarter.quarter)
        )
        return [int(q) for q in rows.scalars().all()]

    async def quarter_history(self, video_id: UUID, session_id: str) -> List[ViewSessionMark]:
        rows = await self.db.execute(
            select(ViewSessionMark)
            .where(ViewSessionMark.video_id == video_id, ViewSessionMark.session_id == session_id)
            .order_by(ViewSessionMark.recorded_at, ViewSessionMark.id)
        )
        return list(rows.scalars().all())


__all__ = [
    "QUARTERS",
    "quarter_for_position",
    "SessionFacts",
    "VideoAggregate",
    "aggregate",
    "SessionAnalyticsAggregator",
]
