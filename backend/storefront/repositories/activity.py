"""
Activity repository: the append-only event store.
"""
from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from sqlalchemy import Select, distinct, func, select

from storefront.models.activity import ActivityEvent, utcnow
from storefront.repositories.base import BaseRepository

SortOrder = Literal["asc", "desc"]


class ActivityRepository(BaseRepository[ActivityEvent]):
    """
    Repository for ActivityEvent operations.

    Events are written once; there is no update or delete.
    """

    model = ActivityEvent

    async def record(self, event_in: dict[str, Any]) -> ActivityEvent:
        """
        Persist one event.

        Any client supplied `id` or `timestamp` is discarded; both are
        assigned here from the server side.
        """
        data = {k: v for k, v in event_in.items() if k not in ("id", "timestamp")}
        data["timestamp"] = utcnow()
        return await self.create(data)

    def _filtered(
        self,
        stmt: Select,
        *,
        user_id: Optional[UUID] = None,
        session_id: Optional[str] = None,
        activity_type: Optional[str] = None,
        funnel_stage: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Select:
        """Apply the standard filter dimensions to a statement."""
        if user_id is not None:
            stmt = stmt.where(ActivityEvent.user_id == user_id)
        if session_id is not None:
            stmt = stmt.where(ActivityEvent.session_id == session_id)
        if activity_type is not None:
            stmt = stmt.where(ActivityEvent.activity_type == activity_type)
        if funnel_stage is not None:
            stmt = stmt.where(ActivityEvent.funnel_stage == funnel_stage)
        if since is not None:
            stmt = stmt.where(ActivityEvent.timestamp >= since)
        if until is not None:
            stmt = stmt.where(ActivityEvent.timestamp <= until)
        return stmt

    async def query(
        self,
        *,
        order: SortOrder,
        user_id: Optional[UUID] = None,
        session_id: Optional[str] = None,
        activity_type: Optional[str] = None,
        funnel_stage: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[ActivityEvent]:
        """
        Filtered, time-ordered retrieval.

        `order` has no default: journeys read ascending, feeds descending.
        Ties on timestamp are broken by id so repeated calls agree.
        """
        if order == "asc":
            ordering = (ActivityEvent.timestamp.asc(), ActivityEvent.id.asc())
        elif order == "desc":
            ordering = (ActivityEvent.timestamp.desc(), ActivityEvent.id.desc())
        else:
            raise ValueError(f"Unknown sort order: {order!r}")

        stmt = self._filtered(
            select(ActivityEvent),
            user_id=user_id,
            session_id=session_id,
            activity_type=activity_type,
            funnel_stage=funnel_stage,
            since=since,
            until=until,
        ).order_by(*ordering)

        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_matching(self, **filters: Any) -> int:
        """Count events matching the standard filters."""
        stmt = self._filtered(select(func.count(ActivityEvent.id)), **filters)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def funnel_stage_stats(self, since: datetime) -> list[dict[str, Any]]:
        """Per-stage event count, distinct users and conversion value since `since`."""
        stmt = (
            select(
                ActivityEvent.funnel_stage,
                func.count(ActivityEvent.id).label("count"),
                func.count(distinct(ActivityEvent.user_id)).label("unique_users"),
                func.coalesce(func.sum(ActivityEvent.conversion_value), 0).label("total_value"),
            )
            .where(
                ActivityEvent.timestamp >= since,
                ActivityEvent.funnel_stage.is_not(None),
            )
            .group_by(ActivityEvent.funnel_stage)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "stage": row.funnel_stage,
                "count": int(row.count),
                "unique_users": int(row.unique_users),
                "total_conversion_value": float(row.total_value or 0),
            }
            for row in result.all()
        ]

    async def per_user_activity(self, since: datetime) -> list[dict[str, Any]]:
        """Per-user totals since `since`. Anonymous events are excluded."""
        stmt = (
            select(
                ActivityEvent.user_id,
                func.count(ActivityEvent.id).label("total_activities"),
                func.count(distinct(ActivityEvent.session_id)).label("unique_sessions"),
                func.coalesce(func.sum(ActivityEvent.conversion_value), 0).label("conversion_value"),
                func.max(ActivityEvent.timestamp).label("last_activity"),
            )
            .where(
                ActivityEvent.timestamp >= since,
                ActivityEvent.user_id.is_not(None),
            )
            .group_by(ActivityEvent.user_id)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "user_id": row.user_id,
                "total_activities": int(row.total_activities),
                "unique_sessions": int(row.unique_sessions),
                "conversion_value": float(row.conversion_value or 0),
                "last_activity": row.last_activity,
            }
            for row in result.all()
        ]
