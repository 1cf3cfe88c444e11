"""대시보드 서비스 — 최근 활동 피드 및 요약 통계.

Dashboard Service — Recent-activity feed and summary counters for the
signed-in user. Admin and HR additionally get organization-wide totals.
"""

import math
from datetime import datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.feedback import Feedback
from app.models.okr import OKR
from app.models.review_cycle import CycleParticipant, ReviewCycle
from app.models.review_submission import ReviewSubmission
from app.models.time_entry import TimeEntry
from app.models.user import User
from app.utils.permissions import is_allowed

# 활동 피드 조회 기간 — Activity window
ACTIVITY_WINDOW: timedelta = timedelta(days=7)
# 요약의 시간 기록 집계 기간 — Time-entry window of the summary
SUMMARY_TIME_WINDOW: timedelta = timedelta(days=30)
OPEN_CYCLE_STATUSES: tuple[str, ...] = ("active", "grace-period")

# 소스별 최대 조회 건수 — Rows read per source before balancing
_SOURCE_LIMITS: dict[str, int] = {
    "okr_update": 5,
    "time_logged": 5,
    "feedback_received": 3,
    "review_activity": 3,
}


def _activity(type: str, title: str, description: str, timestamp: datetime, icon: str, color: str) -> dict[str, Any]:
    return {
        "type": type,
        "title": title,
        "description": description,
        "timestamp": timestamp,
        "icon": icon,
        "color": color,
    }


def balance_activities(activities: list[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    """활동 유형 균형 — 유형별 최대 ceil(limit / 3)건, 최신순으로 limit건.

    Keep at most ``ceil(limit / 3)`` of each activity type so one busy
    source cannot fill the feed, then return the newest ``limit`` items.
    """
    per_type = math.ceil(limit / 3)
    grouped: dict[str, list[dict[str, Any]]] = {}
    for item in activities:
        grouped.setdefault(item["type"], []).append(item)

    kept: list[dict[str, Any]] = []
    for items in grouped.values():
        items.sort(key=lambda item: item["timestamp"], reverse=True)
        kept.extend(items[:per_type])
    kept.sort(key=lambda item: item["timestamp"], reverse=True)
    return kept[:limit]


class DashboardService:
    """대시보드 서비스.

    Dashboard aggregation service. Every query is scoped to the caller;
    organization totals are added for roles allowed
    ``dashboard:organization_stats``.
    """

    async def recent_activity(
        self, db: AsyncSession, user: User, limit: int = 10, now: datetime | None = None
    ) -> dict[str, Any]:
        """최근 활동 피드.

        Merge the caller's last 7 days of OKR updates, logged time,
        received feedback and review work into one newest-first feed.

        Returns:
            dict: {"activities": [...], "total": int}
        """
        since = (now or utcnow()) - ACTIVITY_WINDOW
        activities = [
            *await self._okr_updates(db, user, since),
            *await self._time_logged(db, user, since),
            *await self._feedback_received(db, user, since),
            *await self._review_activity(db, user, since),
        ]
        feed = balance_activities(activities, limit)
        return {"activities": feed, "total": len(feed)}

    async def _okr_updates(self, db: AsyncSession, user: User, since: datetime) -> list[dict[str, Any]]:
        result = await db.execute(
            select(OKR)
            .where(
                or_(OKR.assigned_to_id == user.id, OKR.created_by_id == user.id),
                OKR.updated_at >= since,
            )
            .order_by(OKR.updated_at.desc())
            .limit(_SOURCE_LIMITS["okr_update"])
        )
        return [
            _activity(
                "okr_update",
                f"Updated OKR: {okr.title}",
                f'Progress updated for "{okr.title}"',
                okr.updated_at,
                "target",
                "blue",
            )
            for okr in result.scalars().all()
        ]

    async def _time_logged(self, db: AsyncSession, user: User, since: datetime) -> list[dict[str, Any]]:
        result = await db.execute(
            select(TimeEntry, OKR.title)
            .join(OKR, OKR.id == TimeEntry.okr_id)
            .where(TimeEntry.user_id == user.id, TimeEntry.date >= since.date())
            .order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc())
            .limit(_SOURCE_LIMITS["time_logged"])
        )
        return [
            _activity(
                "time_logged",
                f"Logged {entry.hours_spent:g} hours",
                entry.description or f"Time logged for {okr_title}",
                datetime.combine(entry.date, time.min, tzinfo=timezone.utc),
                "clock",
                "green",
            )
            for entry, okr_title in result.all()
        ]

    async def _feedback_received(self, db: AsyncSession, user: User, since: datetime) -> list[dict[str, Any]]:
        result = await db.execute(
            select(Feedback, User.first_name, User.last_name)
            .join(User, User.id == Feedback.from_user_id)
            .where(
                Feedback.to_user_id == user.id,
                Feedback.status == "active",
                Feedback.created_at >= since,
            )
            .order_by(Feedback.created_at.desc())
            .limit(_SOURCE_LIMITS["feedback_received"])
        )
        activities = []
        for feedback, first_name, last_name in result.all():
            sender = "Anonymous" if feedback.is_anonymous else f"{first_name} {last_name}"
            content = feedback.content
            activities.append(
                _activity(
                    "feedback_received",
                    f"Received feedback from {sender}",
                    content[:100] + ("..." if len(content) > 100 else ""),
                    feedback.created_at,
                    "message-circle",
                    "purple",
                )
            )
        return activities

    async def _review_activity(self, db: AsyncSession, user: User, since: datetime) -> list[dict[str, Any]]:
        result = await db.execute(
            select(ReviewSubmission, User.first_name, User.last_name, ReviewCycle.name)
            .join(User, User.id == ReviewSubmission.reviewee_id)
            .join(ReviewCycle, ReviewCycle.id == ReviewSubmission.review_cycle_id)
            .where(ReviewSubmission.reviewer_id == user.id, ReviewSubmission.updated_at >= since)
            .order_by(ReviewSubmission.updated_at.desc())
            .limit(_SOURCE_LIMITS["review_activity"])
        )
        activities = []
        for review, first_name, last_name, cycle_name in result.all():
            action = "Submitted" if review.status == "submitted" else "Updated"
            activities.append(
                _activity(
                    "review_activity",
                    f"{action} {review.review_type} review for {first_name} {last_name}",
                    f"{review.review_type} review in {cycle_name} cycle",
                    review.updated_at,
                    "file-text",
                    "indigo",
                )
            )
        return activities

    async def summary(self, db: AsyncSession, user: User, now: datetime | None = None) -> dict[str, Any]:
        """대시보드 요약 통계.

        Counts for the caller: non-archived OKRs they own or created, time
        entries of the last 30 days, feedback given plus received, and open
        review cycles they take part in. Admin/HR also get active users,
        all non-archived OKRs and all open cycles.
        """
        now = now or utcnow()
        not_archived = OKR.status != "archived"

        okrs = await db.scalar(
            select(func.count(OKR.id)).where(
                or_(OKR.assigned_to_id == user.id, OKR.created_by_id == user.id), not_archived
            )
        )
        time_entries = await db.scalar(
            select(func.count(TimeEntry.id)).where(
                TimeEntry.user_id == user.id, TimeEntry.date >= (now - SUMMARY_TIME_WINDOW).date()
            )
        )
        feedback = await db.scalar(
            select(func.count(Feedback.id)).where(
                or_(Feedback.to_user_id == user.id, Feedback.from_user_id == user.id),
                Feedback.status != "deleted",
            )
        )
        reviews = await db.scalar(
            select(func.count(func.distinct(ReviewCycle.id)))
            .join(CycleParticipant, CycleParticipant.cycle_id == ReviewCycle.id)
            .where(CycleParticipant.user_id == user.id, ReviewCycle.status.in_(OPEN_CYCLE_STATUSES))
        )
        stats: dict[str, Any] = {
            "okrs": okrs or 0,
            "time_entries": time_entries or 0,
            "feedback": feedback or 0,
            "reviews": reviews or 0,
        }

        if is_allowed(user.role, "dashboard", "organization_stats"):
            stats["team_members"] = await db.scalar(select(func.count(User.id)).where(User.is_active.is_(True)))
            stats["total_okrs"] = await db.scalar(select(func.count(OKR.id)).where(not_archived))
            stats["active_cycles"] = await db.scalar(
                select(func.count(ReviewCycle.id)).where(ReviewCycle.status.in_(OPEN_CYCLE_STATUSES))
            )
        return stats
