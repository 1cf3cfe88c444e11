"""분석 서비스 — 팀 성과 및 피드백 추이 집계.

Analytics Service — Team performance and feedback trend aggregation,
with CSV/JSON export. Results are cached per caller and date range;
when the cache is unavailable the numbers are computed directly.
"""

import csv
import io
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from statistics import mean
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import as_utc, utcnow
from app.models.feedback import Feedback
from app.models.user import User
from app.repositories.feedback_repository import feedback_repository
from app.repositories.okr_repository import okr_repository
from app.repositories.organization_repository import department_repository, team_repository
from app.repositories.user_repository import user_repository
from app.services.cache_service import CacheService, analytics_key
from app.utils.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.utils.permissions import authorize, is_allowed

logger = logging.getLogger(__name__)

ANALYTICS_TTL: int = 600
DEFAULT_TREND_MONTHS: int = 6
SENTIMENTS: tuple[str, ...] = ("positive", "neutral", "negative")

TEAM_CSV_HEADERS: list[str] = [
    "Member", "Email", "OKR Count", "Avg Key Result Score", "Feedback Count",
    "Avg Feedback Rating", "Positive", "Neutral", "Negative",
]
FEEDBACK_CSV_HEADERS: list[str] = ["Month", "Count", "Avg Rating", "Positive", "Neutral", "Negative"]


def _round(values: Sequence[float]) -> float:
    return round(mean(values), 2) if values else 0.0


def _sentiment_counts(feedback: Sequence[Feedback]) -> dict[str, int]:
    counts = dict.fromkeys(SENTIMENTS, 0)
    for item in feedback:
        label = item.sentiment_score if item.sentiment_score in counts else "neutral"
        counts[label] += 1
    return counts


def _range_label(start: datetime | None, end: datetime | None) -> str:
    first = start.date().isoformat() if start else "all"
    last = end.date().isoformat() if end else "all"
    return f"{first}-{last}"


def months_back(now: datetime, months: int) -> datetime:
    """N개월 전 월초 — First instant of the month ``months - 1`` months before ``now``."""
    year, month = now.year, now.month - (months - 1)
    while month < 1:
        month += 12
        year -= 1
    return now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


class AnalyticsService:
    """분석 서비스.

    Attributes:
        cache: 분석 결과 캐시 (Result cache, 600 s TTL)
    """

    def __init__(self, cache: CacheService) -> None:
        self.cache = cache

    async def _cached(self, key: str, compute: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
        cached = await self.cache.get(key)
        if cached is not None:
            return cached
        result = await compute()
        await self.cache.set(key, result, ttl=ANALYTICS_TTL)
        return result

    # --- 팀 성과 (Team performance) ---

    async def _team_members(
        self, db: AsyncSession, actor: User, team_id: UUID | None
    ) -> Sequence[User]:
        if is_allowed(actor.role, "analytics", "read_any"):
            query = user_repository.build_list_query(team_id=team_id)
        else:
            query = user_repository.build_list_query(team_id=team_id, manager_id=actor.id)
        return (await db.execute(query)).scalars().all()

    async def team_performance(
        self,
        db: AsyncSession,
        actor: User,
        team_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        """팀 성과 분석.

        Per member: average key-result score over their OKRs, average
        feedback rating received and sentiment counts. Admin/HR see any
        team (everyone without a team filter); managers only their direct
        reports.

        Raises:
            ForbiddenError: 직원 역할 (Employees have no team analytics)
            NotFoundError: 팀이 없을 때 (Unknown team)
        """
        authorize(actor, "analytics", "team", "Access denied to team analytics")
        start = as_utc(start) if start else None
        end = as_utc(end) if end else None
        key = analytics_key("team", actor.id, f"{_range_label(start, end)}-{team_id or 'all'}")

        async def compute() -> dict[str, Any]:
            return await self._compute_team(db, actor, team_id, start, end)

        return await self._cached(key, compute)

    async def _compute_team(
        self,
        db: AsyncSession,
        actor: User,
        team_id: UUID | None,
        start: datetime | None,
        end: datetime | None,
    ) -> dict[str, Any]:
        team_name: str | None = None
        if team_id is not None:
            team = await team_repository.get_by_id(db, team_id)
            if team is None:
                raise NotFoundError("Team not found")
            team_name = team.name

        members = await self._team_members(db, actor, team_id)
        member_ids = [member.id for member in members]
        okrs = [
            okr
            for okr in await okr_repository.get_for_users(db, member_ids)
            if (start is None or okr.created_at >= start) and (end is None or okr.created_at <= end)
        ]
        feedback = await feedback_repository.get_received_since(db, member_ids, start, end)

        rows: list[dict[str, Any]] = []
        for member in members:
            member_okrs = [okr for okr in okrs if okr.assigned_to_id == member.id]
            member_feedback = [f for f in feedback if f.to_user_id == member.id]
            kr_scores = [kr.score for okr in member_okrs for kr in okr.key_results]
            rows.append({
                "user_id": str(member.id),
                "name": member.full_name,
                "email": member.email,
                "okr_count": len(member_okrs),
                "avg_key_result_score": _round(kr_scores),
                "feedback_count": len(member_feedback),
                "avg_feedback_rating": _round([f.rating for f in member_feedback if f.rating is not None]),
                "sentiment": _sentiment_counts(member_feedback),
            })

        return {
            "team_id": str(team_id) if team_id else None,
            "team_name": team_name,
            "member_count": len(members),
            "members": rows,
            "averages": {
                "okr_score": _round([okr.average_score for okr in okrs if okr.key_results]),
                "feedback_rating": _round([f.rating for f in feedback if f.rating is not None]),
            },
            "okr_count": len(okrs),
            "feedback_count": len(feedback),
            "sentiment": _sentiment_counts(feedback),
            "date_range": {
                "start": start.isoformat() if start else None,
                "end": end.isoformat() if end else None,
            },
        }

    # --- 피드백 추이 (Feedback trends) ---

    async def _trend_scope(
        self,
        db: AsyncSession,
        actor: User,
        department_id: UUID | None,
        user_id: UUID | None,
    ) -> list[UUID] | None:
        if is_allowed(actor.role, "analytics", "read_any"):
            if user_id is not None:
                return [user_id]
            if department_id is not None:
                if await department_repository.get_by_id(db, department_id) is None:
                    raise NotFoundError("Department not found")
                query = user_repository.build_list_query(department_id=department_id, include_inactive=True)
                return [user.id for user in (await db.execute(query)).scalars().all()]
            return None
        if actor.role == "manager":
            report_ids = await user_repository.get_direct_report_ids(db, actor.id)
            if user_id is not None:
                if user_id not in report_ids:
                    raise ForbiddenError("Access denied to this user")
                return [user_id]
            return report_ids
        if user_id is not None and user_id != actor.id:
            raise ForbiddenError("Access denied to this user")
        return [actor.id]

    async def feedback_trends(
        self,
        db: AsyncSession,
        actor: User,
        department_id: UUID | None = None,
        user_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        """피드백 추이 — 월별 건수/평균 평점 및 감정 분포.

        Monthly (``YYYY-MM``) feedback counts with average rating and
        sentiment counts. Without a range the last six months are used.
        """
        authorize(actor, "analytics", "feedback")
        end = as_utc(end) if end else utcnow()
        start = as_utc(start) if start else months_back(end, DEFAULT_TREND_MONTHS)
        if start > end:
            raise BadRequestError("Start date must be before end date")
        scope = f"{_range_label(start, end)}-{department_id or 'all'}-{user_id or 'all'}"
        key = analytics_key("feedback", actor.id, scope)

        async def compute() -> dict[str, Any]:
            user_ids = await self._trend_scope(db, actor, department_id, user_id)
            feedback = await feedback_repository.get_received_since(db, user_ids, start, end)
            return self._bucket_by_month(feedback, start, end)

        return await self._cached(key, compute)

    @staticmethod
    def _bucket_by_month(feedback: Sequence[Feedback], start: datetime, end: datetime) -> dict[str, Any]:
        months: dict[str, list[Feedback]] = {}
        for item in feedback:
            months.setdefault(item.created_at.strftime("%Y-%m"), []).append(item)

        trends = []
        sentiment_trends = []
        for month in sorted(months):
            items = months[month]
            trends.append({
                "month": month,
                "count": len(items),
                "avg_rating": _round([f.rating for f in items if f.rating is not None]),
            })
            sentiment_trends.append({"month": month, **_sentiment_counts(items)})

        return {
            "summary": {
                "total_feedback": len(feedback),
                "avg_rating": _round([f.rating for f in feedback if f.rating is not None]),
                "sentiment_breakdown": _sentiment_counts(feedback),
            },
            "trends": trends,
            "sentiment_trends": sentiment_trends,
            "date_range": {"start": start.isoformat(), "end": end.isoformat()},
        }

    # --- 내보내기 (Export) ---

    async def export(
        self,
        db: AsyncSession,
        actor: User,
        type: str,
        format: str = "csv",
        team_id: UUID | None = None,
        department_id: UUID | None = None,
        user_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        """분석 데이터 내보내기.

        Export ``team`` or ``feedback`` analytics. ``csv`` yields text under
        ``content`` plus a download filename; ``json`` yields the data itself.

        Raises:
            BadRequestError: 알 수 없는 유형/형식 (Unknown export type or format)
        """
        authorize(actor, "analytics", "export", "Access denied to analytics export")
        if format not in ("csv", "json"):
            raise BadRequestError("Invalid export format. Use 'csv' or 'json'")
        if type == "team":
            data = await self.team_performance(db, actor, team_id, start, end)
        elif type == "feedback":
            data = await self.feedback_trends(db, actor, department_id, user_id, start, end)
        else:
            raise BadRequestError("Invalid export type")

        now = utcnow()
        logger.info("Analytics exported", extra={"type": type, "format": format, "user_id": str(actor.id)})
        if format == "json":
            return {"format": "json", "data": data, "exported_at": now.isoformat(), "exported_by": str(actor.id)}
        content = team_csv(data) if type == "team" else feedback_csv(data)
        return {
            "format": "csv",
            "content": content,
            "filename": f"{type}-analytics-{now.date().isoformat()}.csv",
        }


def team_csv(data: dict[str, Any]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(TEAM_CSV_HEADERS)
    for row in data["members"]:
        writer.writerow([
            row["name"], row["email"], row["okr_count"], row["avg_key_result_score"],
            row["feedback_count"], row["avg_feedback_rating"],
            *(row["sentiment"][label] for label in SENTIMENTS),
        ])
    return output.getvalue()


def feedback_csv(data: dict[str, Any]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(FEEDBACK_CSV_HEADERS)
    sentiment = {row["month"]: row for row in data["sentiment_trends"]}
    for trend in data["trends"]:
        counts = sentiment.get(trend["month"], {})
        writer.writerow([
            trend["month"], trend["count"], trend["avg_rating"],
            *(counts.get(label, 0) for label in SENTIMENTS),
        ])
    return output.getvalue()
