"""AI 점수 서비스 — 성과 점수 구성 요소 수집 및 저장.

Scoring Service — Collects the six components of the AI performance
score from feedback, OKRs and cycle reviews, then computes the weighted
score with ``calculate_ai_score``. With a cycle the result is stored on
the reviewee's manager submissions.
"""

import logging
from datetime import datetime, timedelta
from statistics import mean
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.user import User
from app.repositories.feedback_repository import feedback_repository
from app.repositories.okr_repository import okr_repository
from app.repositories.review_cycle_repository import review_cycle_repository
from app.repositories.review_submission_repository import review_submission_repository
from app.repositories.user_repository import user_repository
from app.services.ai_service import SCORE_WEIGHTS, calculate_ai_score, compute_tenure_adjustment
from app.utils.exceptions import ForbiddenError, NotFoundError
from app.utils.permissions import is_allowed

logger = logging.getLogger(__name__)

# 최근 피드백 기간 — Window of "recent" feedback
RECENT_FEEDBACK_WINDOW: timedelta = timedelta(days=90)


def _mean_or_none(values: list[float]) -> float | None:
    return round(mean(values), 2) if values else None


class ScoringService:
    """AI 점수 서비스 — AI performance score service."""

    async def compute_components(
        self,
        db: AsyncSession,
        user: User,
        cycle_id: UUID | None = None,
        now: datetime | None = None,
    ) -> dict[str, float | None]:
        """점수 구성 요소 계산 — 데이터가 없는 요소는 None.

        Components without data are ``None`` and count as 0 in the score.
        Review-based components need a cycle.
        """
        now = now or utcnow()
        feedback = await feedback_repository.get_received_since(db, [user.id], now - RECENT_FEEDBACK_WINDOW, now)
        okrs = await okr_repository.get_active_for_user(db, user.id)

        components: dict[str, float | None] = {
            "recent_feedback_score": _mean_or_none([f.rating for f in feedback if f.rating is not None]),
            "okr_score": _mean_or_none([okr.average_score for okr in okrs]),
            "peer_feedback_score": None,
            "manager_feedback_score": None,
            "self_assessment_score": None,
            "tenure_adjustment_score": round(compute_tenure_adjustment(user.created_at, now), 2),
        }
        if cycle_id is not None:
            for review_type, key in (
                ("peer", "peer_feedback_score"),
                ("manager", "manager_feedback_score"),
                ("self", "self_assessment_score"),
            ):
                reviews = await review_submission_repository.list_submitted_for_reviewee(
                    db, cycle_id, user.id, review_type
                )
                components[key] = _mean_or_none([r.overall_rating for r in reviews])
        return components

    async def score_user(
        self,
        db: AsyncSession,
        actor: User,
        user_id: UUID,
        cycle_id: UUID | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """AI 점수 산출.

        Compute the score of ``user_id``. Managers may only score their
        direct reports. With ``cycle_id`` the result is written to the
        ``ai_scoring`` field of the user's manager submissions in that cycle.

        Raises:
            NotFoundError: 사용자 또는 사이클이 없을 때 (Unknown user or cycle)
            ForbiddenError: 직속 부하가 아닌 사용자 (Manager scoring outside their reports)
        """
        user = await user_repository.get_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.manager_id != actor.id and not is_allowed(actor.role, "users", "read_any"):
            raise ForbiddenError("You can only score your direct reports")
        if cycle_id is not None and await review_cycle_repository.get_by_id(db, cycle_id) is None:
            raise NotFoundError("Review cycle not found")

        now = now or utcnow()
        components = await self.compute_components(db, user, cycle_id, now)
        result: dict[str, Any] = {
            "user_id": str(user.id),
            "review_cycle_id": str(cycle_id) if cycle_id else None,
            "score": calculate_ai_score(components),
            "components": components,
            "weights": dict(SCORE_WEIGHTS),
            "computed_at": now.isoformat(),
        }

        if cycle_id is not None:
            stored = 0
            query = review_submission_repository.build_list_query(
                reviewee_id=user.id, cycle_id=cycle_id, review_type="manager"
            )
            for submission in (await db.execute(query)).scalars().all():
                submission.ai_scoring = dict(result)
                stored += 1
            await db.flush()
            result["stored_on_submissions"] = stored
        logger.info("AI score computed", extra={"user_id": str(user.id), "score": result["score"]})
        return result
