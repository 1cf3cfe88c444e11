"""피드백 서비스 — 피드백 작성, 조회, 검토 비즈니스 로직.

Feedback Service — Creation with sentiment analysis, visibility rules,
moderation and per-user statistics.
"""

import logging
from collections import Counter, defaultdict
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.feedback import Feedback
from app.models.user import User
from app.repositories.feedback_repository import feedback_repository
from app.repositories.user_repository import user_repository
from app.schemas.common import dump
from app.schemas.feedback import FeedbackCreate, FeedbackModerate, FeedbackResponse, FeedbackUpdate
from app.services.ai_service import AIService
from app.services.notification_service import NotificationService
from app.utils.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.utils.pagination import PageParams
from app.utils.permissions import authorize, is_allowed

logger = logging.getLogger(__name__)

TOP_SKILLS_LIMIT: int = 10


class FeedbackService:
    """피드백 서비스.

    Feedback service. Sentiment comes from the AI service (which falls
    back to a keyword heuristic on its own); the recipient is notified
    for non-anonymous feedback.

    Attributes:
        ai: 감성 분석용 AI 서비스 (AI service used for sentiment)
        notifications: 알림 서비스 (Notification service)
    """

    def __init__(self, ai: AIService, notifications: NotificationService) -> None:
        self.ai = ai
        self.notifications = notifications

    async def _get(self, db: AsyncSession, feedback_id: UUID) -> Feedback:
        feedback = await feedback_repository.get_by_id(db, feedback_id)
        if feedback is None or feedback.status == "deleted":
            raise NotFoundError("Feedback not found")
        return feedback

    async def create_feedback(self, db: AsyncSession, sender: User, data: FeedbackCreate) -> Feedback:
        """피드백 작성.

        Raises:
            BadRequestError: 자기 자신에게 피드백 (Feedback to oneself)
            NotFoundError: 수신자가 없거나 비활성 (Recipient missing or inactive)
        """
        if data.to_user_id == sender.id:
            raise BadRequestError("You cannot give feedback to yourself")
        recipient = await user_repository.get_by_id(db, data.to_user_id)
        if recipient is None or not recipient.is_active:
            raise NotFoundError("Recipient not found")

        analysis = await self.ai.analyze_sentiment(data.content)
        feedback = await feedback_repository.create(
            db,
            {
                **data.model_dump(),
                "from_user_id": sender.id,
                "tags": list(data.tags),
                "sentiment_score": analysis.get("sentiment"),
                "ai_quality_flags": list(analysis.get("quality_flags", [])),
            },
        )
        logger.info(
            "Feedback created",
            extra={"feedback_id": str(feedback.id), "sentiment_provider": analysis.get("provider")},
        )
        if not feedback.is_anonymous:
            await self.notifications.notify_feedback_received(db, feedback, sender)
        return feedback

    def serialize(self, feedback: Feedback, viewer: User) -> dict[str, Any]:
        """응답 직렬화 — Anonymous senders are hidden from everyone but themselves."""
        data = dump(FeedbackResponse, feedback)
        if feedback.is_anonymous and feedback.from_user_id != viewer.id:
            data["from_user_id"] = None
        return data

    async def list_received(
        self,
        db: AsyncSession,
        actor: User,
        params: PageParams,
        user_id: UUID | None = None,
        category: str | None = None,
        type: str | None = None,
    ) -> tuple[Sequence[Feedback], int]:
        """받은 피드백 — 다른 사용자 조회는 관리자/HR만.

        Received feedback of the caller, or of ``user_id`` for admin/HR.
        """
        target = user_id or actor.id
        if target != actor.id:
            authorize(actor, "feedback", "read_any", "Access denied")
        query = feedback_repository.build_list_query(to_user_id=target, category=category, type=type)
        return await feedback_repository.get_paginated(db, query, params.page, params.limit)

    async def list_given(
        self,
        db: AsyncSession,
        actor: User,
        params: PageParams,
        category: str | None = None,
    ) -> tuple[Sequence[Feedback], int]:
        query = feedback_repository.build_list_query(
            from_user_id=actor.id, category=category, statuses=("active", "hidden", "flagged")
        )
        return await feedback_repository.get_paginated(db, query, params.page, params.limit)

    async def list_for_moderation(
        self,
        db: AsyncSession,
        params: PageParams,
        status: str = "active",
        type: str | None = None,
    ) -> tuple[Sequence[Feedback], int]:
        query = feedback_repository.build_list_query(type=type, statuses=(status,))
        return await feedback_repository.get_paginated(db, query, params.page, params.limit)

    async def get_feedback(self, db: AsyncSession, actor: User, feedback_id: UUID) -> Feedback:
        feedback = await self._get(db, feedback_id)
        if not feedback.can_be_viewed_by(actor.id) and not is_allowed(actor.role, "feedback", "read_any"):
            raise ForbiddenError("Access denied")
        return feedback

    async def update_feedback(
        self, db: AsyncSession, actor: User, feedback_id: UUID, data: FeedbackUpdate
    ) -> Feedback:
        """피드백 수정 — 작성자만, active 상태에서만. 내용 변경 시 감성 재분석."""
        feedback = await self._get(db, feedback_id)
        if not feedback.can_be_edited_by(actor.id):
            raise ForbiddenError("You can only edit your own active feedback")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("tags") is not None:
            changes["tags"] = list(changes["tags"])
        if "content" in changes and changes["content"] != feedback.content:
            analysis = await self.ai.analyze_sentiment(changes["content"])
            changes["sentiment_score"] = analysis.get("sentiment")
            changes["ai_quality_flags"] = list(analysis.get("quality_flags", []))
        return await feedback_repository.update(db, feedback, changes)

    async def moderate(
        self, db: AsyncSession, actor: User, feedback_id: UUID, data: FeedbackModerate
    ) -> Feedback:
        """피드백 검토 — ``hide`` (사유 필수) 또는 ``restore``.

        Raises:
            BadRequestError: 사유 없는 숨김 또는 알 수 없는 액션
                             (Hide without reason, or unknown action)
        """
        feedback = await self._get(db, feedback_id)
        if data.action == "hide":
            if not (data.reason or "").strip():
                raise BadRequestError("Moderation reason is required for hiding feedback")
            changes: dict[str, Any] = {"status": "hidden", "moderation_reason": data.reason.strip()}
        elif data.action == "restore":
            changes = {"status": "active", "moderation_reason": None}
        else:
            raise BadRequestError("Invalid moderation action. Use 'hide' or 'restore'")
        changes.update(moderated_by_id=actor.id, moderated_at=utcnow())
        logger.info(
            "Feedback moderated",
            extra={"feedback_id": str(feedback.id), "action": data.action, "moderator_id": str(actor.id)},
        )
        return await feedback_repository.update(db, feedback, changes)

    async def delete_feedback(self, db: AsyncSession, actor: User, feedback_id: UUID) -> None:
        """피드백 삭제 (소프트) — Sender or admin."""
        feedback = await self._get(db, feedback_id)
        if feedback.from_user_id != actor.id:
            authorize(actor, "feedback", "delete_any", "You can only delete your own feedback")
        await feedback_repository.update(db, feedback, {"status": "deleted"})

    async def get_stats(self, db: AsyncSession, actor: User, user_id: UUID | None = None) -> dict[str, Any]:
        """사용자 피드백 통계 — Counts, average rating, per-category, sentiment and top skills."""
        target = user_id or actor.id
        if target != actor.id:
            authorize(actor, "feedback", "read_any", "Access denied")

        stats = await feedback_repository.get_user_stats(db, target)
        received = await feedback_repository.get_received_since(db, [target])

        sentiments = Counter(item.sentiment_score or "neutral" for item in received)
        tag_ratings: dict[str, list[int]] = defaultdict(list)
        tag_counts: Counter[str] = Counter()
        for item in received:
            for tag in item.tags or []:
                tag_counts[tag] += 1
                if item.rating is not None:
                    tag_ratings[tag].append(item.rating)

        stats["sentiment"] = {key: sentiments.get(key, 0) for key in ("positive", "neutral", "negative")}
        stats["top_skills"] = [
            {
                "skill": tag,
                "count": count,
                "average_rating": (
                    round(sum(tag_ratings[tag]) / len(tag_ratings[tag]), 2) if tag_ratings[tag] else None
                ),
            }
            for tag, count in tag_counts.most_common(TOP_SKILLS_LIMIT)
        ]
        return stats
