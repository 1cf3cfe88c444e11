"""리뷰 사이클 서비스 — 사이클 생성, 상태 전환, 참가자 관리.

Review Cycle Service — Business logic for review cycles.

State machine:
    draft → active → grace-period → closed

Activating a cycle generates the review submissions of its participants.
Closed cycles are read-only; deleting is only possible while draft and
closes the cycle instead of removing it.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.review_cycle import CycleParticipant, CycleQuestion, ReviewCycle
from app.models.user import User
from app.repositories.review_cycle_repository import review_cycle_repository
from app.repositories.review_submission_repository import review_submission_repository
from app.repositories.user_repository import user_repository
from app.schemas.review_cycle import CycleCreate, CycleUpdate, QuestionCreate
from app.services.notification_service import NotificationService
from app.services.review_submission_service import ReviewSubmissionService
from app.utils.exceptions import BadRequestError, NotFoundError
from app.utils.pagination import PageParams

logger = logging.getLogger(__name__)

# 허용된 상태 전환 — Allowed status transitions
TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"active"}),
    "active": frozenset({"grace-period"}),
    "grace-period": frozenset({"closed"}),
    "closed": frozenset(),
}

# 최소 준비 기간 — Lead time before a non-emergency cycle may start
MIN_LEAD_TIME: timedelta = timedelta(days=3)

DEFAULT_QUESTIONS: tuple[dict[str, Any], ...] = (
    {
        "category": "skills",
        "question": "How would you rate this person's technical skills and competencies?",
        "requires_rating": True,
    },
    {
        "category": "values",
        "question": "How well does this person demonstrate company values and culture?",
        "requires_rating": True,
    },
    {
        "category": "overall",
        "question": "Please provide specific examples of achievements and areas for improvement.",
        "requires_rating": False,
    },
)


def check_transition(current: str, target: str) -> None:
    """상태 전환 검증 — Raise 400 unless ``current → target`` is allowed."""
    if target not in TRANSITIONS.get(current, frozenset()):
        raise BadRequestError(f"Cannot transition from {current} to {target}")


def _build_questions(questions: list[QuestionCreate]) -> list[CycleQuestion]:
    if not questions:
        return [
            CycleQuestion(**question, rating_scale=10, is_required=True, order=index)
            for index, question in enumerate(DEFAULT_QUESTIONS, start=1)
        ]
    return [
        CycleQuestion(
            **question.model_dump(exclude={"order"}),
            order=question.order if question.order is not None else index,
        )
        for index, question in enumerate(questions, start=1)
    ]


class ReviewCycleService:
    """리뷰 사이클 서비스.

    Attributes:
        submissions: 리뷰 제출 서비스 (Generates submissions on activation)
        notifications: 알림 서비스 (Announces new cycles)
    """

    def __init__(self, submissions: ReviewSubmissionService, notifications: NotificationService) -> None:
        self.submissions = submissions
        self.notifications = notifications

    async def get_cycle(self, db: AsyncSession, cycle_id: UUID) -> ReviewCycle:
        cycle = await review_cycle_repository.get_by_id(db, cycle_id)
        if cycle is None:
            raise NotFoundError("Review cycle not found")
        return cycle

    async def list_cycles(
        self,
        db: AsyncSession,
        params: PageParams,
        status: str | None = None,
        type: str | None = None,
    ) -> tuple[Sequence[ReviewCycle], int]:
        query = review_cycle_repository.build_list_query(status=status, type=type)
        return await review_cycle_repository.get_paginated(db, query, params.page, params.limit)

    async def create_cycle(
        self,
        db: AsyncSession,
        actor: User,
        data: CycleCreate,
        now: datetime | None = None,
    ) -> ReviewCycle:
        """리뷰 사이클 생성.

        Create a draft cycle. Without questions the three default questions
        are used; every active user is told about the new cycle.

        Raises:
            BadRequestError: 시작일이 종료일 이후이거나, 긴급이 아닌데 3일 이내 시작
                             (start >= end, or starts sooner than 3 days without emergency)
        """
        now = now or utcnow()
        if data.start_date >= data.end_date:
            raise BadRequestError("Start date must be before end date")
        if not data.is_emergency and data.start_date < now + MIN_LEAD_TIME:
            raise BadRequestError("Review cycle must start at least 3 days from now (unless emergency)")
        if data.min_peer_reviewers > data.max_peer_reviewers:
            raise BadRequestError("Minimum peer reviewers cannot exceed the maximum")

        cycle = ReviewCycle(
            **data.model_dump(exclude={"questions", "participant_ids", "review_types"}),
            review_types=list(data.review_types),
            status="draft",
            created_by_id=actor.id,
            questions=_build_questions(data.questions),
        )
        db.add(cycle)
        await db.flush()
        if data.participant_ids:
            await self._add_participants(db, cycle, data.participant_ids, "reviewee")
        await db.refresh(cycle)

        logger.info("Review cycle created", extra={"cycle_id": str(cycle.id), "emergency": cycle.is_emergency})
        await self.notifications.notify_cycle_created(db, cycle)
        return cycle

    async def update_cycle(self, db: AsyncSession, cycle_id: UUID, data: CycleUpdate) -> ReviewCycle:
        """사이클 수정 — closed 사이클은 수정 불가."""
        cycle = await self.get_cycle(db, cycle_id)
        if cycle.status == "closed":
            raise BadRequestError("Cannot modify a closed review cycle")

        changes = data.model_dump(exclude_unset=True, exclude={"questions"})
        start = changes.get("start_date") or cycle.start_date
        end = changes.get("end_date") or cycle.end_date
        if start >= end:
            raise BadRequestError("Start date must be before end date")
        min_peers = changes.get("min_peer_reviewers")
        max_peers = changes.get("max_peer_reviewers")
        if min_peers is None:
            min_peers = cycle.min_peer_reviewers
        if max_peers is None:
            max_peers = cycle.max_peer_reviewers
        if min_peers > max_peers:
            raise BadRequestError("Minimum peer reviewers cannot exceed the maximum")
        if changes.get("review_types") is not None:
            changes["review_types"] = list(changes["review_types"])
        if data.questions is not None:
            if cycle.status != "draft":
                raise BadRequestError("Questions can only be changed while the cycle is a draft")
            cycle.questions = _build_questions(data.questions)
        return await review_cycle_repository.update(db, cycle, changes)

    async def change_status(self, db: AsyncSession, cycle_id: UUID, target: str) -> ReviewCycle:
        """상태 전환 — active로 전환 시 리뷰 제출을 생성합니다.

        Raises:
            BadRequestError: 허용되지 않은 전환 (Cannot transition from X to Y)
        """
        cycle = await self.get_cycle(db, cycle_id)
        check_transition(cycle.status, target)
        previous = cycle.status
        cycle = await review_cycle_repository.update(db, cycle, {"status": target})
        logger.info(
            "Review cycle status changed",
            extra={"cycle_id": str(cycle.id), "from": previous, "to": target},
        )
        if target == "active":
            await self.submissions.generate_for_cycle(db, cycle)
        return cycle

    async def delete_cycle(self, db: AsyncSession, cycle_id: UUID) -> ReviewCycle:
        """사이클 삭제 (소프트) — draft 상태에서만, 상태를 closed로 변경."""
        cycle = await self.get_cycle(db, cycle_id)
        if cycle.status != "draft":
            raise BadRequestError("Only draft review cycles can be deleted")
        return await review_cycle_repository.update(db, cycle, {"status": "closed"})

    # --- 참가자 (Participants) ---

    async def _add_participants(
        self, db: AsyncSession, cycle: ReviewCycle, user_ids: list[UUID], role: str
    ) -> tuple[list[UUID], list[UUID]]:
        unique_ids = list(dict.fromkeys(user_ids))
        users = {user.id: user for user in await user_repository.get_by_ids(db, unique_ids)}
        missing = [uid for uid in unique_ids if uid not in users or not users[uid].is_active]
        if missing:
            raise BadRequestError("One or more users were not found")

        already = {p.user_id for p in cycle.participants}
        added: list[UUID] = []
        skipped: list[UUID] = []
        for uid in unique_ids:
            if uid in already:
                skipped.append(uid)
                continue
            db.add(CycleParticipant(cycle_id=cycle.id, user_id=uid, role=role))
            added.append(uid)
        await db.flush()
        await db.refresh(cycle, attribute_names=["participants"])
        return added, skipped

    async def add_participants(
        self, db: AsyncSession, cycle_id: UUID, user_ids: list[UUID], role: str = "reviewee"
    ) -> dict[str, Any]:
        """참가자 추가 — draft/active 사이클만, 이미 참가 중인 사용자는 건너뜁니다.

        Adding people to an active cycle generates their submissions right away.
        """
        cycle = await self.get_cycle(db, cycle_id)
        if not cycle.accepts_participants:
            raise BadRequestError("Participants can only be added to draft or active cycles")
        added, skipped = await self._add_participants(db, cycle, user_ids, role)
        generated = 0
        if added and cycle.status == "active":
            generated = await self.submissions.generate_for_cycle(db, cycle)
        return {
            "added": [str(uid) for uid in added],
            "skipped": [str(uid) for uid in skipped],
            "submissions_created": generated,
        }

    async def remove_participant(self, db: AsyncSession, cycle_id: UUID, user_id: UUID) -> int:
        """참가자 제거 — 해당 사용자의 리뷰 제출도 삭제합니다.

        Returns:
            int: 삭제된 리뷰 제출 수 (Number of submissions deleted)
        """
        cycle = await self.get_cycle(db, cycle_id)
        if cycle.status == "closed":
            raise BadRequestError("Cannot modify a closed review cycle")
        participant = cycle.participant_for(user_id)
        if participant is None:
            raise NotFoundError("Participant not found in this review cycle")
        deleted = await review_submission_repository.delete_for_participant(db, cycle.id, user_id)
        cycle.participants.remove(participant)
        await db.flush()
        return deleted

    async def generate_submissions(self, db: AsyncSession, cycle_id: UUID) -> int:
        cycle = await self.get_cycle(db, cycle_id)
        if cycle.status != "active":
            raise BadRequestError("Submissions can only be generated for active review cycles")
        return await self.submissions.generate_for_cycle(db, cycle)

    # --- 조회/통계 (Queries and stats) ---

    async def get_my_active(self, db: AsyncSession, actor: User) -> Sequence[ReviewCycle]:
        return await review_cycle_repository.get_active_for_user(db, actor.id)

    async def get_cycle_stats(self, db: AsyncSession, cycle_id: UUID) -> dict[str, Any]:
        """사이클 통계 — 참가자/제출 상태별 수와 완료율.

        Participant counts per status, submission counts per status and type,
        and the share of participants who submitted.
        """
        cycle = await self.get_cycle(db, cycle_id)
        participants: dict[str, int] = {"pending": 0, "submitted": 0, "not-submitted": 0}
        for participant in cycle.participants:
            participants[participant.status] = participants.get(participant.status, 0) + 1
        total = len(cycle.participants)
        submissions = await review_submission_repository.get_cycle_stats(db, cycle.id)
        return {
            "cycle_id": str(cycle.id),
            "status": cycle.status,
            "participants": {"total": total, **participants},
            "submissions": submissions,
            "completion_rate": round(participants["submitted"] / total * 100, 2) if total else 0.0,
        }

    async def get_overall_stats(self, db: AsyncSession) -> dict[str, Any]:
        by_status = await review_cycle_repository.count_by_status(db)
        return {
            "total": sum(by_status.values()),
            "by_status": {status: by_status.get(status, 0) for status in TRANSITIONS},
        }
