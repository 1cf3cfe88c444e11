"""리뷰 제출 서비스 — 리뷰 작성, 제출, 동료 지명 비즈니스 로직.

Review Submission Service — Business logic for review submissions.

Lifecycle: draft → submitted → reviewed. Only the reviewer edits a
draft; a submitted review is frozen. Submissions are generated for every
participant when a cycle becomes active, and peers are added through
nomination.
"""

import logging
from datetime import timedelta
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.review_cycle import ReviewCycle
from app.models.review_submission import ReviewSubmission
from app.models.user import User
from app.repositories.feedback_repository import feedback_repository
from app.repositories.okr_repository import okr_repository
from app.repositories.review_cycle_repository import review_cycle_repository
from app.repositories.review_submission_repository import review_submission_repository
from app.repositories.user_repository import user_repository
from app.schemas.common import dump
from app.schemas.review_submission import NominationRequest, SubmissionResponse, SubmissionUpdate
from app.services.ai_service import AIService
from app.services.notification_service import NotificationService
from app.utils.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.utils.pagination import PageParams
from app.utils.permissions import authorize, is_allowed

logger = logging.getLogger(__name__)

# 리뷰어가 수정할 수 있는 필드 — Fields the reviewer may edit while draft
EDITABLE_FIELDS: tuple[str, ...] = (
    "responses", "overall_rating", "strengths", "areas_for_improvement", "goals", "comments",
)


def blank_responses(cycle: ReviewCycle) -> list[dict[str, Any]]:
    """사이클 질문으로 빈 응답 목록 생성 — One empty answer per cycle question."""
    return [
        {"question_id": str(q.id), "question_text": q.question, "response": "", "rating": None}
        for q in cycle.questions
    ]


class ReviewSubmissionService:
    """리뷰 제출 서비스.

    Attributes:
        ai: 관리자 리뷰 초안 제안용 AI 서비스 (Drafts suggestions for manager reviews)
        notifications: 알림 서비스 (Notification service)
    """

    def __init__(self, ai: AIService, notifications: NotificationService) -> None:
        self.ai = ai
        self.notifications = notifications

    # --- 조회 (Reads) ---

    async def _get(self, db: AsyncSession, submission_id: UUID) -> ReviewSubmission:
        submission = await review_submission_repository.get_by_id(db, submission_id)
        if submission is None:
            raise NotFoundError("Review submission not found")
        return submission

    async def get_submission(self, db: AsyncSession, actor: User, submission_id: UUID) -> ReviewSubmission:
        """리뷰 조회 — 평가자, 피평가자, 관리자/HR만."""
        submission = await self._get(db, submission_id)
        if actor.id not in (submission.reviewer_id, submission.reviewee_id):
            authorize(actor, "review_submissions", "read_any", "Access denied")
        return submission

    def serialize(self, submission: ReviewSubmission, viewer: User) -> dict[str, Any]:
        """응답 직렬화 — The reviewee never sees who wrote an anonymous review."""
        data = dump(SubmissionResponse, submission)
        if submission.is_anonymous and viewer.id == submission.reviewee_id:
            data["reviewer_id"] = None
        return data

    async def list_mine(
        self,
        db: AsyncSession,
        actor: User,
        params: PageParams,
        status: str | None = None,
        cycle_id: UUID | None = None,
    ) -> tuple[Sequence[ReviewSubmission], int]:
        query = review_submission_repository.build_list_query(
            reviewer_id=actor.id, cycle_id=cycle_id, status=status
        )
        return await review_submission_repository.get_paginated(db, query, params.page, params.limit)

    async def list_pending(self, db: AsyncSession, actor: User) -> Sequence[ReviewSubmission]:
        """작성 대기 리뷰 — The caller's drafts in cycles still accepting submissions."""
        result = await db.execute(
            review_submission_repository.build_list_query(reviewer_id=actor.id, status="draft")
        )
        pending = []
        for submission in result.scalars().all():
            cycle = await review_cycle_repository.get_by_id(db, submission.review_cycle_id)
            if cycle is not None and cycle.accepts_submissions:
                pending.append(submission)
        return pending

    async def list_for_cycle(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        params: PageParams,
        status: str | None = None,
        review_type: str | None = None,
    ) -> tuple[Sequence[ReviewSubmission], int]:
        if await review_cycle_repository.get_by_id(db, cycle_id) is None:
            raise NotFoundError("Review cycle not found")
        query = review_submission_repository.build_list_query(
            cycle_id=cycle_id, status=status, review_type=review_type
        )
        return await review_submission_repository.get_paginated(db, query, params.page, params.limit)

    # --- 작성 및 제출 (Editing and submitting) ---

    async def update_submission(
        self, db: AsyncSession, actor: User, submission_id: UUID, data: SubmissionUpdate
    ) -> ReviewSubmission:
        """리뷰 작성 — 평가자만, 초안 상태에서만.

        Raises:
            ForbiddenError: 평가자가 아닐 때 (Caller is not the reviewer)
            BadRequestError: 이미 제출된 리뷰 (Cannot edit submitted review)
        """
        submission = await self._get(db, submission_id)
        if submission.reviewer_id != actor.id:
            raise ForbiddenError("Only the reviewer can edit this review")
        if submission.status != "draft":
            raise BadRequestError("Cannot edit submitted review")

        changes = data.model_dump(exclude_unset=True, include=set(EDITABLE_FIELDS))
        if "responses" in changes:
            changes["responses"] = [dict(item) for item in changes["responses"] or []]
        return await review_submission_repository.update(db, submission, changes)

    async def submit(self, db: AsyncSession, actor: User, submission_id: UUID) -> ReviewSubmission:
        """리뷰 제출 — 참가자 상태 갱신 및 피평가자 알림.

        Raises:
            BadRequestError: 이미 제출됨 또는 사이클이 제출을 받지 않음
                             (Already submitted, or cycle closed for submissions)
        """
        submission = await self._get(db, submission_id)
        if submission.reviewer_id != actor.id:
            raise ForbiddenError("Only the reviewer can submit this review")
        if submission.status != "draft":
            raise BadRequestError("Review has already been submitted")
        cycle = await review_cycle_repository.get_by_id(db, submission.review_cycle_id)
        if cycle is None or not cycle.accepts_submissions:
            raise BadRequestError("Review cycle is not accepting submissions")

        now = utcnow()
        submission = await review_submission_repository.update(
            db, submission, {"status": "submitted", "submitted_at": now}
        )
        participant = cycle.participant_for(actor.id)
        if participant is not None and participant.status != "submitted":
            participant.status = "submitted"
            participant.submitted_at = now
            await db.flush()

        logger.info(
            "Review submitted",
            extra={"submission_id": str(submission.id), "review_type": submission.review_type},
        )
        if not submission.is_anonymous and submission.reviewee_id != actor.id:
            await self.notifications.notify_review_submitted(db, submission, actor)
        return submission

    async def mark_reviewed(self, db: AsyncSession, actor: User, submission_id: UUID) -> ReviewSubmission:
        """검토 완료 처리 — 관리자는 직속 부하의 리뷰만."""
        submission = await self._get(db, submission_id)
        if submission.status != "submitted":
            raise BadRequestError("Only submitted reviews can be marked as reviewed")
        if not is_allowed(actor.role, "review_submissions", "read_any"):
            reviewee = await user_repository.get_by_id(db, submission.reviewee_id)
            if reviewee is None or reviewee.manager_id != actor.id:
                raise ForbiddenError("You can only mark reviews of your direct reports")
        return await review_submission_repository.update(
            db,
            submission,
            {"status": "reviewed", "reviewed_at": utcnow(), "reviewed_by_id": actor.id},
        )

    # --- 동료 지명 (Peer nomination) ---

    async def nominate_peers(self, db: AsyncSession, actor: User, data: NominationRequest) -> list[dict[str, Any]]:
        """동료 리뷰어 지명 — 호출자를 피평가자로 하는 peer 리뷰 생성.

        Returns:
            list[dict]: ``{"peer_user_id", "status": "nominated" | "already_exists"}``

        Raises:
            ForbiddenError: 사이클 참가자가 아닐 때 (Caller not a participant)
            BadRequestError: 제출 불가 사이클, 동료 리뷰 비활성, 인원 초과
                             (Cycle not open, peer reviews disabled, too many peers)
        """
        cycle = await review_cycle_repository.get_by_id(db, data.review_cycle_id)
        if cycle is None:
            raise NotFoundError("Review cycle not found")
        if cycle.participant_for(actor.id) is None:
            raise ForbiddenError("You must be a participant in this review cycle to nominate peers")
        if not cycle.accepts_submissions:
            raise BadRequestError("Review cycle is not accepting submissions")
        if "peer" not in cycle.review_types:
            raise BadRequestError("Peer reviews are not enabled for this cycle")
        if not cycle.allow_self_nomination:
            raise BadRequestError("Peer self-nomination is not enabled for this cycle")

        peer_ids = list(dict.fromkeys(pid for pid in data.peer_user_ids if pid != actor.id))
        peers = {user.id: user for user in await user_repository.get_by_ids(db, peer_ids)}
        if any(pid not in peers or not peers[pid].is_active for pid in peer_ids):
            raise BadRequestError("One or more peers were not found")

        existing = await db.execute(
            review_submission_repository.build_list_query(
                reviewee_id=actor.id, cycle_id=cycle.id, review_type="peer"
            )
        )
        existing_reviewers = {s.reviewer_id for s in existing.scalars().all()}
        new_ids = [pid for pid in peer_ids if pid not in existing_reviewers]
        if len(existing_reviewers) + len(new_ids) > cycle.max_peer_reviewers:
            raise BadRequestError(f"You can nominate at most {cycle.max_peer_reviewers} peer reviewers")

        now = utcnow()
        results: list[dict[str, Any]] = []
        for pid in peer_ids:
            if pid in existing_reviewers:
                results.append({"peer_user_id": str(pid), "status": "already_exists"})
                continue
            submission = await review_submission_repository.create(
                db,
                {
                    "review_cycle_id": cycle.id,
                    "reviewee_id": actor.id,
                    "reviewer_id": pid,
                    "review_type": "peer",
                    "responses": blank_responses(cycle),
                    "is_nominated": True,
                    "nominated_by_id": actor.id,
                    "nominated_at": now,
                },
            )
            await self.notifications.notify_peer_nomination(db, submission, actor, cycle)
            results.append({"peer_user_id": str(pid), "status": "nominated"})
        return results

    # --- 생성 (Generation) ---

    async def generate_for_cycle(self, db: AsyncSession, cycle: ReviewCycle) -> int:
        """사이클 리뷰 생성 — 참가자별 self / manager / upward 리뷰.

        Create the submissions of an active cycle. Existing tuples are
        skipped, so running it twice creates nothing new. Manager reviews
        get AI-drafted suggestions when a provider is configured.

        Returns:
            int: 새로 생성된 제출 수 (Number of submissions created)
        """
        users = {
            user.id: user
            for user in await user_repository.get_by_ids(db, [p.user_id for p in cycle.participants])
        }
        created = 0
        for participant in cycle.participants:
            user = users.get(participant.user_id)
            if user is None or not user.is_active:
                continue
            pairs: list[tuple[UUID, UUID, str]] = []
            if "self" in cycle.review_types:
                pairs.append((user.id, user.id, "self"))
            if user.manager_id is not None:
                if "manager" in cycle.review_types:
                    pairs.append((user.id, user.manager_id, "manager"))
                if "upward" in cycle.review_types:
                    pairs.append((user.manager_id, user.id, "upward"))

            for reviewee_id, reviewer_id, review_type in pairs:
                if await review_submission_repository.find_tuple(db, cycle.id, reviewee_id, reviewer_id, review_type):
                    continue
                suggestions = None
                if review_type == "manager" and self.ai.configured_providers:
                    suggestions = await self._draft_manager_suggestions(db, cycle, user)
                await review_submission_repository.create(
                    db,
                    {
                        "review_cycle_id": cycle.id,
                        "reviewee_id": reviewee_id,
                        "reviewer_id": reviewer_id,
                        "review_type": review_type,
                        "responses": blank_responses(cycle),
                        "ai_suggestions": suggestions,
                    },
                )
                created += 1
        logger.info("Review submissions generated", extra={"cycle_id": str(cycle.id), "count": created})
        return created

    async def reviewee_context(self, db: AsyncSession, reviewee: User) -> tuple[str | None, str | None]:
        """AI 프롬프트 문맥 — Recent feedback lines and active OKR progress of a reviewee."""
        since = utcnow() - timedelta(days=90)
        feedback = list(await feedback_repository.get_received_since(db, [reviewee.id], since))[-5:]
        past_feedback = "\n".join(f"- {item.content}" for item in feedback) or None
        okrs = list(await okr_repository.get_active_for_user(db, reviewee.id))[:3]
        okr_progress = "\n".join(
            f"{okr.title}: {round(okr.average_score / 10 * 100)}% complete" for okr in okrs
        ) or None
        return past_feedback, okr_progress

    async def _draft_manager_suggestions(
        self, db: AsyncSession, cycle: ReviewCycle, reviewee: User
    ) -> dict[str, Any]:
        """관리자 리뷰 AI 초안 — Suggested answers built from recent feedback and active OKRs."""
        past_feedback, okr_progress = await self.reviewee_context(db, reviewee)

        responses = []
        for question in cycle.questions:
            # 사이클 질문은 저장된 값 — cycle questions are stored text, not caller input
            result = await self.ai.generate_question_response(
                question.question,
                reviewee.full_name,
                requires_rating=question.requires_rating,
                past_feedback=past_feedback,
                okr_progress=okr_progress,
                check_input=False,
            )
            if result["success"]:
                answer, rating = result["response"], result["rating"]
            else:
                answer = (
                    f"Based on {reviewee.first_name}'s recent performance and feedback, "
                    "they have shown consistent progress in their role."
                )
                rating = 7
            responses.append(
                {
                    "question_id": str(question.id),
                    "question_text": question.question,
                    "response": answer,
                    "rating": rating if question.requires_rating else None,
                }
            )

        general = await self.ai.generate_review_suggestion(
            {"review_type": "manager"},
            {
                "reviewee_name": reviewee.full_name,
                "past_feedback": past_feedback,
                "okr_progress": okr_progress,
            },
        )
        return {
            "suggested_comments": (
                general["suggestion"]
                if general["success"]
                else f"{reviewee.first_name} has demonstrated solid performance this review period."
            ),
            "suggested_responses": responses,
            "used_suggestion": False,
        }
