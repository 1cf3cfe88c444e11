"""리뷰 제출 레포지토리 — 제출 조회 및 통계 쿼리.

Review Submission Repository — Tuple lookups, reviewer listings and
per-cycle aggregates.
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.review_submission import ReviewSubmission
from app.repositories.base import BaseRepository


class ReviewSubmissionRepository(BaseRepository[ReviewSubmission]):
    """리뷰 제출 레포지토리 — Review submission repository."""

    def __init__(self) -> None:
        super().__init__(ReviewSubmission)

    async def find_tuple(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        reviewee_id: UUID,
        reviewer_id: UUID,
        review_type: str,
    ) -> ReviewSubmission | None:
        """고유 조합으로 제출 조회 — Look up by (cycle, reviewee, reviewer, type)."""
        result = await db.execute(
            select(ReviewSubmission).where(
                ReviewSubmission.review_cycle_id == cycle_id,
                ReviewSubmission.reviewee_id == reviewee_id,
                ReviewSubmission.reviewer_id == reviewer_id,
                ReviewSubmission.review_type == review_type,
            )
        )
        return result.scalar_one_or_none()

    def build_list_query(
        self,
        reviewer_id: UUID | None = None,
        reviewee_id: UUID | None = None,
        cycle_id: UUID | None = None,
        status: str | None = None,
        review_type: str | None = None,
    ) -> Select:
        query: Select = select(ReviewSubmission)
        if reviewer_id is not None:
            query = query.where(ReviewSubmission.reviewer_id == reviewer_id)
        if reviewee_id is not None:
            query = query.where(ReviewSubmission.reviewee_id == reviewee_id)
        if cycle_id is not None:
            query = query.where(ReviewSubmission.review_cycle_id == cycle_id)
        if status is not None:
            query = query.where(ReviewSubmission.status == status)
        if review_type is not None:
            query = query.where(ReviewSubmission.review_type == review_type)
        return query.order_by(ReviewSubmission.created_at.desc())

    async def list_submitted_for_reviewee(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        reviewee_id: UUID,
        review_type: str,
    ) -> Sequence[ReviewSubmission]:
        """제출 완료된 리뷰 — Submitted or reviewed submissions with an overall rating."""
        result = await db.execute(
            select(ReviewSubmission).where(
                ReviewSubmission.review_cycle_id == cycle_id,
                ReviewSubmission.reviewee_id == reviewee_id,
                ReviewSubmission.review_type == review_type,
                ReviewSubmission.status.in_(("submitted", "reviewed")),
                ReviewSubmission.overall_rating.is_not(None),
            )
        )
        return result.scalars().all()

    async def delete_for_participant(self, db: AsyncSession, cycle_id: UUID, user_id: UUID) -> int:
        """참가자 관련 제출 삭제 — Delete submissions where the user is reviewer or reviewee."""
        result = await db.execute(
            delete(ReviewSubmission).where(
                ReviewSubmission.review_cycle_id == cycle_id,
                (ReviewSubmission.reviewee_id == user_id) | (ReviewSubmission.reviewer_id == user_id),
            )
        )
        await db.flush()
        return result.rowcount or 0

    async def get_cycle_stats(self, db: AsyncSession, cycle_id: UUID) -> dict[str, Any]:
        """사이클 제출 통계 — Counts per status and per review type."""
        by_status = (
            await db.execute(
                select(ReviewSubmission.status, func.count(ReviewSubmission.id))
                .where(ReviewSubmission.review_cycle_id == cycle_id)
                .group_by(ReviewSubmission.status)
            )
        ).all()
        by_type = (
            await db.execute(
                select(
                    ReviewSubmission.review_type,
                    func.count(ReviewSubmission.id),
                    func.avg(ReviewSubmission.overall_rating),
                )
                .where(ReviewSubmission.review_cycle_id == cycle_id)
                .group_by(ReviewSubmission.review_type)
            )
        ).all()
        return {
            "by_status": {status: count for status, count in by_status},
            "by_type": {
                review_type: {
                    "total": count,
                    "average_rating": round(float(avg), 2) if avg is not None else None,
                }
                for review_type, count, avg in by_type
            },
        }


# 싱글턴 인스턴스 — Singleton instance
review_submission_repository: ReviewSubmissionRepository = ReviewSubmissionRepository()
