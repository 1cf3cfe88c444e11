"""리뷰 제출 라우터 — 작성, 제출, 확인, 동료 지명.

Review Submission Router — The reviewer's own submissions, drafting,
submitting, manager sign-off and peer nomination.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import ok
from app.schemas.review_submission import NominationRequest, SubmissionUpdate
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.get("")
async def list_my_submissions(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    params: Annotated[PageParams, Depends(page_params)],
    status: Annotated[str | None, Query(pattern="^(draft|submitted|reviewed)$")] = None,
    cycle_id: Annotated[UUID | None, Query(description="사이클 필터")] = None,
) -> dict[str, Any]:
    """내 리뷰 목록 — Submissions where the caller is the reviewer."""
    items, total = await services.submissions.list_mine(db, current_user, params, status, cycle_id)
    data = [services.submissions.serialize(item, current_user) for item in items]
    return ok(build_page(data, total, params))


@router.get("/pending")
async def list_pending(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    items = await services.submissions.list_pending(db, current_user)
    return ok([services.submissions.serialize(item, current_user) for item in items])


@router.post("/nominate", status_code=201)
async def nominate_peers(
    data: NominationRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_submissions", "nominate"))],
) -> dict[str, Any]:
    """동료 리뷰어 지명.

    Nominate peers to review the caller. Each nominated peer gets a draft
    peer review and a notification; existing nominations are reported
    as ``already_exists``.
    """
    results = await services.submissions.nominate_peers(db, current_user, data)
    await db.commit()
    return ok(results, "Peer nominations processed")


@router.get("/{submission_id}")
async def get_submission(
    submission_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    submission = await services.submissions.get_submission(db, current_user, submission_id)
    return ok(services.submissions.serialize(submission, current_user))


@router.put("/{submission_id}")
async def update_submission(
    submission_id: UUID,
    data: SubmissionUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """초안 저장 — 제출된 리뷰는 수정 불가 (400)."""
    submission = await services.submissions.update_submission(db, current_user, submission_id, data)
    await db.commit()
    return ok(services.submissions.serialize(submission, current_user), "Review saved successfully")


@router.post("/{submission_id}/submit")
async def submit_review(
    submission_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    submission = await services.submissions.submit(db, current_user, submission_id)
    await db.commit()
    return ok(services.submissions.serialize(submission, current_user), "Review submitted successfully")


@router.patch("/{submission_id}/review")
async def mark_reviewed(
    submission_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_submissions", "mark_reviewed"))],
) -> dict[str, Any]:
    submission = await services.submissions.mark_reviewed(db, current_user, submission_id)
    await db.commit()
    return ok(services.submissions.serialize(submission, current_user), "Review marked as reviewed")
