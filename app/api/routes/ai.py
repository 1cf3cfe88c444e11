"""AI 라우터 — 리뷰 제안, 자기 평가 요약, 감성 분석, 성과 점수.

AI Router. Provider failures come back as tagged results and are
turned into 503 here; unsafe input is rejected with 400.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.ai import QuestionResponseRequest, SentimentRequest, SuggestionRequest, SummaryRequest
from app.schemas.common import ok
from app.utils.exceptions import ServiceUnavailableError

router: APIRouter = APIRouter()


def _unwrap(result: dict[str, Any]) -> dict[str, Any]:
    if not result.get("success"):
        raise ServiceUnavailableError(result.get("error", "AI services temporarily unavailable"))
    return result


@router.post("/review-suggestion")
async def review_suggestion(
    data: SuggestionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("ai", "use"))],
) -> dict[str, Any]:
    """리뷰 제안 생성.

    Draft a review suggestion. With ``reviewee_id`` the reviewee's recent
    feedback and OKR progress are added to the prompt context.
    """
    review_data: dict[str, Any] = {"review_type": data.review_type, **data.context}
    reviewee_context: dict[str, Any] | None = None
    if data.reviewee_id is not None:
        reviewee = await services.users.get_visible_user(db, current_user, data.reviewee_id)
        past_feedback, okr_progress = await services.submissions.reviewee_context(db, reviewee)
        reviewee_context = {
            "reviewee_name": reviewee.full_name,
            "past_feedback": past_feedback,
            "okr_progress": okr_progress,
        }
    result = _unwrap(await services.ai.generate_review_suggestion(review_data, reviewee_context))
    return ok({"suggestion": result["suggestion"], "provider": result["provider"]})


@router.post("/summarize-assessment")
async def summarize_assessment(
    data: SummaryRequest,
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("ai", "use"))],
) -> dict[str, Any]:
    result = _unwrap(
        await services.ai.summarize_self_assessment([answer.model_dump() for answer in data.responses])
    )
    return ok({"summary": result["summary"], "provider": result["provider"]})


@router.post("/question-response")
async def question_response(
    data: QuestionResponseRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("ai", "use"))],
) -> dict[str, Any]:
    """질문별 답변 생성 — Suggested answer (and 1-10 rating) for one review question."""
    reviewee = await services.users.get_visible_user(db, current_user, data.reviewee_id)
    past_feedback, okr_progress = await services.submissions.reviewee_context(db, reviewee)
    result = _unwrap(
        await services.ai.generate_question_response(
            data.question,
            reviewee.full_name,
            requires_rating=data.requires_rating,
            past_feedback=past_feedback,
            okr_progress=okr_progress,
        )
    )
    return ok({"response": result["response"], "rating": result["rating"], "provider": result["provider"]})


@router.post("/analyze-sentiment")
async def analyze_sentiment(
    data: SentimentRequest,
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("ai", "use"))],
) -> dict[str, Any]:
    """감성 분석 — 공급자가 없으면 키워드 기반으로 대체되어 항상 성공."""
    return ok(await services.ai.analyze_sentiment(data.text))


@router.get("/score/{user_id}")
async def score_user(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("ai", "score"))],
    review_cycle_id: Annotated[UUID | None, Query(description="사이클 (리뷰 기반 구성 요소)")] = None,
) -> dict[str, Any]:
    """AI 성과 점수.

    Weighted score over six components clamped to 0-10. With a cycle,
    the result is stored on the user's manager reviews in that cycle.
    """
    result = await services.scoring.score_user(db, current_user, user_id, review_cycle_id)
    await db.commit()
    return ok(result)


@router.get("/test-connection")
async def test_connection(
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("ai", "test_connection"))],
) -> dict[str, Any]:
    return ok(await services.ai.test_connection())
