"""API 라우터 패키지 — 모든 엔드포인트 통합.

API Router package — Aggregates every resource router into ``api_router``
(mounted under ``/api``) and exposes ``probe_router`` for ``/ready`` and
``/live``.

Included routers:
    - auth: 인증 (Registration, login, tokens, profile)
    - users / departments / teams / org: 사용자 및 조직 (People, organization and org chart)
    - okrs / time-entries: 목표 및 시간 기록 (Objectives and logged hours)
    - feedback: 피드백 (Continuous feedback and moderation)
    - review-cycles / review-submissions / review-templates: 성과 리뷰 (Performance reviews)
    - dashboard: 대시보드 (Recent activity and summary counters)
    - notifications: 알림 (In-app notifications and preferences)
    - analytics / ai: 분석 및 AI (Aggregations, AI drafting and scoring)
    - monitoring: 헬스 체크 및 메트릭 (Health and metrics)
"""

from fastapi import APIRouter

from app.api.routes.ai import router as ai_router
from app.api.routes.analytics import router as analytics_router
from app.api.routes.auth import router as auth_router
from app.api.routes.dashboard import router as dashboard_router
from app.api.routes.departments import router as departments_router
from app.api.routes.feedback import router as feedback_router
from app.api.routes.monitoring import probe_router
from app.api.routes.monitoring import router as monitoring_router
from app.api.routes.notifications import router as notifications_router
from app.api.routes.okrs import router as okrs_router
from app.api.routes.org import router as org_router
from app.api.routes.review_cycles import router as review_cycles_router
from app.api.routes.review_submissions import router as review_submissions_router
from app.api.routes.review_templates import router as review_templates_router
from app.api.routes.teams import router as teams_router
from app.api.routes.time_entries import router as time_entries_router
from app.api.routes.users import router as users_router

api_router: APIRouter = APIRouter()

# ---------------------------------------------------------------------------
# 인증 및 조직 — Auth, people and organization
# ---------------------------------------------------------------------------
api_router.include_router(auth_router, prefix="/auth", tags=["Auth"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])
api_router.include_router(departments_router, prefix="/departments", tags=["Departments"])
api_router.include_router(teams_router, prefix="/teams", tags=["Teams"])
api_router.include_router(org_router, prefix="/org", tags=["Organization"])

# ---------------------------------------------------------------------------
# 목표 및 피드백 — Objectives, time and feedback
# ---------------------------------------------------------------------------
api_router.include_router(okrs_router, prefix="/okrs", tags=["OKRs"])
api_router.include_router(time_entries_router, prefix="/time-entries", tags=["Time Entries"])
api_router.include_router(feedback_router, prefix="/feedback", tags=["Feedback"])

# ---------------------------------------------------------------------------
# 성과 리뷰 — Performance reviews
# ---------------------------------------------------------------------------
api_router.include_router(review_cycles_router, prefix="/review-cycles", tags=["Review Cycles"])
api_router.include_router(review_submissions_router, prefix="/review-submissions", tags=["Review Submissions"])
api_router.include_router(review_templates_router, prefix="/review-templates", tags=["Review Templates"])

# ---------------------------------------------------------------------------
# 대시보드, 알림, 분석, AI, 모니터링 — Dashboard, notifications, analytics, AI and monitoring
# ---------------------------------------------------------------------------
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])
api_router.include_router(ai_router, prefix="/ai", tags=["AI"])
api_router.include_router(monitoring_router, tags=["Monitoring"])

__all__ = ["api_router", "probe_router"]
