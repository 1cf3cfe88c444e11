"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for ``create_all`` and
relationship resolution.

Modules:
    user: 사용자 (Users and their reporting line)
    organization: 부서, 팀 (Departments and teams)
    token: 리프레시 토큰 (Refresh tokens)
    okr: 목표, 핵심 결과, 진행 이력 (OKRs, key results, progress snapshots)
    feedback: 피드백 (Peer feedback)
    review_cycle: 리뷰 사이클, 참가자, 질문 (Review cycles, participants, questions)
    review_submission: 리뷰 제출 (Review submissions)
    review_template: 리뷰 템플릿 (Reusable review questions)
    notification: 알림 (User notifications)
    time_entry: 시간 기록 (Time logged against OKRs)
"""

from app.models.user import User
from app.models.organization import Department, Team
from app.models.token import RefreshToken
from app.models.okr import OKR, KeyResult, ProgressSnapshot
from app.models.feedback import Feedback
from app.models.review_cycle import CycleParticipant, CycleQuestion, ReviewCycle
from app.models.review_submission import ReviewSubmission
from app.models.review_template import ReviewTemplate
from app.models.notification import Notification
from app.models.time_entry import TimeEntry

__all__ = [
    "User",
    "Department",
    "Team",
    "RefreshToken",
    "OKR",
    "KeyResult",
    "ProgressSnapshot",
    "Feedback",
    "ReviewCycle",
    "CycleParticipant",
    "CycleQuestion",
    "ReviewSubmission",
    "ReviewTemplate",
    "Notification",
    "TimeEntry",
]
