"""서비스 컨테이너 — 애플리케이션 서비스 생성 및 연결.

Service container. Every service that holds process state (cache, AI
HTTP client, email sender, scheduler) is built here once per application
and attached to ``app.state.services``; routes read it through
``get_services``. Tests build their own container with fakes.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.scheduler import TaskScheduler, build_reminder_tasks
from app.services.ai_service import AIService
from app.services.analytics_service import AnalyticsService
from app.services.auth_service import AuthService
from app.services.cache_service import CacheService
from app.services.dashboard_service import DashboardService
from app.services.feedback_service import FeedbackService
from app.services.monitoring_service import MonitoringService
from app.services.notification_service import EmailSender, NotificationService
from app.services.okr_service import OKRService
from app.services.organization_service import OrganizationService
from app.services.review_cycle_service import ReviewCycleService
from app.services.review_submission_service import ReviewSubmissionService
from app.services.review_template_service import ReviewTemplateService
from app.services.scoring_service import ScoringService
from app.services.time_entry_service import TimeEntryService
from app.services.user_service import UserService
from app.utils.email import SmtpEmailSender


@dataclass
class Services:
    """애플리케이션 서비스 묶음 — All services of one application instance."""

    cache: CacheService
    ai: AIService
    notifications: NotificationService
    auth: AuthService
    users: UserService
    organization: OrganizationService
    okrs: OKRService
    feedback: FeedbackService
    time_entries: TimeEntryService
    templates: ReviewTemplateService
    submissions: ReviewSubmissionService
    cycles: ReviewCycleService
    scoring: ScoringService
    analytics: AnalyticsService
    dashboard: DashboardService
    monitoring: MonitoringService
    scheduler: TaskScheduler

    async def close(self) -> None:
        """종료 처리 — Stop the scheduler and release network clients."""
        self.scheduler.shutdown()
        await self.ai.close()
        await self.cache.close()


def build_services(
    config: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    email_sender: EmailSender | None = None,
    ai: AIService | None = None,
    cache: CacheService | None = None,
) -> Services:
    """서비스 컨테이너 생성.

    Build the container from settings. ``email_sender``, ``ai`` and
    ``cache`` replace the production implementations when given.
    """
    cache = cache or CacheService(config.REDIS_URL, default_ttl=config.CACHE_TTL_SECONDS)
    ai = ai or AIService(config)
    notifications = NotificationService(email_sender or SmtpEmailSender(config), config.FRONTEND_URL)
    submissions = ReviewSubmissionService(ai, notifications)
    return Services(
        cache=cache,
        ai=ai,
        notifications=notifications,
        auth=AuthService(),
        users=UserService(),
        organization=OrganizationService(),
        okrs=OKRService(),
        feedback=FeedbackService(ai, notifications),
        time_entries=TimeEntryService(),
        templates=ReviewTemplateService(),
        submissions=submissions,
        cycles=ReviewCycleService(submissions, notifications),
        scoring=ScoringService(),
        analytics=AnalyticsService(cache),
        dashboard=DashboardService(),
        monitoring=MonitoringService(session_factory, cache, app_env=config.APP_ENV),
        scheduler=TaskScheduler(build_reminder_tasks(notifications, session_factory)),
    )
