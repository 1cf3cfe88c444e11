"""백그라운드 작업 스케줄러 — 리마인더 및 예약 알림 발송.

Background task scheduler built on APScheduler's ``AsyncIOScheduler``.

Each recurring job is a ``RecurringTask``: a name, an APScheduler trigger
and an async function taking ``(session, now)``. ``run_once`` opens a
fresh session, runs the function and commits, which is exactly what the
scheduler calls on every fire and what tests call directly through
``TaskScheduler.tick``.

Jobs:
    - daily_review_reminders: 매일 09:00 UTC (cron)
    - urgent_deadline_alerts: 매시간 (hourly)
    - scheduled_notification_flush: 5분마다 (every 5 minutes)
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import utcnow
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

TaskFunc = Callable[[AsyncSession, datetime], Awaitable[int]]


@dataclass
class RecurringTask:
    """반복 작업 정의.

    Attributes:
        name: 작업 이름, 스케줄러 job id로 사용 (Unique name, used as the job id)
        trigger: APScheduler 트리거 (When the task fires)
        func: 작업 함수 (Async function receiving a session and the current time)
        session_factory: 세션 팩토리 (Opens one session per run)
        clock: 현재 시각 함수 (Current UTC time when ``now`` is not given)
    """

    name: str
    trigger: BaseTrigger
    func: TaskFunc
    session_factory: async_sessionmaker[AsyncSession]
    clock: Callable[[], datetime] = field(default=utcnow)

    async def run_once(self, now: datetime | None = None) -> int:
        """작업 1회 실행 — Run the task in its own session and commit.

        Returns:
            int: 처리 건수 (Number of items the task produced or delivered)
        """
        async with self.session_factory() as session:
            try:
                count = await self.func(session, now or self.clock())
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Recurring task failed", extra={"task": self.name})
                raise
        logger.info("Recurring task finished", extra={"task": self.name, "count": count})
        return count


class TaskScheduler:
    """반복 작업 스케줄러.

    Registers every ``RecurringTask`` on an ``AsyncIOScheduler`` with
    ``max_instances=1`` so a slow run is never overlapped by the next fire.
    """

    def __init__(self, tasks: list[RecurringTask], scheduler: AsyncIOScheduler | None = None) -> None:
        self._tasks: dict[str, RecurringTask] = {task.name: task for task in tasks}
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    @property
    def task_names(self) -> list[str]:
        return list(self._tasks)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """스케줄러 시작 — 실행 중인 이벤트 루프 안에서 호출해야 합니다."""
        for task in self._tasks.values():
            self._scheduler.add_job(
                task.run_once,
                trigger=task.trigger,
                id=task.name,
                name=task.name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        self._scheduler.start()
        logger.info("Scheduler started", extra={"tasks": self.task_names})

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    async def tick(self, name: str, now: datetime | None = None) -> int:
        """단일 작업 즉시 실행 — Run one task once, outside its trigger."""
        task = self._tasks.get(name)
        if task is None:
            raise KeyError(f"Unknown task: {name}")
        return await task.run_once(now)


def build_reminder_tasks(
    notifications: NotificationService,
    session_factory: async_sessionmaker[AsyncSession],
) -> list[RecurringTask]:
    """기본 작업 목록 — The three notification jobs with their triggers."""
    return [
        RecurringTask(
            name="daily_review_reminders",
            trigger=CronTrigger(hour=9, minute=0, timezone="UTC"),
            func=notifications.send_daily_reminders,
            session_factory=session_factory,
            clock=notifications.clock,
        ),
        RecurringTask(
            name="urgent_deadline_alerts",
            trigger=IntervalTrigger(hours=1),
            func=notifications.send_urgent_deadlines,
            session_factory=session_factory,
            clock=notifications.clock,
        ),
        RecurringTask(
            name="scheduled_notification_flush",
            trigger=IntervalTrigger(minutes=5),
            func=notifications.process_scheduled,
            session_factory=session_factory,
            clock=notifications.clock,
        ),
    ]
