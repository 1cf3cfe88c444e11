"""알림 서비스 — 알림 생성, 이메일 발송, 리마인더 비즈니스 로직.

Notification Service — Business logic for notification management.
Handles notification creation with best-effort email delivery, the
user-facing read/unread operations, and the reminder scans run by the
scheduler (daily review reminders, urgent deadlines, scheduled flush).
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.feedback import Feedback
from app.models.notification import Notification
from app.models.review_cycle import ReviewCycle
from app.models.review_submission import ReviewSubmission
from app.models.user import User
from app.repositories.notification_repository import notification_repository
from app.repositories.review_cycle_repository import review_cycle_repository
from app.repositories.user_repository import user_repository
from app.utils.email import render_notification_email
from app.utils.exceptions import NotFoundError
from app.utils.pagination import PageParams

logger = logging.getLogger(__name__)

# 일일 리마인더 발송 시점 — Days before the deadline that trigger a reminder
REMINDER_DAYS: tuple[int, ...] = (7, 3, 1)

# 이메일 재시도 한도 — Delivery attempts before a scheduled email is dropped
MAX_EMAIL_ATTEMPTS: int = 3

_PREFERENCE_FIELDS: tuple[str, ...] = ("email_notifications", "weekly_reminders", "deadline_alerts")


class EmailSender(Protocol):
    """이메일 발송기 인터페이스 — Anything able to send one email."""

    @property
    def enabled(self) -> bool: ...

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> None: ...


class NotificationService:
    """알림 서비스.

    Notification service. Creation never raises because of email problems;
    the notify_* helpers never raise at all, so a failing notification
    cannot fail the request that triggered it.

    Attributes:
        email_sender: 이메일 발송기 (SMTP sender in production, recorder in tests)
        frontend_url: 이메일 링크 기준 주소 (Base URL for links in emails)
        clock: 현재 시각 함수 (Returns the current UTC time)
    """

    def __init__(
        self,
        email_sender: EmailSender,
        frontend_url: str,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.email_sender = email_sender
        self.frontend_url = frontend_url
        self.clock = clock

    # --- 생성 및 발송 (Creation and delivery) ---

    async def create(
        self,
        db: AsyncSession,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        related_id: UUID | None = None,
        related_type: str | None = None,
        priority: str = "medium",
        scheduled_for: datetime | None = None,
        meta: dict[str, Any] | None = None,
        dedupe_key: str | None = None,
    ) -> Notification | None:
        """알림을 생성하고 즉시 발송 대상이면 이메일을 보냅니다.

        Create a notification. ``scheduled_for`` defaults to now; when it is
        not in the future the email is attempted right away.

        Returns:
            Notification | None: 생성된 알림, dedupe_key 중복이면 None
                                 (None when the dedupe key was already used)
        """
        if dedupe_key is not None and await notification_repository.dedupe_key_exists(db, dedupe_key):
            return None

        now = self.clock()
        notification: Notification = await notification_repository.create(
            db,
            {
                "user_id": user_id,
                "type": type,
                "title": title,
                "message": message,
                "related_id": related_id,
                "related_type": related_type,
                "priority": priority,
                "scheduled_for": scheduled_for or now,
                "meta": dict(meta or {}),
                "dedupe_key": dedupe_key,
            },
        )
        if notification.scheduled_for <= now:
            await self.deliver_email(db, notification)
        return notification

    async def deliver_email(
        self,
        db: AsyncSession,
        notification: Notification,
        user: User | None = None,
    ) -> bool:
        """알림 이메일 발송 — 실패는 기록만 하고 전파하지 않습니다.

        Send the email for one notification. Recipients who opted out, or a
        disabled sender, clear ``scheduled_for`` so the flush job skips the
        row. A failed send is retried by the flush job up to
        ``MAX_EMAIL_ATTEMPTS`` times.

        Returns:
            bool: 발송 성공 여부 (Whether the email went out)
        """
        if notification.email_sent:
            return False
        user = user or await user_repository.get_by_id(db, notification.user_id)
        if user is None or not user.is_active or not user.email_notifications or not self.email_sender.enabled:
            notification.scheduled_for = None
            await db.flush()
            return False

        subject, html, text = render_notification_email(
            notification.type, notification.title, notification.message, user.full_name, self.frontend_url
        )
        try:
            await self.email_sender.send(user.email, subject, html, text)
        except Exception as exc:  # noqa: BLE001
            attempts = int(notification.meta.get("email_attempts", 0)) + 1
            notification.meta = {**notification.meta, "email_attempts": attempts}
            if attempts >= MAX_EMAIL_ATTEMPTS:
                notification.scheduled_for = None
            await db.flush()
            logger.error(
                "Notification email failed",
                extra={"notification_id": str(notification.id), "attempts": attempts, "error": str(exc)},
            )
            return False

        notification.email_sent = True
        notification.sent_at = self.clock()
        await db.flush()
        return True

    async def process_scheduled(self, db: AsyncSession, now: datetime | None = None) -> int:
        """예약 알림 발송 — Deliver every notification due at ``now``."""
        now = now or self.clock()
        delivered = 0
        for notification in await notification_repository.get_due_for_delivery(db, now):
            if await self.deliver_email(db, notification):
                delivered += 1
        if delivered:
            logger.info("Scheduled notifications delivered", extra={"count": delivered})
        return delivered

    # --- 리마인더 스캔 (Reminder scans) ---

    async def send_daily_reminders(self, db: AsyncSession, now: datetime | None = None) -> int:
        """일일 리뷰 리마인더 — 마감 7/3/1일 전 미제출 참가자에게 알림.

        For every active cycle still open, remind each pending participant
        whose ``deadline_alerts`` preference is on when the cycle ends in
        exactly 7, 3 or 1 day(s). Reminders are keyed per cycle, user, day
        count and UTC date, so repeated runs on the same day add nothing.

        Returns:
            int: 생성된 리마인더 수 (Number of reminders created)
        """
        now = now or self.clock()
        created = 0
        for cycle in await review_cycle_repository.get_active_ending_between(db, now):
            days_left = math.ceil((cycle.end_date - now) / timedelta(days=1))
            if days_left not in REMINDER_DAYS:
                continue
            for user in await self._pending_recipients(db, cycle):
                plural = "day" if days_left == 1 else "days"
                notification = await self.create(
                    db,
                    user_id=user.id,
                    type="review_reminder",
                    title=f"Review Reminder: {days_left} {plural} left",
                    message=(
                        f'The review cycle "{cycle.name}" closes in {days_left} {plural}. '
                        "Please complete your pending reviews."
                    ),
                    related_id=cycle.id,
                    related_type="cycle",
                    priority="high" if days_left == 1 else "medium",
                    meta={"days_left": days_left, "cycle_name": cycle.name},
                    dedupe_key=f"review_reminder:{cycle.id}:{user.id}:{days_left}:{now.date().isoformat()}",
                )
                if notification is not None:
                    created += 1
        if created:
            logger.info("Daily review reminders created", extra={"count": created})
        return created

    async def send_urgent_deadlines(self, db: AsyncSession, now: datetime | None = None) -> int:
        """긴급 마감 알림 — 24시간 이내 마감되는 사이클의 미제출 참가자에게 알림.

        Alert pending participants of active cycles ending within the next
        24 hours. Each participant is alerted once per cycle.
        """
        now = now or self.clock()
        created = 0
        cycles = await review_cycle_repository.get_active_ending_between(db, now, now + timedelta(hours=24))
        for cycle in cycles:
            hours_left = math.ceil((cycle.end_date - now) / timedelta(hours=1))
            for user in await self._pending_recipients(db, cycle, respect_preference=False):
                notification = await self.create(
                    db,
                    user_id=user.id,
                    type="deadline_approaching",
                    title="Urgent: Review Deadline Approaching",
                    message=(
                        f'Only {hours_left} hour(s) left to submit your reviews for "{cycle.name}".'
                    ),
                    related_id=cycle.id,
                    related_type="cycle",
                    priority="urgent",
                    meta={"hours_left": hours_left, "cycle_name": cycle.name},
                    dedupe_key=f"deadline_approaching:{cycle.id}:{user.id}",
                )
                if notification is not None:
                    created += 1
        return created

    async def _pending_recipients(
        self, db: AsyncSession, cycle: ReviewCycle, respect_preference: bool = True
    ) -> Sequence[User]:
        """미제출 참가자 — Active pending participants; urgent alerts ignore ``deadline_alerts``."""
        pending_ids = [p.user_id for p in cycle.participants if p.status == "pending"]
        users = await user_repository.get_by_ids(db, pending_ids)
        return [u for u in users if u.is_active and (u.deadline_alerts or not respect_preference)]

    # --- 사용자 작업 (User-facing operations) ---

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        params: PageParams,
        unread_only: bool = False,
        type: str | None = None,
    ) -> tuple[Sequence[Notification], int]:
        """사용자의 알림 목록 — Paginated notifications of a user, newest first."""
        query = notification_repository.build_user_query(user_id, unread_only, type)
        return await notification_repository.get_paginated(db, query, params.page, params.limit)

    async def get_unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        return await notification_repository.get_unread_count(db, user_id)

    async def _get_own(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await notification_repository.get_by_id(db, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification not found")
        return notification

    async def mark_read(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> Notification:
        """단일 알림 읽음 처리 — Mark one of the caller's notifications as read."""
        notification = await self._get_own(db, notification_id, user_id)
        if not notification.is_read:
            notification = await notification_repository.update(
                db, notification, {"is_read": True, "read_at": self.clock()}
            )
        return notification

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        return await notification_repository.mark_all_read(db, user_id)

    async def delete(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> None:
        notification = await self._get_own(db, notification_id, user_id)
        await notification_repository.delete(db, notification)

    async def update_preferences(self, db: AsyncSession, user: User, data: dict[str, Any]) -> dict[str, bool]:
        """알림 설정 변경 — Update the caller's notification preferences."""
        changes = {key: value for key, value in data.items() if key in _PREFERENCE_FIELDS and value is not None}
        if changes:
            await user_repository.update(db, user, changes)
        return {field: getattr(user, field) for field in _PREFERENCE_FIELDS}

    async def send_test(self, db: AsyncSession, user: User) -> Notification | None:
        return await self.create(
            db,
            user_id=user.id,
            type="system_announcement",
            title="Test Notification",
            message="This is a test notification to verify your notification settings.",
            related_id=user.id,
            related_type="user",
            priority="low",
        )

    async def announce(self, db: AsyncSession, title: str, message: str, priority: str = "medium") -> int:
        """시스템 공지 — Send a system announcement to every active user."""
        users = await user_repository.get_active_users(db)
        for user in users:
            await self.create(
                db,
                user_id=user.id,
                type="system_announcement",
                title=title,
                message=message,
                priority=priority,
            )
        return len(users)

    # --- 도메인 이벤트 알림 (Domain event helpers, never raise) ---

    async def _notify_safely(self, db: AsyncSession, **fields: Any) -> Notification | None:
        try:
            async with db.begin_nested():
                return await self.create(db, **fields)
        except SQLAlchemyError as exc:
            logger.error(
                "Notification creation failed",
                extra={"type": fields.get("type"), "user_id": str(fields.get("user_id")), "error": str(exc)},
            )
            return None

    async def notify_cycle_created(self, db: AsyncSession, cycle: ReviewCycle) -> int:
        """새 사이클 알림 — Tell every active user about a new cycle."""
        users = await user_repository.get_active_users(db)
        sent = 0
        for user in users:
            if await self._notify_safely(
                db,
                user_id=user.id,
                type="cycle_created",
                title=f"New Review Cycle: {cycle.name}",
                message=(
                    f'The review cycle "{cycle.name}" runs from {cycle.start_date.date().isoformat()} '
                    f"to {cycle.end_date.date().isoformat()}."
                ),
                related_id=cycle.id,
                related_type="cycle",
            ):
                sent += 1
        return sent

    async def notify_feedback_received(self, db: AsyncSession, feedback: Feedback, sender: User) -> None:
        await self._notify_safely(
            db,
            user_id=feedback.to_user_id,
            type="feedback_received",
            title="New Feedback Received",
            message=f"{sender.full_name} left you {feedback.category} feedback.",
            related_id=feedback.id,
            related_type="feedback",
        )

    async def notify_review_submitted(self, db: AsyncSession, submission: ReviewSubmission, reviewer: User) -> None:
        await self._notify_safely(
            db,
            user_id=submission.reviewee_id,
            type="review_submitted",
            title="Review Submitted",
            message=f"{reviewer.full_name} submitted a {submission.review_type} review about you.",
            related_id=submission.id,
            related_type="review",
        )

    async def notify_peer_nomination(
        self, db: AsyncSession, submission: ReviewSubmission, nominator: User, cycle: ReviewCycle
    ) -> None:
        await self._notify_safely(
            db,
            user_id=submission.reviewer_id,
            type="peer_nomination_request",
            title="Peer Review Request",
            message=f'{nominator.full_name} asked you for a peer review in "{cycle.name}".',
            related_id=submission.id,
            related_type="review",
            priority="high",
        )
