"""알림 API 및 리마인더 테스트.

Notification API tests — list, read state, preferences, announcements —
plus the reminder scans run by the scheduler and email retry handling.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.notification import Notification
from app.services.notification_service import MAX_EMAIL_ATTEMPTS
from tests.conftest import RecordingEmailSender, auth_header, make_cycle, make_user

NOTIFICATIONS = "/api/notifications"


async def count_notifications(db: AsyncSession, type: str) -> int:
    result = await db.execute(select(func.count(Notification.id)).where(Notification.type == type))
    return result.scalar_one()


class TestNotificationApi:
    """알림 조회/읽음 처리 테스트."""

    async def _seed(self, services, db, user, count: int = 3) -> list[Notification]:
        return [
            await services.notifications.create(
                db, user_id=user.id, type="system_announcement", title=f"Notice {i}", message="Hello"
            )
            for i in range(count)
        ]

    async def test_list_and_unread_count(self, client: AsyncClient, services, db, employee_user):
        await self._seed(services, db, employee_user)
        res = await client.get(NOTIFICATIONS, headers=auth_header(employee_user))
        assert res.status_code == 200
        page = res.json()["data"]
        assert page["total"] == 3
        assert page["unread_count"] == 3
        assert page["items"][0]["metadata"] == {}

    async def test_mark_read(self, client: AsyncClient, services, db, employee_user):
        first, *_ = await self._seed(services, db, employee_user)
        res = await client.patch(f"{NOTIFICATIONS}/{first.id}/read", headers=auth_header(employee_user))
        assert res.status_code == 200
        assert res.json()["data"]["is_read"] is True
        assert res.json()["data"]["read_at"] is not None

        res = await client.get(f"{NOTIFICATIONS}/unread-count", headers=auth_header(employee_user))
        assert res.json()["data"]["unread_count"] == 2

        res = await client.get(NOTIFICATIONS, params={"unread_only": True}, headers=auth_header(employee_user))
        assert res.json()["data"]["total"] == 2

    async def test_read_all(self, client: AsyncClient, services, db, employee_user):
        await self._seed(services, db, employee_user)
        res = await client.patch(f"{NOTIFICATIONS}/read-all", headers=auth_header(employee_user))
        assert res.json()["data"]["updated"] == 3
        res = await client.get(f"{NOTIFICATIONS}/unread-count", headers=auth_header(employee_user))
        assert res.json()["data"]["unread_count"] == 0

    async def test_cannot_touch_others_notification(
        self, client: AsyncClient, services, db, employee_user, other_employee
    ):
        first, *_ = await self._seed(services, db, employee_user, count=1)
        res = await client.patch(f"{NOTIFICATIONS}/{first.id}/read", headers=auth_header(other_employee))
        assert res.status_code == 404
        res = await client.delete(f"{NOTIFICATIONS}/{first.id}", headers=auth_header(other_employee))
        assert res.status_code == 404

    async def test_delete(self, client: AsyncClient, services, db, employee_user):
        first, *_ = await self._seed(services, db, employee_user, count=1)
        res = await client.delete(f"{NOTIFICATIONS}/{first.id}", headers=auth_header(employee_user))
        assert res.status_code == 200
        res = await client.get(NOTIFICATIONS, headers=auth_header(employee_user))
        assert res.json()["data"]["total"] == 0

    async def test_send_test_notification(self, client: AsyncClient, employee_user, email_sender):
        res = await client.post(f"{NOTIFICATIONS}/test", headers=auth_header(employee_user))
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["type"] == "system_announcement"
        assert data["email_sent"] is True
        assert email_sender.sent[0]["subject"]


class TestPreferences:
    """알림 설정 테스트."""

    async def test_defaults_and_update(self, client: AsyncClient, employee_user):
        res = await client.get(f"{NOTIFICATIONS}/preferences", headers=auth_header(employee_user))
        assert res.json()["data"] == {
            "email_notifications": True,
            "weekly_reminders": True,
            "deadline_alerts": True,
        }

        res = await client.put(
            f"{NOTIFICATIONS}/preferences", headers=auth_header(employee_user), json={"deadline_alerts": False}
        )
        assert res.status_code == 200
        assert res.json()["data"]["deadline_alerts"] is False
        assert res.json()["data"]["email_notifications"] is True

    async def test_email_opt_out(self, client: AsyncClient, employee_user, email_sender):
        """이메일 수신 거부 → 앱 알림만 생성."""
        await client.put(
            f"{NOTIFICATIONS}/preferences", headers=auth_header(employee_user), json={"email_notifications": False}
        )
        res = await client.post(f"{NOTIFICATIONS}/test", headers=auth_header(employee_user))
        data = res.json()["data"]
        assert data["email_sent"] is False
        assert data["scheduled_for"] is None
        assert email_sender.sent == []


class TestAnnouncements:
    """시스템 공지 테스트."""

    async def test_hr_announces_to_everyone(self, client: AsyncClient, hr_user, employee_user, other_employee):
        res = await client.post(
            f"{NOTIFICATIONS}/announcements",
            headers=auth_header(hr_user),
            json={"title": "Office closed", "message": "The office is closed on Friday."},
        )
        assert res.status_code == 201
        # hr, manager, employee, other
        assert res.json()["data"]["recipients"] == 4

    async def test_employee_cannot_announce(self, client: AsyncClient, employee_user):
        res = await client.post(
            f"{NOTIFICATIONS}/announcements",
            headers=auth_header(employee_user),
            json={"title": "Party", "message": "Pizza at noon."},
        )
        assert res.status_code == 403


class TestReminders:
    """리마인더 스캔 테스트."""

    async def test_reminder_on_reminder_day(self, services, db, employee_user, other_employee):
        cycle = await make_cycle(db, participants=[employee_user, other_employee], ends_in=timedelta(days=3))
        cycle.participants[1].status = "submitted"
        await db.flush()
        now = cycle.end_date - timedelta(days=3)

        created = await services.notifications.send_daily_reminders(db, now)
        assert created == 1
        again = await services.notifications.send_daily_reminders(db, now)
        assert again == 0

    async def test_no_reminder_between_reminder_days(self, services, db, employee_user):
        cycle = await make_cycle(db, participants=[employee_user], ends_in=timedelta(days=5))
        assert await services.notifications.send_daily_reminders(db, cycle.end_date - timedelta(days=5)) == 0

    async def test_deadline_alerts_preference(self, services, db, employee_user):
        """설정은 일일 리마인더에만 적용, 긴급 알림은 항상 발송."""
        employee_user.deadline_alerts = False
        cycle = await make_cycle(db, participants=[employee_user], ends_in=timedelta(days=1))
        assert await services.notifications.send_daily_reminders(db, cycle.end_date - timedelta(days=1)) == 0
        assert await services.notifications.send_urgent_deadlines(db, cycle.end_date - timedelta(hours=5)) == 1

    async def test_urgent_alert_once_per_cycle(self, services, db, employee_user):
        cycle = await make_cycle(db, participants=[employee_user], ends_in=timedelta(hours=20))
        now = cycle.end_date - timedelta(hours=20)
        assert await services.notifications.send_urgent_deadlines(db, now) == 1
        assert await services.notifications.send_urgent_deadlines(db, now + timedelta(hours=1)) == 0

        result = await db.execute(select(Notification).where(Notification.type == "deadline_approaching"))
        alert = result.scalar_one()
        assert alert.priority == "urgent"
        assert alert.meta["hours_left"] == 20

    async def test_scheduler_tick_is_idempotent(self, services, db, employee_user):
        """스케줄러 작업을 같은 날 두 번 실행해도 리마인더는 한 번만."""
        cycle = await make_cycle(db, participants=[employee_user], ends_in=timedelta(days=7))
        now = cycle.end_date - timedelta(days=7)
        await db.commit()

        assert await services.scheduler.tick("daily_review_reminders", now) == 1
        assert await services.scheduler.tick("daily_review_reminders", now) == 0
        assert await count_notifications(db, "review_reminder") == 1

    async def test_unknown_task(self, services):
        with pytest.raises(KeyError):
            await services.scheduler.tick("weekly_digest")

    def test_registered_tasks(self, services):
        assert services.scheduler.task_names == [
            "daily_review_reminders",
            "urgent_deadline_alerts",
            "scheduled_notification_flush",
        ]


class TestEmailDelivery:
    """이메일 발송 재시도 테스트."""

    async def test_failed_email_retried_then_dropped(self, services, db):
        user = await make_user(db, "fay.failing@test.com")
        services.notifications.email_sender = RecordingEmailSender(fail=True)

        notification = await services.notifications.create(
            db, user_id=user.id, type="system_announcement", title="Hello", message="World"
        )
        assert notification.email_sent is False
        assert notification.meta["email_attempts"] == 1
        assert notification.scheduled_for is not None

        later = utcnow() + timedelta(minutes=5)
        for _ in range(MAX_EMAIL_ATTEMPTS - 1):
            assert await services.notifications.process_scheduled(db, later) == 0
        assert notification.meta["email_attempts"] == MAX_EMAIL_ATTEMPTS
        assert notification.scheduled_for is None

    async def test_scheduled_notification_flushed(self, services, db, email_sender):
        user = await make_user(db, "sam.scheduled@test.com")
        due = utcnow() + timedelta(hours=1)
        notification = await services.notifications.create(
            db, user_id=user.id, type="system_announcement", title="Later", message="Soon", scheduled_for=due
        )
        assert email_sender.sent == []
        assert await services.notifications.process_scheduled(db, due - timedelta(minutes=1)) == 0
        assert await services.notifications.process_scheduled(db, due) == 1
        assert notification.email_sent is True
        assert email_sender.sent[0]["to"] == user.email
