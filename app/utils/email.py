"""이메일 발송 유틸리티 — SMTP (aiosmtplib).

SMTP 설정은 config.py의 SMTP_* 환경 변수로 관리.
Outbound email via aiosmtplib plus the HTML layouts used for notification
emails. ``SmtpEmailSender`` is the object injected into the notification
service; tests swap it for a recording fake.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import aiosmtplib

from app.config import Settings, settings

# 알림 유형별 이메일 제목 접두사 — Subject prefix per notification type
_SUBJECT_PREFIX: dict[str, str] = {
    "review_reminder": "Reminder",
    "deadline_approaching": "Urgent",
    "cycle_created": "New Review Cycle",
    "feedback_received": "New Feedback",
    "review_submitted": "Review Submitted",
    "peer_nomination_request": "Peer Review Request",
    "okr_update_reminder": "OKR Update",
    "system_announcement": "Announcement",
}


async def send_email(
    to: str,
    subject: str,
    html: str,
    text: str | None = None,
    config: Settings = settings,
) -> None:
    """이메일 발송.

    Args:
        to: 수신자 이메일 주소
        subject: 제목
        html: HTML 본문
        text: 플레인텍스트 본문 (없으면 생략)
        config: SMTP 설정 (Settings holding the SMTP_* values)
    """
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{config.SMTP_FROM_NAME} <{config.SMTP_FROM_EMAIL}>"
    msg["To"] = to

    if text:
        msg.attach(MIMEText(text, "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))

    await aiosmtplib.send(
        msg,
        hostname=config.SMTP_HOST,
        port=config.SMTP_PORT,
        username=config.SMTP_USER or None,
        password=config.SMTP_PASSWORD or None,
        start_tls=True,
    )


def render_notification_email(
    notification_type: str,
    title: str,
    message: str,
    recipient_name: str,
    frontend_url: str,
) -> tuple[str, str, str]:
    """알림 이메일 렌더링 — Return ``(subject, html, text)`` for a notification."""
    prefix = _SUBJECT_PREFIX.get(notification_type, "Notification")
    subject = f"[{prefix}] {title}"
    link = f"{frontend_url.rstrip('/')}/notifications"
    html = (
        f"<p>Hi {escape(recipient_name)},</p>"
        f"<h2>{escape(title)}</h2>"
        f"<p>{escape(message)}</p>"
        f'<p><a href="{escape(link)}">Open Performance Review</a></p>'
    )
    text = f"Hi {recipient_name},\n\n{title}\n\n{message}\n\n{link}\n"
    return subject, html, text


class SmtpEmailSender:
    """SMTP 발송기 — Sends mail through the configured SMTP relay."""

    def __init__(self, config: Settings = settings) -> None:
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.SMTP_FROM_EMAIL)

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> None:
        await send_email(to, subject, html, text, config=self._config)
