"""역할 기반 접근 제어 정책 테이블.

Role-based access control policy table.
Every permission is a ``(resource, action)`` pair mapped to the set of
roles allowed to perform it. ``authorize`` is the single check used by
routes (through ``require_permission``) and by services for ownership
overrides, e.g. ``okrs:update_any`` lets admin/HR edit OKRs they do not own.

Roles:
    admin    — 전체 권한 (Full access)
    hr       — 인사 관리 (People operations)
    manager  — 직속 부하 범위 (Scoped to direct reports)
    employee — 본인 범위 (Scoped to self)
"""

from typing import TYPE_CHECKING

from app.utils.exceptions import ForbiddenError
from app.utils.log import security_logger

if TYPE_CHECKING:
    from app.models.user import User

ALL: frozenset[str] = frozenset({"admin", "hr", "manager", "employee"})
ADMIN: frozenset[str] = frozenset({"admin"})
PEOPLE_OPS: frozenset[str] = frozenset({"admin", "hr"})
LEADS: frozenset[str] = frozenset({"admin", "hr", "manager"})

# (resource, action) → 허용 역할 — Allowed roles per permission
POLICY: dict[tuple[str, str], frozenset[str]] = {
    # 사용자 — Users
    ("users", "list"): LEADS,
    ("users", "read_any"): PEOPLE_OPS,
    ("users", "create"): PEOPLE_OPS,
    ("users", "update_any"): PEOPLE_OPS,
    ("users", "deactivate"): ADMIN,
    ("users", "change_role"): ADMIN,
    ("users", "assign_manager"): PEOPLE_OPS,
    # 조직 — Departments and teams
    ("departments", "read"): ALL,
    ("departments", "manage"): PEOPLE_OPS,
    ("teams", "read"): ALL,
    ("teams", "manage"): PEOPLE_OPS,
    ("organization", "tree"): LEADS,
    # OKR
    ("okrs", "create"): ALL,
    ("okrs", "create_company"): ADMIN,
    ("okrs", "create_department"): PEOPLE_OPS,
    ("okrs", "read_any"): PEOPLE_OPS,
    ("okrs", "read_reports"): frozenset({"manager"}),
    ("okrs", "update_any"): PEOPLE_OPS,
    ("okrs", "archive"): ADMIN,
    # 피드백 — Feedback
    ("feedback", "create"): ALL,
    ("feedback", "read_any"): PEOPLE_OPS,
    ("feedback", "moderate"): LEADS,
    ("feedback", "delete_any"): ADMIN,
    # 리뷰 사이클 — Review cycles
    ("review_cycles", "read"): ALL,
    ("review_cycles", "create"): PEOPLE_OPS,
    ("review_cycles", "update"): PEOPLE_OPS,
    ("review_cycles", "delete"): PEOPLE_OPS,
    ("review_cycles", "manage_participants"): PEOPLE_OPS,
    ("review_cycles", "generate_submissions"): PEOPLE_OPS,
    ("review_cycles", "stats"): LEADS,
    # 리뷰 제출 — Review submissions
    ("review_submissions", "read_any"): PEOPLE_OPS,
    ("review_submissions", "mark_reviewed"): LEADS,
    ("review_submissions", "nominate"): ALL,
    # 리뷰 템플릿 — Review templates
    ("review_templates", "read"): ALL,
    ("review_templates", "manage"): PEOPLE_OPS,
    # 알림 — Notifications
    ("notifications", "announce"): PEOPLE_OPS,
    # 시간 기록 — Time entries
    ("time_entries", "read_any"): PEOPLE_OPS,
    ("time_entries", "read_reports"): frozenset({"manager"}),
    ("time_entries", "log_any_okr"): PEOPLE_OPS,
    # 분석 — Analytics
    ("analytics", "team"): LEADS,
    ("analytics", "feedback"): ALL,
    ("analytics", "read_any"): PEOPLE_OPS,
    ("analytics", "export"): LEADS,
    # 대시보드 — Dashboard
    ("dashboard", "read"): ALL,
    ("dashboard", "organization_stats"): PEOPLE_OPS,
    # AI
    ("ai", "use"): ALL,
    ("ai", "score"): LEADS,
    ("ai", "test_connection"): ADMIN,
    # 모니터링 — Monitoring
    ("monitoring", "metrics"): ADMIN,
}


def is_allowed(role: str, resource: str, action: str) -> bool:
    """역할이 권한을 가졌는지 확인 — Unknown permissions are denied."""
    return role in POLICY.get((resource, action), frozenset())


def authorize(user: "User", resource: str, action: str, detail: str | None = None) -> None:
    """권한 검사 — 거부 시 보안 이벤트를 기록하고 403을 발생시킵니다.

    Raise ``ForbiddenError`` when ``user.role`` may not perform
    ``resource:action``. Denials are logged on the security logger.

    Args:
        user: 인증된 사용자 (Authenticated user)
        resource: 리소스 이름 (Resource name, e.g. "review_cycles")
        action: 액션 이름 (Action name, e.g. "create")
        detail: 403 메시지 (Optional message for the 403 response)
    """
    if is_allowed(user.role, resource, action):
        return
    security_logger.warning(
        "Permission denied",
        extra={"user_id": str(user.id), "role": user.role, "permission": f"{resource}:{action}"},
    )
    raise ForbiddenError(detail or "Insufficient permissions")
