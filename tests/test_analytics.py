"""분석 API 테스트 — 팀 성과 범위, 피드백 추이, 캐시, 내보내기.

Analytics API tests.
"""

from datetime import datetime, timezone

from httpx import AsyncClient

from app.services.analytics_service import TEAM_CSV_HEADERS, months_back
from tests.conftest import FakeRedis, auth_header

ANALYTICS = "/api/analytics"


async def give_feedback(client: AsyncClient, sender, recipient, rating: int = 8) -> None:
    res = await client.post("/api/feedback", headers=auth_header(sender), json={
        "to_user_id": str(recipient.id),
        "content": "Great ownership of the migration project.",
        "rating": rating,
    })
    assert res.status_code == 201, res.text


class TestMonthsBack:
    """기간 계산 테스트."""

    def test_same_year(self):
        now = datetime(2026, 8, 17, 13, 5, tzinfo=timezone.utc)
        assert months_back(now, 6) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_crosses_year(self):
        now = datetime(2026, 2, 10, tzinfo=timezone.utc)
        assert months_back(now, 6) == datetime(2025, 9, 1, tzinfo=timezone.utc)


class TestTeamPerformance:
    """팀 성과 분석 테스트."""

    async def test_employee_forbidden(self, client: AsyncClient, employee_user):
        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(employee_user))
        assert res.status_code == 403
        assert res.json()["error"] == "Access denied to team analytics"

    async def test_manager_sees_direct_reports(
        self, client: AsyncClient, manager_user, employee_user, other_employee
    ):
        await give_feedback(client, other_employee, employee_user, rating=8)
        await give_feedback(client, manager_user, other_employee, rating=4)

        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(manager_user))
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["member_count"] == 1
        [member] = data["members"]
        assert member["email"] == employee_user.email
        assert member["feedback_count"] == 1
        assert member["avg_feedback_rating"] == 8.0
        assert data["sentiment"]["positive"] == 1

    async def test_result_is_cached(self, client: AsyncClient, services, manager_user, employee_user, other_employee):
        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(manager_user))
        assert res.json()["data"]["feedback_count"] == 0

        await give_feedback(client, other_employee, employee_user)
        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(manager_user))
        assert res.json()["data"]["feedback_count"] == 0
        assert services.cache.hits == 1

    async def test_corrupt_cache_entry_is_recomputed(
        self, client: AsyncClient, services, manager_user, employee_user, other_employee
    ):
        redis = FakeRedis()
        services.cache._redis = redis
        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(manager_user))
        assert res.json()["data"]["feedback_count"] == 0
        assert redis.data

        for key in redis.data:
            redis.data[key] = "{not json"
        await give_feedback(client, other_employee, employee_user)
        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(manager_user))
        assert res.status_code == 200
        assert res.json()["data"]["feedback_count"] == 1

    async def test_redis_outage_falls_back_to_live_numbers(
        self, client: AsyncClient, services, manager_user, employee_user, other_employee
    ):
        services.cache._redis = FakeRedis(fail=True)
        await give_feedback(client, other_employee, employee_user, rating=6)

        res = await client.get(f"{ANALYTICS}/team", headers=auth_header(manager_user))
        assert res.status_code == 200
        assert res.json()["data"]["members"][0]["avg_feedback_rating"] == 6.0

    async def test_unknown_team(self, client: AsyncClient, hr_user):
        res = await client.get(
            f"{ANALYTICS}/team",
            params={"team_id": "00000000-0000-0000-0000-000000000000"},
            headers=auth_header(hr_user),
        )
        assert res.status_code == 404


class TestFeedbackTrends:
    """피드백 추이 테스트."""

    async def test_employee_sees_own_trend(self, client: AsyncClient, employee_user, other_employee, manager_user):
        await give_feedback(client, other_employee, employee_user, rating=6)
        await give_feedback(client, manager_user, employee_user, rating=8)
        await give_feedback(client, employee_user, other_employee, rating=2)

        res = await client.get(f"{ANALYTICS}/feedback", headers=auth_header(employee_user))
        data = res.json()["data"]
        assert data["summary"]["total_feedback"] == 2
        assert data["summary"]["avg_rating"] == 7.0
        [month] = data["trends"]
        assert month["count"] == 2

    async def test_employee_cannot_view_other(self, client: AsyncClient, employee_user, other_employee):
        res = await client.get(
            f"{ANALYTICS}/feedback", params={"user_id": str(other_employee.id)}, headers=auth_header(employee_user)
        )
        assert res.status_code == 403

    async def test_manager_limited_to_reports(self, client: AsyncClient, manager_user, other_employee):
        res = await client.get(
            f"{ANALYTICS}/feedback", params={"user_id": str(other_employee.id)}, headers=auth_header(manager_user)
        )
        assert res.status_code == 403

    async def test_reversed_range(self, client: AsyncClient, employee_user):
        res = await client.get(f"{ANALYTICS}/feedback", headers=auth_header(employee_user), params={
            "start_date": "2026-06-01T00:00:00Z",
            "end_date": "2026-01-01T00:00:00Z",
        })
        assert res.status_code == 400


class TestExport:
    """내보내기 테스트."""

    async def test_team_csv(self, client: AsyncClient, manager_user, employee_user, other_employee):
        await give_feedback(client, other_employee, employee_user, rating=9)
        res = await client.get(f"{ANALYTICS}/export", params={"type": "team"}, headers=auth_header(manager_user))
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/csv")
        assert res.headers["content-disposition"].startswith("attachment; filename=team-analytics-")

        lines = res.text.strip().split("\n")
        assert lines[0] == ",".join(TEAM_CSV_HEADERS)
        assert lines[1].startswith(f"Eli Employee,{employee_user.email},0,0.0,1,9.0,1,0,0")

    async def test_feedback_json(self, client: AsyncClient, hr_user):
        res = await client.get(
            f"{ANALYTICS}/export", params={"type": "feedback", "format": "json"}, headers=auth_header(hr_user)
        )
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["format"] == "json"
        assert data["data"]["summary"]["total_feedback"] == 0

    async def test_invalid_format(self, client: AsyncClient, hr_user):
        res = await client.get(f"{ANALYTICS}/export", params={"format": "xlsx"}, headers=auth_header(hr_user))
        assert res.status_code == 400

    async def test_employee_cannot_export(self, client: AsyncClient, employee_user):
        res = await client.get(f"{ANALYTICS}/export", headers=auth_header(employee_user))
        assert res.status_code == 403
