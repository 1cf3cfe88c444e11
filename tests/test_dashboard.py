"""대시보드 API 테스트 — 최근 활동 피드, 유형 균형, 요약 통계."""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient

from app.database import utcnow
from app.services.dashboard_service import balance_activities
from tests.conftest import auth_header, make_cycle

DASHBOARD = "/api/dashboard"


async def create_okr(client: AsyncClient, user, title: str = "Launch v2") -> dict:
    res = await client.post("/api/okrs", headers=auth_header(user), json={
        "title": title,
        "key_results": [{"title": "Ship beta", "target_value": 1}],
    })
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def send_feedback(client: AsyncClient, sender, recipient, content: str, **fields) -> None:
    res = await client.post("/api/feedback", headers=auth_header(sender), json={
        "to_user_id": str(recipient.id), "content": content, "rating": 8, **fields,
    })
    assert res.status_code == 201, res.text


class TestBalanceActivities:
    """활동 유형 균형 테스트."""

    def test_no_type_takes_more_than_a_third(self):
        base = datetime(2026, 5, 1, tzinfo=timezone.utc)
        activities = [
            {"type": "okr_update", "timestamp": base + timedelta(hours=hour)} for hour in range(5)
        ] + [{"type": "time_logged", "timestamp": base - timedelta(days=1)}]

        feed = balance_activities(activities, limit=3)
        assert [item["type"] for item in feed] == ["okr_update", "time_logged"]
        assert feed[0]["timestamp"] == base + timedelta(hours=4)

    def test_limit_applied_after_balancing(self):
        base = datetime(2026, 5, 1, tzinfo=timezone.utc)
        activities = [
            {"type": kind, "timestamp": base + timedelta(minutes=minute)}
            for minute, kind in enumerate(["a", "b", "c", "a", "b", "c"])
        ]
        assert len(balance_activities(activities, limit=4)) == 4


class TestRecentActivity:
    """최근 활동 피드 테스트."""

    async def test_merges_sources(self, client: AsyncClient, employee_user, other_employee):
        okr = await create_okr(client, employee_user)
        res = await client.post("/api/time-entries", headers=auth_header(employee_user), json={
            "okr_id": okr["id"],
            "date": utcnow().date().isoformat(),
            "hours_spent": 2.5,
        })
        assert res.status_code == 201, res.text
        await send_feedback(client, other_employee, employee_user, "Clear and calm during the incident.")
        await send_feedback(client, other_employee, employee_user, "x" * 120, is_anonymous=True)

        res = await client.get(f"{DASHBOARD}/activity", headers=auth_header(employee_user))
        assert res.status_code == 200
        data = res.json()["data"]
        titles = [item["title"] for item in data["activities"]]
        assert data["total"] == 4
        assert "Updated OKR: Launch v2" in titles
        assert "Logged 2.5 hours" in titles
        assert "Received feedback from Olly Other" in titles
        assert "Received feedback from Anonymous" in titles

        logged = next(item for item in data["activities"] if item["type"] == "time_logged")
        assert logged["description"] == "Time logged for Launch v2"
        anonymous = next(item for item in data["activities"] if item["title"].endswith("Anonymous"))
        assert anonymous["description"] == "x" * 100 + "..."

    async def test_review_activity_for_reviewer(
        self, client: AsyncClient, db, hr_user, manager_user, employee_user
    ):
        cycle = await make_cycle(db, participants=[employee_user])
        await client.post(f"/api/review-cycles/{cycle.id}/generate-submissions", headers=auth_header(hr_user))

        res = await client.get(f"{DASHBOARD}/activity", headers=auth_header(manager_user))
        [review] = res.json()["data"]["activities"]
        assert review["type"] == "review_activity"
        assert review["title"] == "Updated manager review for Eli Employee"
        assert review["description"] == "manager review in Q3 Review cycle"

    async def test_limit_bounds(self, client: AsyncClient, employee_user):
        res = await client.get(f"{DASHBOARD}/activity", params={"limit": 0}, headers=auth_header(employee_user))
        assert res.status_code == 400


class TestSummary:
    """요약 통계 테스트."""

    async def test_employee_counts(self, client: AsyncClient, db, employee_user, other_employee):
        okr = await create_okr(client, employee_user)
        await client.post("/api/time-entries", headers=auth_header(employee_user), json={
            "okr_id": okr["id"], "date": utcnow().date().isoformat(), "hours_spent": 1,
        })
        await client.post("/api/time-entries", headers=auth_header(employee_user), json={
            "okr_id": okr["id"], "date": (utcnow() - timedelta(days=45)).date().isoformat(), "hours_spent": 1,
        })
        await send_feedback(client, other_employee, employee_user, "Thoughtful code reviews.")
        await send_feedback(client, employee_user, other_employee, "Great demo on Friday.")
        await make_cycle(db, participants=[employee_user])
        await make_cycle(db, name="Old cycle", status="closed", participants=[employee_user])

        res = await client.get(f"{DASHBOARD}/summary", headers=auth_header(employee_user))
        assert res.status_code == 200
        assert res.json()["data"] == {"okrs": 1, "time_entries": 1, "feedback": 2, "reviews": 1}

    async def test_hr_gets_organization_totals(self, client: AsyncClient, db, hr_user, employee_user):
        await create_okr(client, employee_user)
        await make_cycle(db, status="grace-period")

        res = await client.get(f"{DASHBOARD}/summary", headers=auth_header(hr_user))
        data = res.json()["data"]
        # hr, manager, employee
        assert data["team_members"] == 3
        assert data["total_okrs"] == 1
        assert data["active_cycles"] == 1
        assert data["okrs"] == 0
