"""리뷰 사이클 API 테스트 — 생성 규칙, 상태 전환, 참가자, 통계.

Review cycle API tests — the 3-day lead time and its emergency override,
the draft → active → grace-period → closed state machine, submission
generation on activation, participant management and statistics.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.database import utcnow
from app.services.review_cycle_service import check_transition
from app.utils.exceptions import BadRequestError
from tests.conftest import auth_header, make_cycle

CYCLES = "/api/review-cycles"


def cycle_payload(starts_in: timedelta = timedelta(days=5), **fields) -> dict:
    start = utcnow() + starts_in
    return {
        "name": "H2 Performance Review",
        "type": "half-yearly",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=30)).isoformat(),
        **fields,
    }


class TestTransitions:
    """상태 전환 규칙 테스트."""

    @pytest.mark.parametrize("current,target", [
        ("draft", "active"),
        ("active", "grace-period"),
        ("grace-period", "closed"),
    ])
    def test_allowed(self, current, target):
        check_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("draft", "closed"),
        ("active", "draft"),
        ("closed", "active"),
        ("grace-period", "active"),
    ])
    def test_rejected(self, current, target):
        with pytest.raises(BadRequestError):
            check_transition(current, target)


class TestCreateCycle:
    """리뷰 사이클 생성 테스트."""

    async def test_create_with_default_questions(self, client: AsyncClient, hr_user, employee_user):
        res = await client.post(
            CYCLES,
            headers=auth_header(hr_user),
            json=cycle_payload(participant_ids=[str(employee_user.id)]),
        )
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["status"] == "draft"
        assert len(data["questions"]) == 3
        assert [q["order"] for q in data["questions"]] == [1, 2, 3]
        assert [p["user_id"] for p in data["participants"]] == [str(employee_user.id)]

    async def test_lead_time_required(self, client: AsyncClient, hr_user):
        """3일 이내 시작은 긴급이 아니면 400."""
        res = await client.post(CYCLES, headers=auth_header(hr_user), json=cycle_payload(timedelta(days=1)))
        assert res.status_code == 400
        assert res.json()["error"] == "Review cycle must start at least 3 days from now (unless emergency)"

    async def test_emergency_skips_lead_time(self, client: AsyncClient, hr_user):
        res = await client.post(
            CYCLES, headers=auth_header(hr_user), json=cycle_payload(timedelta(days=1), is_emergency=True)
        )
        assert res.status_code == 201
        assert res.json()["data"]["is_emergency"] is True

    async def test_start_after_end(self, client: AsyncClient, hr_user):
        payload = cycle_payload()
        payload["end_date"], payload["start_date"] = payload["start_date"], payload["end_date"]
        res = await client.post(CYCLES, headers=auth_header(hr_user), json=payload)
        assert res.status_code == 400

    async def test_employee_cannot_create(self, client: AsyncClient, employee_user):
        res = await client.post(CYCLES, headers=auth_header(employee_user), json=cycle_payload())
        assert res.status_code == 403

    async def test_everyone_notified(self, client: AsyncClient, hr_user, employee_user, other_employee):
        await client.post(CYCLES, headers=auth_header(hr_user), json=cycle_payload())
        res = await client.get("/api/notifications", headers=auth_header(other_employee))
        assert [item["type"] for item in res.json()["data"]["items"]] == ["cycle_created"]


class TestStatusChanges:
    """상태 전환 API 테스트."""

    async def _create(self, client: AsyncClient, hr_user, participants) -> dict:
        res = await client.post(
            CYCLES,
            headers=auth_header(hr_user),
            json=cycle_payload(participant_ids=[str(user.id) for user in participants]),
        )
        return res.json()["data"]

    async def test_invalid_transition(self, client: AsyncClient, hr_user):
        cycle = await self._create(client, hr_user, [])
        res = await client.patch(f"{CYCLES}/{cycle['id']}/status", headers=auth_header(hr_user), json={"status": "closed"})
        assert res.status_code == 400
        assert res.json()["error"] == "Cannot transition from draft to closed"

    async def test_activation_generates_submissions(
        self, client: AsyncClient, hr_user, manager_user, employee_user
    ):
        """활성화 → 자기평가 2건 + 관리자 리뷰 1건."""
        cycle = await self._create(client, hr_user, [employee_user, manager_user])
        res = await client.patch(f"{CYCLES}/{cycle['id']}/status", headers=auth_header(hr_user), json={"status": "active"})
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "active"

        res = await client.get(f"{CYCLES}/{cycle['id']}/submissions", headers=auth_header(hr_user))
        items = res.json()["data"]["items"]
        pairs = sorted((item["review_type"], item["reviewer_id"]) for item in items)
        assert pairs == sorted([
            ("self", str(employee_user.id)),
            ("self", str(manager_user.id)),
            ("manager", str(manager_user.id)),
        ])
        # AI 공급자가 없으면 초안 제안 없음
        assert all(item["ai_suggestions"] is None for item in items)

        res = await client.post(f"{CYCLES}/{cycle['id']}/generate-submissions", headers=auth_header(hr_user))
        assert res.json()["data"]["submissions_created"] == 0

    async def test_full_lifecycle_and_closed_is_read_only(self, client: AsyncClient, hr_user):
        cycle = await self._create(client, hr_user, [])
        for status in ("active", "grace-period", "closed"):
            res = await client.patch(
                f"{CYCLES}/{cycle['id']}/status", headers=auth_header(hr_user), json={"status": status}
            )
            assert res.status_code == 200
        res = await client.put(f"{CYCLES}/{cycle['id']}", headers=auth_header(hr_user), json={"name": "Renamed cycle"})
        assert res.status_code == 400

    async def test_update_keeps_peer_bounds_ordered(self, client: AsyncClient, hr_user):
        cycle = await self._create(client, hr_user, [])
        res = await client.put(
            f"{CYCLES}/{cycle['id']}", headers=auth_header(hr_user), json={"min_peer_reviewers": 8}
        )
        assert res.status_code == 400
        assert res.json()["error"] == "Minimum peer reviewers cannot exceed the maximum"

        res = await client.put(
            f"{CYCLES}/{cycle['id']}",
            headers=auth_header(hr_user),
            json={"min_peer_reviewers": 8, "max_peer_reviewers": 10},
        )
        assert res.status_code == 200
        assert res.json()["data"]["min_peer_reviewers"] == 8

    async def test_delete_only_draft(self, client: AsyncClient, hr_user):
        cycle = await self._create(client, hr_user, [])
        res = await client.delete(f"{CYCLES}/{cycle['id']}", headers=auth_header(hr_user))
        assert res.status_code == 200
        res = await client.get(f"{CYCLES}/{cycle['id']}", headers=auth_header(hr_user))
        assert res.json()["data"]["status"] == "closed"

        res = await client.delete(f"{CYCLES}/{cycle['id']}", headers=auth_header(hr_user))
        assert res.status_code == 400


class TestParticipants:
    """참가자 관리 테스트."""

    async def test_add_to_active_cycle_generates(self, client: AsyncClient, db, hr_user, employee_user, other_employee):
        cycle = await make_cycle(db, participants=[other_employee])
        res = await client.post(
            f"{CYCLES}/{cycle.id}/participants",
            headers=auth_header(hr_user),
            json={"user_ids": [str(employee_user.id), str(other_employee.id)]},
        )
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["added"] == [str(employee_user.id)]
        assert data["skipped"] == [str(other_employee.id)]
        # employee: self + manager review; other_employee: self
        assert data["submissions_created"] == 3

    async def test_remove_participant_deletes_submissions(self, client: AsyncClient, db, hr_user, employee_user):
        cycle = await make_cycle(db, participants=[employee_user])
        await client.post(f"{CYCLES}/{cycle.id}/generate-submissions", headers=auth_header(hr_user))
        res = await client.delete(f"{CYCLES}/{cycle.id}/participants/{employee_user.id}", headers=auth_header(hr_user))
        assert res.status_code == 200
        assert res.json()["data"]["submissions_deleted"] == 2

        res = await client.delete(f"{CYCLES}/{cycle.id}/participants/{employee_user.id}", headers=auth_header(hr_user))
        assert res.status_code == 404

    async def test_unknown_user_rejected(self, client: AsyncClient, db, hr_user):
        cycle = await make_cycle(db, status="draft")
        res = await client.post(
            f"{CYCLES}/{cycle.id}/participants",
            headers=auth_header(hr_user),
            json={"user_ids": ["00000000-0000-0000-0000-000000000000"]},
        )
        assert res.status_code == 400


class TestQueries:
    """사이클 조회/통계 테스트."""

    async def test_my_active(self, client: AsyncClient, db, employee_user, other_employee):
        await make_cycle(db, name="Mine", participants=[employee_user])
        await make_cycle(db, name="Theirs", participants=[other_employee])
        await make_cycle(db, name="Draft", status="draft", participants=[employee_user])
        res = await client.get(f"{CYCLES}/my-active", headers=auth_header(employee_user))
        assert [cycle["name"] for cycle in res.json()["data"]] == ["Mine"]

    async def test_cycle_stats(self, client: AsyncClient, db, hr_user, manager_user, employee_user):
        cycle = await make_cycle(db, participants=[employee_user, manager_user])
        cycle.participants[0].status = "submitted"
        await db.flush()
        res = await client.get(f"{CYCLES}/{cycle.id}/stats", headers=auth_header(manager_user))
        stats = res.json()["data"]
        assert stats["participants"]["total"] == 2
        assert stats["participants"]["submitted"] == 1
        assert stats["completion_rate"] == 50.0

    async def test_stats_forbidden_for_employee(self, client: AsyncClient, db, employee_user):
        cycle = await make_cycle(db)
        res = await client.get(f"{CYCLES}/{cycle.id}/stats", headers=auth_header(employee_user))
        assert res.status_code == 403

    async def test_overall_stats(self, client: AsyncClient, db, hr_user):
        await make_cycle(db)
        await make_cycle(db, name="Old", status="closed")
        res = await client.get(f"{CYCLES}/stats", headers=auth_header(hr_user))
        data = res.json()["data"]
        assert data["total"] == 2
        assert data["by_status"] == {"draft": 0, "active": 1, "grace-period": 0, "closed": 1}
