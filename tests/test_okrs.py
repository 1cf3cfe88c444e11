"""OKR API 테스트 — 생성 권한, 가시성, 핵심 결과 변경과 진행 이력.

OKR API tests — type-restricted creation, role-scoped visibility and the
progress snapshot written for every key result value or score change.
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.services.okr_service import apply_key_result_change
from app.utils.exceptions import BadRequestError
from tests.conftest import auth_header

OKRS = "/api/okrs"


async def create_okr(client: AsyncClient, user, **fields) -> dict:
    payload = {
        "title": "Grow revenue",
        "type": "individual",
        "tags": ["sales"],
        "key_results": [
            {"title": "Close 10 deals", "target_value": 10, "current_value": 0, "score": 1},
            {"title": "Renew 5 accounts", "target_value": 5, "current_value": 0, "score": 2},
        ],
        **fields,
    }
    res = await client.post(OKRS, headers=auth_header(user), json=payload)
    assert res.status_code == 201, res.text
    return res.json()["data"]


class TestApplyKeyResultChange:
    """핵심 결과 변경 순수 함수 테스트."""

    def _key_result(self, **fields):
        base = {
            "id": uuid4(), "okr_id": uuid4(), "title": "KR", "description": None,
            "target_value": 10.0, "current_value": 2.0, "score": 3, "unit": None,
        }
        return SimpleNamespace(**{**base, **fields})

    def test_value_change_produces_snapshot(self):
        kr = self._key_result()
        actor = SimpleNamespace(id=uuid4())
        state, snapshot = apply_key_result_change(kr, {"current_value": 5.0}, actor)
        assert state.current_value == 5.0
        assert state.score == 3
        assert snapshot is not None
        assert snapshot.score == 3
        assert snapshot.notes == "Updated to 5.0"
        assert snapshot.recorded_by_id == actor.id
        # 원본 객체는 변경되지 않음
        assert kr.current_value == 2.0

    def test_title_change_has_no_snapshot(self):
        state, snapshot = apply_key_result_change(self._key_result(), {"title": "Renamed"}, SimpleNamespace(id=uuid4()))
        assert state.title == "Renamed"
        assert snapshot is None

    def test_score_out_of_range(self):
        with pytest.raises(BadRequestError):
            apply_key_result_change(self._key_result(), {"score": 11}, SimpleNamespace(id=uuid4()))


class TestCreateOKR:
    """OKR 생성 테스트."""

    async def test_employee_creates_individual(self, client: AsyncClient, employee_user):
        data = await create_okr(client, employee_user)
        assert data["assigned_to_id"] == str(employee_user.id)
        assert len(data["key_results"]) == 2
        assert data["average_score"] == 1.5

    async def test_company_okr_admin_only(self, client: AsyncClient, hr_user):
        res = await client.post(OKRS, headers=auth_header(hr_user), json={"title": "Company goal", "type": "company"})
        assert res.status_code == 403

    async def test_manager_assigns_to_report(self, client: AsyncClient, manager_user, employee_user):
        data = await create_okr(client, manager_user, assigned_to_id=str(employee_user.id))
        assert data["assigned_to_id"] == str(employee_user.id)
        assert data["created_by_id"] == str(manager_user.id)

    async def test_employee_cannot_assign_to_peer(self, client: AsyncClient, employee_user, other_employee):
        res = await client.post(OKRS, headers=auth_header(employee_user), json={
            "title": "Not mine", "assigned_to_id": str(other_employee.id),
        })
        assert res.status_code == 403

    async def test_invalid_dates(self, client: AsyncClient, employee_user):
        res = await client.post(OKRS, headers=auth_header(employee_user), json={
            "title": "Backwards",
            "start_date": "2026-06-01T00:00:00Z",
            "end_date": "2026-01-01T00:00:00Z",
        })
        assert res.status_code == 400


class TestVisibility:
    """OKR 가시성 테스트."""

    async def test_manager_sees_report_okrs(self, client: AsyncClient, manager_user, employee_user, other_employee):
        await create_okr(client, employee_user)
        await create_okr(client, other_employee)
        res = await client.get(OKRS, headers=auth_header(manager_user))
        assert res.json()["data"]["total"] == 1

    async def test_employee_cannot_read_other(self, client: AsyncClient, employee_user, other_employee):
        okr = await create_okr(client, other_employee)
        res = await client.get(f"{OKRS}/{okr['id']}", headers=auth_header(employee_user))
        assert res.status_code == 403

    async def test_tag_filter_and_tags(self, client: AsyncClient, employee_user):
        await create_okr(client, employee_user, tags=["sales", "q3"])
        await create_okr(client, employee_user, title="Hire team", tags=["hiring"])
        res = await client.get(OKRS, params={"tag": "hiring"}, headers=auth_header(employee_user))
        assert res.json()["data"]["total"] == 1

        res = await client.get(f"{OKRS}/tags", headers=auth_header(employee_user))
        assert res.json()["data"] == ["hiring", "q3", "sales"]


class TestKeyResultProgress:
    """핵심 결과 진행 이력 테스트."""

    async def test_update_appends_one_snapshot(self, client: AsyncClient, employee_user):
        """값 변경 1회 → 진행 이력 1건."""
        okr = await create_okr(client, employee_user)
        kr_id = okr["key_results"][0]["id"]
        res = await client.patch(
            f"{OKRS}/{okr['id']}/key-results/{kr_id}",
            headers=auth_header(employee_user),
            json={"current_value": 4, "score": 5, "notes": "Four deals closed"},
        )
        assert res.status_code == 200
        updated = next(kr for kr in res.json()["data"]["key_results"] if kr["id"] == kr_id)
        assert updated["score"] == 5

        res = await client.get(f"{OKRS}/{okr['id']}/history", headers=auth_header(employee_user))
        history = res.json()["data"]
        assert len(history) == 1
        assert history[0]["key_result_id"] == kr_id
        assert history[0]["score"] == 5
        assert history[0]["notes"] == "Four deals closed"

    async def test_title_edit_records_nothing(self, client: AsyncClient, employee_user):
        okr = await create_okr(client, employee_user)
        kr_id = okr["key_results"][0]["id"]
        await client.patch(
            f"{OKRS}/{okr['id']}/key-results/{kr_id}",
            headers=auth_header(employee_user),
            json={"title": "Close 12 deals"},
        )
        res = await client.get(f"{OKRS}/{okr['id']}/history", headers=auth_header(employee_user))
        assert res.json()["data"] == []

    async def test_bulk_progress(self, client: AsyncClient, employee_user):
        okr = await create_okr(client, employee_user)
        kr_ids = [kr["id"] for kr in okr["key_results"]]
        res = await client.post(
            f"{OKRS}/{okr['id']}/progress",
            headers=auth_header(employee_user),
            json={"key_results": [{"id": kr_ids[0], "score": 6}, {"id": kr_ids[1], "current_value": 3}], "notes": "Weekly"},
        )
        assert res.status_code == 200
        res = await client.get(f"{OKRS}/{okr['id']}/history", headers=auth_header(employee_user))
        assert len(res.json()["data"]) == 2

        res = await client.get(
            f"{OKRS}/{okr['id']}/history",
            params={"key_result_id": kr_ids[0]},
            headers=auth_header(employee_user),
        )
        assert [snap["score"] for snap in res.json()["data"]] == [6]

    async def test_bulk_progress_unknown_key_result(self, client: AsyncClient, employee_user):
        okr = await create_okr(client, employee_user)
        res = await client.post(
            f"{OKRS}/{okr['id']}/progress",
            headers=auth_header(employee_user),
            json={"key_results": [{"id": str(uuid4()), "score": 6}]},
        )
        assert res.status_code == 404

    async def test_other_user_cannot_update(self, client: AsyncClient, employee_user, other_employee):
        okr = await create_okr(client, employee_user)
        kr_id = okr["key_results"][0]["id"]
        res = await client.patch(
            f"{OKRS}/{okr['id']}/key-results/{kr_id}",
            headers=auth_header(other_employee),
            json={"score": 9},
        )
        assert res.status_code == 403

    async def test_archive_admin_only(self, client: AsyncClient, admin_user, employee_user):
        okr = await create_okr(client, employee_user)
        res = await client.delete(f"{OKRS}/{okr['id']}", headers=auth_header(employee_user))
        assert res.status_code == 403
        res = await client.delete(f"{OKRS}/{okr['id']}", headers=auth_header(admin_user))
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "archived"
