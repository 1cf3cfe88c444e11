"""리뷰 제출 API 테스트 — 작성, 제출, 검토 완료, 동료 지명.

Review submission API tests.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError

from app.repositories.review_submission_repository import review_submission_repository
from app.schemas.review_submission import SubmissionUpdate
from tests.conftest import auth_header, make_cycle, make_user

SUBMISSIONS = "/api/review-submissions"


async def activate(client: AsyncClient, db, hr_user, participants, **fields):
    """활성 사이클 생성 후 리뷰 제출 생성."""
    cycle = await make_cycle(db, participants=participants, **fields)
    res = await client.post(f"/api/review-cycles/{cycle.id}/generate-submissions", headers=auth_header(hr_user))
    assert res.status_code == 200, res.text
    return cycle


async def my_submissions(client: AsyncClient, user, **params) -> list[dict]:
    res = await client.get(SUBMISSIONS, params=params, headers=auth_header(user))
    return res.json()["data"]["items"]


class TestRatingNormalisation:
    """평점 정규화 테스트."""

    def test_zero_and_blank_mean_unrated(self):
        assert SubmissionUpdate(overall_rating=0).overall_rating is None
        assert SubmissionUpdate(overall_rating="").overall_rating is None
        assert SubmissionUpdate(responses=[{"rating": 0}]).responses[0].rating is None

    def test_valid_rating_kept(self):
        assert SubmissionUpdate(overall_rating=8).overall_rating == 8


class TestUniqueTuple:
    """(사이클, 대상자, 평가자, 유형) 고유성 테스트."""

    async def test_duplicate_tuple_rejected_by_database(self, db, manager_user, employee_user):
        cycle = await make_cycle(db, participants=[employee_user])
        row = {
            "review_cycle_id": cycle.id,
            "reviewee_id": employee_user.id,
            "reviewer_id": manager_user.id,
            "review_type": "manager",
        }
        await review_submission_repository.create(db, dict(row))
        with pytest.raises(IntegrityError):
            await review_submission_repository.create(db, dict(row))


class TestEditAndSubmit:
    """리뷰 작성/제출 흐름 테스트."""

    async def test_self_review_flow(self, client: AsyncClient, db, hr_user, employee_user):
        cycle = await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)
        assert review["review_type"] == "self"
        assert len(review["responses"]) == 3

        res = await client.put(
            f"{SUBMISSIONS}/{review['id']}",
            headers=auth_header(employee_user),
            json={"overall_rating": 8, "strengths": "Shipped the billing rewrite."},
        )
        assert res.status_code == 200
        assert res.json()["data"]["overall_rating"] == 8

        res = await client.get(f"{SUBMISSIONS}/pending", headers=auth_header(employee_user))
        assert [item["id"] for item in res.json()["data"]] == [review["id"]]

        res = await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(employee_user))
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "submitted"

        res = await client.get(f"/api/review-cycles/{cycle.id}", headers=auth_header(employee_user))
        participant = res.json()["data"]["participants"][0]
        assert participant["status"] == "submitted"

        res = await client.get(f"{SUBMISSIONS}/pending", headers=auth_header(employee_user))
        assert res.json()["data"] == []

    async def test_submitted_review_is_frozen(self, client: AsyncClient, db, hr_user, employee_user):
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)
        await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(employee_user))

        res = await client.put(
            f"{SUBMISSIONS}/{review['id']}", headers=auth_header(employee_user), json={"comments": "Late edit"}
        )
        assert res.status_code == 400
        assert res.json()["error"] == "Cannot edit submitted review"

        res = await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(employee_user))
        assert res.status_code == 400

    async def test_only_reviewer_edits(self, client: AsyncClient, db, hr_user, employee_user, other_employee):
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)
        res = await client.put(
            f"{SUBMISSIONS}/{review['id']}", headers=auth_header(other_employee), json={"comments": "Hi"}
        )
        assert res.status_code == 403

    async def test_reviewee_notified_of_manager_review(
        self, client: AsyncClient, db, hr_user, manager_user, employee_user
    ):
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, manager_user)
        res = await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(manager_user))
        assert res.status_code == 200

        res = await client.get("/api/notifications", headers=auth_header(employee_user))
        assert [item["type"] for item in res.json()["data"]["items"]] == ["review_submitted"]

    async def test_closed_cycle_rejects_submission(self, client: AsyncClient, db, hr_user, employee_user):
        cycle = await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)
        cycle.status = "closed"
        await db.flush()
        res = await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(employee_user))
        assert res.status_code == 400
        assert res.json()["error"] == "Review cycle is not accepting submissions"

    async def test_reviewee_reads_own_review_but_not_others(
        self, client: AsyncClient, db, hr_user, manager_user, employee_user, other_employee
    ):
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, manager_user)
        res = await client.get(f"{SUBMISSIONS}/{review['id']}", headers=auth_header(employee_user))
        assert res.status_code == 200
        res = await client.get(f"{SUBMISSIONS}/{review['id']}", headers=auth_header(other_employee))
        assert res.status_code == 403


class TestMarkReviewed:
    """검토 완료 처리 테스트."""

    async def test_manager_marks_report_review(self, client: AsyncClient, db, hr_user, manager_user, employee_user):
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)

        res = await client.patch(f"{SUBMISSIONS}/{review['id']}/review", headers=auth_header(manager_user))
        assert res.status_code == 400

        await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(employee_user))
        res = await client.patch(f"{SUBMISSIONS}/{review['id']}/review", headers=auth_header(manager_user))
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["status"] == "reviewed"

    async def test_other_manager_rejected(self, client: AsyncClient, db, hr_user, employee_user):
        outsider = await make_user(db, "omar.outsider@test.com", role="manager")
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)
        await client.post(f"{SUBMISSIONS}/{review['id']}/submit", headers=auth_header(employee_user))
        res = await client.patch(f"{SUBMISSIONS}/{review['id']}/review", headers=auth_header(outsider))
        assert res.status_code == 403

    async def test_employee_cannot_mark(self, client: AsyncClient, db, hr_user, employee_user):
        await activate(client, db, hr_user, [employee_user])
        [review] = await my_submissions(client, employee_user)
        res = await client.patch(f"{SUBMISSIONS}/{review['id']}/review", headers=auth_header(employee_user))
        assert res.status_code == 403


class TestNomination:
    """동료 지명 테스트."""

    async def test_nominate_peer(self, client: AsyncClient, db, employee_user, other_employee):
        cycle = await make_cycle(db, participants=[employee_user])
        payload = {"review_cycle_id": str(cycle.id), "peer_user_ids": [str(other_employee.id)]}

        res = await client.post(f"{SUBMISSIONS}/nominate", headers=auth_header(employee_user), json=payload)
        assert res.status_code == 201
        assert res.json()["data"] == [{"peer_user_id": str(other_employee.id), "status": "nominated"}]

        res = await client.post(f"{SUBMISSIONS}/nominate", headers=auth_header(employee_user), json=payload)
        assert res.json()["data"][0]["status"] == "already_exists"

        [peer_review] = await my_submissions(client, other_employee)
        assert peer_review["review_type"] == "peer"
        assert peer_review["reviewee_id"] == str(employee_user.id)

        res = await client.get("/api/notifications", headers=auth_header(other_employee))
        assert [item["type"] for item in res.json()["data"]["items"]] == ["peer_nomination_request"]

    async def test_non_participant_forbidden(self, client: AsyncClient, db, employee_user, other_employee):
        cycle = await make_cycle(db, participants=[other_employee])
        res = await client.post(f"{SUBMISSIONS}/nominate", headers=auth_header(employee_user), json={
            "review_cycle_id": str(cycle.id), "peer_user_ids": [str(other_employee.id)],
        })
        assert res.status_code == 403

    async def test_peer_reviews_disabled(self, client: AsyncClient, db, employee_user, other_employee):
        cycle = await make_cycle(db, participants=[employee_user], review_types=["self", "manager"])
        res = await client.post(f"{SUBMISSIONS}/nominate", headers=auth_header(employee_user), json={
            "review_cycle_id": str(cycle.id), "peer_user_ids": [str(other_employee.id)],
        })
        assert res.status_code == 400

    async def test_peer_limit(self, client: AsyncClient, db, employee_user, other_employee, manager_user):
        cycle = await make_cycle(db, participants=[employee_user], max_peer_reviewers=1)
        res = await client.post(f"{SUBMISSIONS}/nominate", headers=auth_header(employee_user), json={
            "review_cycle_id": str(cycle.id),
            "peer_user_ids": [str(other_employee.id), str(manager_user.id)],
        })
        assert res.status_code == 400
        assert res.json()["error"] == "You can nominate at most 1 peer reviewers"
