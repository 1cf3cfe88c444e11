"""피드백 API 테스트 — 작성 규칙, 감성 분석, 익명성, 검토, 통계.

Feedback API tests — creation rules, keyword sentiment fallback, sender
anonymity, moderation and per-user statistics.
"""

from httpx import AsyncClient

from tests.conftest import auth_header

FEEDBACK = "/api/feedback"


async def give_feedback(client: AsyncClient, sender, recipient, **fields) -> dict:
    payload = {
        "to_user_id": str(recipient.id),
        "content": "Great work on the launch, the planning was excellent.",
        "rating": 8,
        "category": "skills",
        "tags": ["planning"],
        **fields,
    }
    res = await client.post(FEEDBACK, headers=auth_header(sender), json=payload)
    assert res.status_code == 201, res.text
    return res.json()["data"]


class TestCreateFeedback:
    """피드백 작성 테스트."""

    async def test_self_feedback_rejected(self, client: AsyncClient, employee_user):
        """자기 자신에게 피드백 400."""
        res = await client.post(FEEDBACK, headers=auth_header(employee_user), json={
            "to_user_id": str(employee_user.id),
            "content": "I am doing a wonderful job lately.",
        })
        assert res.status_code == 400
        assert res.json()["error"] == "You cannot give feedback to yourself"

    async def test_unknown_recipient(self, client: AsyncClient, employee_user):
        res = await client.post(FEEDBACK, headers=auth_header(employee_user), json={
            "to_user_id": "00000000-0000-0000-0000-000000000000",
            "content": "Nobody will ever read this text.",
        })
        assert res.status_code == 404

    async def test_content_too_short(self, client: AsyncClient, employee_user, other_employee):
        res = await client.post(FEEDBACK, headers=auth_header(employee_user), json={
            "to_user_id": str(other_employee.id),
            "content": "ok",
        })
        assert res.status_code == 400

    async def test_sentiment_fallback_and_notification(
        self, client: AsyncClient, employee_user, other_employee, email_sender
    ):
        """AI 공급자 없음 → 키워드 감성 분석, 수신자 알림 생성."""
        data = await give_feedback(client, employee_user, other_employee)
        assert data["sentiment_score"] == "positive"
        assert data["ai_quality_flags"] == []

        res = await client.get("/api/notifications", headers=auth_header(other_employee))
        items = res.json()["data"]["items"]
        assert [item["type"] for item in items] == ["feedback_received"]
        assert email_sender.sent[0]["to"] == other_employee.email

    async def test_short_text_flagged(self, client: AsyncClient, employee_user, other_employee):
        data = await give_feedback(client, employee_user, other_employee, content="Weak effort.  ")
        assert data["sentiment_score"] == "negative"
        assert "vague_response" in data["ai_quality_flags"]
        assert "too_short" in data["ai_quality_flags"]


class TestAnonymity:
    """익명 피드백 테스트."""

    async def test_recipient_does_not_see_sender(self, client: AsyncClient, employee_user, other_employee):
        created = await give_feedback(client, employee_user, other_employee, is_anonymous=True)
        assert created["from_user_id"] == str(employee_user.id)

        res = await client.get(f"{FEEDBACK}/received", headers=auth_header(other_employee))
        item = res.json()["data"]["items"][0]
        assert item["from_user_id"] is None

    async def test_anonymous_feedback_sends_no_notification(
        self, client: AsyncClient, employee_user, other_employee
    ):
        await give_feedback(client, employee_user, other_employee, is_anonymous=True)
        res = await client.get("/api/notifications/unread-count", headers=auth_header(other_employee))
        assert res.json()["data"]["unread_count"] == 0


class TestVisibilityAndEditing:
    """피드백 조회/수정 권한 테스트."""

    async def test_private_feedback_hidden_from_third_party(
        self, client: AsyncClient, employee_user, other_employee, manager_user
    ):
        created = await give_feedback(client, employee_user, other_employee, type="private")
        res = await client.get(f"{FEEDBACK}/{created['id']}", headers=auth_header(manager_user))
        assert res.status_code == 403

    async def test_only_sender_edits(self, client: AsyncClient, employee_user, other_employee):
        created = await give_feedback(client, employee_user, other_employee)
        res = await client.patch(
            f"{FEEDBACK}/{created['id']}", headers=auth_header(other_employee), json={"rating": 1}
        )
        assert res.status_code == 403

        res = await client.patch(
            f"{FEEDBACK}/{created['id']}",
            headers=auth_header(employee_user),
            json={"content": "Poor communication during the launch week."},
        )
        assert res.status_code == 200
        assert res.json()["data"]["sentiment_score"] == "negative"

    async def test_soft_delete(self, client: AsyncClient, employee_user, other_employee):
        created = await give_feedback(client, employee_user, other_employee)
        res = await client.delete(f"{FEEDBACK}/{created['id']}", headers=auth_header(employee_user))
        assert res.status_code == 200
        res = await client.get(f"{FEEDBACK}/{created['id']}", headers=auth_header(employee_user))
        assert res.status_code == 404


class TestModeration:
    """피드백 검토 테스트."""

    async def test_hide_requires_reason(self, client: AsyncClient, manager_user, employee_user, other_employee):
        created = await give_feedback(client, employee_user, other_employee)
        res = await client.post(
            f"{FEEDBACK}/{created['id']}/moderate", headers=auth_header(manager_user), json={"action": "hide"}
        )
        assert res.status_code == 400

    async def test_hide_and_restore(self, client: AsyncClient, hr_user, employee_user, other_employee):
        created = await give_feedback(client, employee_user, other_employee)
        res = await client.post(
            f"{FEEDBACK}/{created['id']}/moderate",
            headers=auth_header(hr_user),
            json={"action": "hide", "reason": "Off-topic"},
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "hidden"

        res = await client.get(f"{FEEDBACK}/moderation", params={"status": "hidden"}, headers=auth_header(hr_user))
        assert res.json()["data"]["total"] == 1

        res = await client.get(f"{FEEDBACK}/received", headers=auth_header(other_employee))
        assert res.json()["data"]["total"] == 0

        res = await client.post(
            f"{FEEDBACK}/{created['id']}/moderate", headers=auth_header(hr_user), json={"action": "restore"}
        )
        assert res.json()["data"]["status"] == "active"
        assert res.json()["data"]["moderation_reason"] is None

    async def test_employee_cannot_moderate(self, client: AsyncClient, employee_user, other_employee):
        created = await give_feedback(client, employee_user, other_employee)
        res = await client.post(
            f"{FEEDBACK}/{created['id']}/moderate",
            headers=auth_header(employee_user),
            json={"action": "hide", "reason": "Mine"},
        )
        assert res.status_code == 403


class TestStats:
    """피드백 통계 테스트."""

    async def test_stats(self, client: AsyncClient, employee_user, other_employee, manager_user):
        await give_feedback(client, employee_user, other_employee, rating=8)
        await give_feedback(client, manager_user, other_employee, rating=6, category="values", tags=["planning", "ownership"])
        res = await client.get(f"{FEEDBACK}/stats", headers=auth_header(other_employee))
        stats = res.json()["data"]
        assert stats["total"] == 2
        assert stats["average_rating"] == 7.0
        assert stats["by_category"]["values"]["count"] == 1
        assert stats["sentiment"]["positive"] == 2
        assert stats["top_skills"][0] == {"skill": "planning", "count": 2, "average_rating": 7.0}

    async def test_stats_of_other_user_forbidden(self, client: AsyncClient, employee_user, other_employee):
        res = await client.get(
            f"{FEEDBACK}/stats", params={"user_id": str(other_employee.id)}, headers=auth_header(employee_user)
        )
        assert res.status_code == 403
