"""
Test the quiz HTTP endpoints.
"""

import json

import pytest
from httpx import AsyncClient

from conftest import QUIZ_JSON

API = "/api/v1/quiz"


async def create_quiz(client, headers, **body):
    payload = {"topic": "javascript", "totalQuestions": 3, **body}
    response = await client.post(f"{API}/sessions", json=payload, headers=headers)
    assert response.status_code == 200
    return response.json()["data"]["session"]


@pytest.mark.asyncio
class TestQuizSessionEndpoints:
    async def test_create_generated_quiz(self, async_client: AsyncClient, auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        session = await create_quiz(async_client, auth_headers)

        assert session["topic"] == "javascript"
        assert session["total_questions"] == 3
        assert session["completed"] is False
        assert len(session["questions"][0]["options"]) == 4

    async def test_create_requires_topic_or_questions(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post(f"{API}/sessions", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_list_is_owner_scoped(self, async_client: AsyncClient, auth_headers, other_auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        mine = await create_quiz(async_client, auth_headers)
        await create_quiz(async_client, other_auth_headers)

        response = await async_client.get(f"{API}/sessions", headers=auth_headers)
        assert [s["id"] for s in response.json()["data"]["sessions"]] == [mine["id"]]

    async def test_foreign_quiz_looks_missing(self, async_client: AsyncClient, auth_headers, other_auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        session = await create_quiz(async_client, auth_headers)

        for response in (
            await async_client.get(f"{API}/sessions/{session['id']}", headers=other_auth_headers),
            await async_client.delete(f"{API}/sessions/{session['id']}", headers=other_auth_headers),
            await async_client.post(
                f"{API}/sessions/{session['id']}/submit",
                json={"answers": []},
                headers=other_auth_headers,
            ),
        ):
            assert response.status_code == 404

        missing = await async_client.get(f"{API}/sessions/nope", headers=auth_headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["message"] == "Quiz session not found"

    async def test_delete(self, async_client: AsyncClient, auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        session = await create_quiz(async_client, auth_headers)

        response = await async_client.delete(f"{API}/sessions/{session['id']}", headers=auth_headers)
        assert response.json() == {"success": True}
        again = await async_client.get(f"{API}/sessions/{session['id']}", headers=auth_headers)
        assert again.status_code == 404


@pytest.mark.asyncio
class TestSubmitEndpoint:
    async def test_submit(self, async_client: AsyncClient, auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        session = await create_quiz(async_client, auth_headers)
        q1, q2, q3 = (question["id"] for question in session["questions"])

        response = await async_client.post(
            f"{API}/sessions/{session['id']}/submit",
            json={"answers": [
                {"questionId": q1, "userAnswer": "b", "timeTaken": 12},
                {"questionId": q2, "userAnswer": "c"},
                {"questionId": q3, "userAnswer": "a"},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["score"] == 2
        assert data["total_questions"] == 3
        assert data["wrong_explanations"][0]["correct_answer"] == "d"

    async def test_submit_rejects_malformed_answers(self, async_client: AsyncClient, auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        session = await create_quiz(async_client, auth_headers)
        response = await async_client.post(
            f"{API}/sessions/{session['id']}/submit",
            json={"answers": [{"userAnswer": "b"}]},
            headers=auth_headers,
        )
        assert response.status_code == 400


@pytest.mark.asyncio
class TestUpgradeEndpoint:
    async def test_upgrade_without_body(self, async_client: AsyncClient, auth_headers, fake_llm):
        fake_llm.reply = json.dumps([
            {"question": f"Q{n}", "options": ["w", "x", "y", "z"], "answer": "a"}
            for n in range(10)
        ])
        response = await async_client.post(f"{API}/upgrade", headers=auth_headers)

        assert response.status_code == 200
        session = response.json()["data"]["session"]
        assert session["purpose"] == "upgrade"
        assert session["total_questions"] == 10

    async def test_upgrade_with_topic(self, async_client: AsyncClient, auth_headers, fake_llm):
        fake_llm.reply = QUIZ_JSON
        response = await async_client.post(
            f"{API}/upgrade",
            json={"topic": "closures"},
            headers=auth_headers,
        )
        assert response.json()["data"]["session"]["topic"] == "closures"
