"""
Test the progress overview endpoint.
"""

import pytest
from httpx import AsyncClient

from conftest import QUIZ_JSON

API = "/api/v1/progress"


@pytest.mark.asyncio
class TestProgressOverview:
    async def test_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/overview")
        assert response.status_code == 401

    async def test_overview(self, async_client: AsyncClient, auth_headers, services, user, fake_llm):
        fake_llm.reply = QUIZ_JSON
        quiz = await services.quiz_engine.create_quiz_session(user.id, topic="arrays", total_questions=3)
        q1, q2, q3 = quiz.questions
        await services.quiz_engine.submit_answers(user.id, quiz.id, [
            {"question_id": q1.id, "user_answer": "b", "time_taken": 20},
            {"question_id": q2.id, "user_answer": "c", "time_taken": 15},
            {"question_id": q3.id, "user_answer": "d", "time_taken": 10},
        ])

        response = await async_client.get(f"{API}/overview", headers=auth_headers)

        assert response.status_code == 200
        progress = response.json()["data"]["progress"]
        assert progress["quizzes_completed"] == 1
        assert progress["average_percent"] == 100.0
        assert progress["time_spent"] == 45
        assert progress["concepts_learned"] == ["arrays"]
