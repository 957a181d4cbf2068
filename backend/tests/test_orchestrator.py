"""
Test the dialogue orchestrator: routing, quiz follow-ups, forced modes,
persistence and failure handling.
"""

import pytest

from devtutor.agents.tutor.prompts import FALLBACK_RESPONSE
from devtutor.agents.tutor.state import MODE_TAGS
from devtutor.core.errors import DatabaseError, NotFoundError, ValidationError

from conftest import QUIZ_JSON


@pytest.fixture
def orchestrator(services):
    return services.orchestrator


@pytest.mark.asyncio
class TestHandleTurn:
    """Test ordinary turns."""

    async def test_new_session_is_created_and_named(self, orchestrator, store, user):
        result = await orchestrator.handle_turn(user.id, None, "Explain closures")

        assert result.session_id is not None
        session = await store.get_chat_session(result.session_id)
        assert session.user_id == user.id
        assert session.session_name.startswith("Chat Session ")

    async def test_explain_closures_end_to_end(self, orchestrator, store, fake_llm, user):
        fake_llm.reply = "[Concept Explainer Mode] A closure keeps its enclosing scope alive."
        result = await orchestrator.handle_turn(user.id, None, "Explain closures")

        assert result.current_node == "concept-explainer"
        assert result.response.startswith("[Concept Explainer Mode]")
        assert result.available_transitions == list(MODE_TAGS)
        assert result.metadata.iteration_count == 1
        assert result.session_context["node_output"] == result.response

        assert fake_llm.call_count == 1
        assert "Explain closures" in fake_llm.calls[0]["prompt"]
        assert "python, javascript" in fake_llm.calls[0]["prompt"]

        session = await store.get_chat_session(result.session_id)
        assert session.current_node == "concept-explainer"
        assert len(session.conversation_history) == 1
        entry = session.conversation_history[0]
        assert entry.user_input == "Explain closures"
        assert entry.node == "concept-explainer"
        assert entry.response == result.response

    async def test_history_grows_across_turns(self, orchestrator, store, user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")
        second = await orchestrator.handle_turn(user.id, first.session_id, "Review my code")
        third = await orchestrator.handle_turn(user.id, first.session_id, "Quiz me on loops")

        assert second.session_id == first.session_id
        assert [second.current_node, third.current_node] == ["code-feedback", "quiz-generator"]
        assert third.metadata.iteration_count == 3

        session = await store.get_chat_session(first.session_id)
        assert [e.node for e in session.conversation_history] == [
            "concept-explainer",
            "code-feedback",
            "quiz-generator",
        ]

    async def test_code_snippet_is_kept_in_context(self, orchestrator, fake_llm, user):
        message = "Please review this:\n```python\ndef add(a, b):\n    return a - b\n```"
        result = await orchestrator.handle_turn(user.id, None, message)

        assert result.current_node == "code-feedback"
        assert result.session_context["last_code_snippet"] == "def add(a, b):\n    return a - b"
        assert "return a - b" in fake_llm.calls[0]["prompt"]

        # The snippet stays available to later turns
        await orchestrator.handle_turn(user.id, result.session_id, "Can you review it again?")
        assert "return a - b" in fake_llm.calls[1]["prompt"]

    async def test_prior_context_is_overlaid(self, orchestrator, user):
        result = await orchestrator.handle_turn(
            user.id, None, "Explain closures", {"current_topic": "functions"}
        )
        assert result.session_context["current_topic"] == "functions"


@pytest.mark.asyncio
class TestValidation:
    async def test_blank_message(self, orchestrator, user):
        with pytest.raises(ValidationError):
            await orchestrator.handle_turn(user.id, None, "   ")

    async def test_invalid_requested_node(self, orchestrator, user):
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.handle_turn(user.id, None, "hi", {"requested_node": "router"})
        assert exc_info.value.details == {"valid_nodes": list(MODE_TAGS)}

    async def test_foreign_session(self, orchestrator, user, other_user):
        result = await orchestrator.handle_turn(user.id, None, "Explain closures")
        with pytest.raises(NotFoundError):
            await orchestrator.handle_turn(other_user.id, result.session_id, "Explain loops")

    async def test_missing_session(self, orchestrator, user):
        with pytest.raises(NotFoundError):
            await orchestrator.handle_turn(user.id, "does-not-exist", "Explain loops")


@pytest.mark.asyncio
class TestSwitchNode:
    async def test_forced_mode_applies_to_one_turn(self, orchestrator, fake_llm, user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")

        switched = await orchestrator.switch_node(user.id, first.session_id, "mistake-analyzer")
        assert switched.current_node == "mistake-analyzer"
        assert "requested_node" not in switched.session_context

        # The next ordinary message is routed by keywords again
        after = await orchestrator.handle_turn(user.id, first.session_id, "Explain recursion")
        assert after.current_node == "concept-explainer"

    async def test_switch_uses_message_when_given(self, orchestrator, fake_llm, user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")
        await orchestrator.switch_node(user.id, first.session_id, "quiz-generator", "Arrays please")
        assert "Arrays please" in fake_llm.calls[-1]["prompt"]

    async def test_switch_validation(self, orchestrator, user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")
        with pytest.raises(ValidationError):
            await orchestrator.switch_node(user.id, None, "quiz-generator")
        with pytest.raises(ValidationError):
            await orchestrator.switch_node(user.id, first.session_id, "teleport")

    async def test_switch_foreign_session(self, orchestrator, user, other_user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")
        with pytest.raises(NotFoundError):
            await orchestrator.switch_node(other_user.id, first.session_id, "quiz-generator")


@pytest.mark.asyncio
class TestQuizFollowup:
    @pytest.fixture
    async def session_with_quiz(self, services, fake_llm, user):
        chat = await services.store.create_chat_session(user.id, "Study")
        fake_llm.reply = QUIZ_JSON
        await services.quiz_engine.create_quiz_session(
            user.id, topic="javascript", total_questions=3, chat_session_id=chat.id
        )
        fake_llm.calls.clear()
        return chat

    async def test_followup_skips_completion(self, orchestrator, store, fake_llm, user, session_with_quiz):
        result = await orchestrator.handle_turn(user.id, session_with_quiz.id, "explain question 2")

        assert fake_llm.call_count == 0
        assert result.current_node == "quiz-generator"
        assert result.response.startswith("Q2: Which keyword declares a constant?")
        assert "Correct Answer: c" in result.response

        session = await store.get_chat_session(session_with_quiz.id)
        assert session.conversation_history[-1].response == result.response

    async def test_followup_out_of_range(self, orchestrator, fake_llm, user, session_with_quiz):
        result = await orchestrator.handle_turn(user.id, session_with_quiz.id, "what about q7?")

        assert fake_llm.call_count == 0
        assert result.response == (
            "Sorry, your current quiz does not have a question 7. "
            "Please check the question number and try again."
        )

    async def test_followup_takes_precedence_over_forced_mode(
        self, orchestrator, fake_llm, user, session_with_quiz
    ):
        result = await orchestrator.handle_turn(
            user.id,
            session_with_quiz.id,
            "question 1",
            {"requested_node": "code-feedback"},
        )
        assert fake_llm.call_count == 0
        assert result.response.startswith("Q1:")

    async def test_ordinary_message_with_active_quiz(self, orchestrator, fake_llm, user, session_with_quiz):
        result = await orchestrator.handle_turn(user.id, session_with_quiz.id, "Explain closures")
        assert fake_llm.call_count == 1
        assert result.current_node == "concept-explainer"

    async def test_question_reference_without_quiz(self, orchestrator, fake_llm, user):
        result = await orchestrator.handle_turn(user.id, None, "explain question 2")
        assert fake_llm.call_count == 1
        assert result.current_node == "quiz-generator"


@pytest.mark.asyncio
class TestFailureHandling:
    async def test_persistence_failure_still_answers(self, orchestrator, store, fake_llm, user, monkeypatch):
        session = await store.create_chat_session(user.id, "Study")

        async def failing_update(*args, **kwargs):
            raise DatabaseError("disk full")

        monkeypatch.setattr(store, "update_chat_session", failing_update)
        fake_llm.reply = "[Concept Explainer Mode] Loops repeat work."
        result = await orchestrator.handle_turn(user.id, session.id, "Explain loops")

        assert result.response == "[Concept Explainer Mode] Loops repeat work."
        assert result.metadata.iteration_count == 1

    async def test_unexpected_error_returns_capabilities_message(
        self, orchestrator, user, monkeypatch
    ):
        async def broken_execute(state):
            raise RuntimeError("boom")

        monkeypatch.setattr(orchestrator.executors["concept-explainer"], "execute", broken_execute)
        result = await orchestrator.handle_turn(user.id, None, "Explain closures")

        assert result.response == FALLBACK_RESPONSE
        assert result.current_node == "concept-explainer"
        assert result.session_context == {"user_input": "Explain closures"}
        assert result.metadata.iteration_count == 0

    async def test_completion_failure_uses_mode_fallback(self, orchestrator, fake_llm, user):
        fake_llm.error = RuntimeError("service down")
        result = await orchestrator.handle_turn(user.id, None, "Quiz me on arrays")
        assert result.current_node == "quiz-generator"
        assert result.response.startswith("[Quiz Mode]")

    async def test_preferences_unavailable_uses_defaults(self, orchestrator, store, fake_llm, user, monkeypatch):
        async def failing_get_user(user_id):
            raise DatabaseError("timeout")

        monkeypatch.setattr(store, "get_user", failing_get_user)
        await orchestrator.handle_turn(user.id, None, "Explain closures")

        prompt = fake_llm.calls[0]["prompt"]
        assert "beginner" in prompt
        assert "javascript" in prompt
        assert "python, javascript" not in prompt


@pytest.mark.asyncio
class TestSessionOperations:
    async def test_list_and_rename(self, orchestrator, user, other_user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")
        await orchestrator.handle_turn(other_user.id, None, "Explain loops")

        sessions = await orchestrator.list_sessions(user.id)
        assert [s["id"] for s in sessions] == [first.session_id]
        assert sessions[0]["message_count"] == 1

        renamed = await orchestrator.rename_session(user.id, first.session_id, "  Closures  ")
        assert renamed.session_name == "Closures"

    async def test_rename_validation(self, orchestrator, user, other_user):
        first = await orchestrator.handle_turn(user.id, None, "Explain closures")
        with pytest.raises(ValidationError):
            await orchestrator.rename_session(user.id, first.session_id, " ")
        with pytest.raises(NotFoundError):
            await orchestrator.rename_session(other_user.id, first.session_id, "Mine")
