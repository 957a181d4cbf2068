"""Dialogue orchestrator graph.

This module defines the LangGraph that runs one tutoring turn:

    intake -> (quiz follow-up | one of the four mode executors) -> record -> persist

``DialogueOrchestrator.handle_turn`` is the single entry point shared by the
HTTP and WebSocket adapters.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from langgraph.graph import END, StateGraph

from ...core.errors import DatabaseError, NotFoundError, ValidationError
from ...db.schemas import ChatSessionRecord, HistoryEntry, UserPreferences
from ...db.store import SessionStore
from ...observability.langsmith import build_trace_config
from ..base.llm import CompletionClient
from ..base.utils import extract_code_block, log_agent_action, truncate_text
from .executors import ModeExecutor, build_executors
from .followup import answer_followup, parse_question_reference
from .prompts import FALLBACK_RESPONSE
from .router import determine_mode
from .state import (
    CONCEPT_EXPLAINER,
    MODE_TAGS,
    QUIZ_GENERATOR,
    ActiveQuiz,
    SessionContext,
    TurnMetadata,
    TurnResult,
    TutorState,
    is_mode_tag,
)

logger = logging.getLogger(__name__)

RECORD_NODE = "record"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_session_name() -> str:
    return f"Chat Session {datetime.now(timezone.utc).strftime('%Y-%m-%d')}"


class DialogueOrchestrator:
    """
    Runs dialogue turns and owns the chat-session operations.

    Ownership of chat sessions and quizzes is checked here; the store never
    filters by user.
    """

    def __init__(self, store: SessionStore, completion: CompletionClient):
        self.store = store
        self.executors: Dict[str, ModeExecutor] = build_executors(completion)
        self.graph = self._build_graph()

    # =========================================================================
    # Graph
    # =========================================================================

    def _build_graph(self):
        """Build the per-turn dialogue graph."""
        graph = StateGraph(TutorState)

        graph.add_node("intake", self._intake_node)
        for mode, executor in self.executors.items():
            graph.add_node(mode, self._make_mode_node(executor))
        graph.add_node(RECORD_NODE, self._record_node)
        graph.add_node("persist", self._persist_node)

        graph.set_entry_point("intake")

        # A quiz follow-up answers directly and skips the executors
        graph.add_conditional_edges(
            "intake",
            self._route_after_intake,
            {**{mode: mode for mode in self.executors}, RECORD_NODE: RECORD_NODE},
        )
        for mode in self.executors:
            graph.add_edge(mode, RECORD_NODE)

        graph.add_edge(RECORD_NODE, "persist")
        graph.add_edge("persist", END)

        return graph.compile()

    @staticmethod
    def _route_after_intake(state: TutorState) -> str:
        return state.get("target_node") or RECORD_NODE

    @log_agent_action("orchestrator")
    async def _intake_node(self, state: TutorState) -> Dict[str, Any]:
        """Answer quiz follow-ups directly, otherwise pick the mode for this turn."""
        context: SessionContext = state["context"]
        user_input = state["user_input"]

        followup = await self._try_quiz_followup(state["user_id"], context, user_input)
        if followup is not None:
            logger.info(f"Quiz follow-up answered for session {state['session_id']}")
            return {
                "target_node": None,
                "current_node": QUIZ_GENERATOR,
                "response": followup,
            }

        if is_mode_tag(context.requested_node):
            target = context.requested_node
        else:
            target = determine_mode(user_input)

        snippet = extract_code_block(user_input)
        if snippet:
            context = context.model_copy(update={"last_code_snippet": snippet})

        logger.info(
            f"Routing '{truncate_text(user_input, 40)}' to {target} "
            f"(session {state['session_id']})"
        )
        return {
            "target_node": target,
            "current_node": target,
            "context": context,
        }

    def _make_mode_node(self, executor: ModeExecutor):
        async def mode_node(state: TutorState) -> Dict[str, Any]:
            response = await executor.execute(state)
            return {"response": response}

        mode_node.__name__ = f"{executor.mode.replace('-', '_')}_node"
        return mode_node

    @log_agent_action("orchestrator")
    async def _record_node(self, state: TutorState) -> Dict[str, Any]:
        """Append the history entry and merge the mode output into the context."""
        response = state.get("response") or ""
        entry = HistoryEntry(
            timestamp=_now(),
            user_input=state["user_input"],
            node=state["current_node"],
            response=response,
        )
        context = state["context"].model_copy(
            update={"node_output": response, "requested_node": None}
        )
        return {
            "history": [*state.get("history", []), entry],
            "context": context,
        }

    @log_agent_action("orchestrator")
    async def _persist_node(self, state: TutorState) -> Dict[str, Any]:
        """Save the session best-effort; a failure never fails the turn."""
        result = await self.store.try_update_chat_session(
            state["session_id"],
            current_node=state["current_node"],
            conversation_history=state["history"],
            context=state["context"].to_storage(),
            available_transitions=list(MODE_TAGS),
        )
        if not result.ok:
            logger.warning(
                f"Session {state['session_id']} state kept in memory only: {result.error}"
            )
        return {"persisted": result.ok}

    async def _try_quiz_followup(
        self,
        user_id: str,
        context: SessionContext,
        user_input: str,
    ) -> Optional[str]:
        if context.active_quiz is None:
            return None
        number = parse_question_reference(user_input)
        if number is None:
            return None

        questions = context.active_quiz.questions
        if not questions and context.active_quiz.quiz_id:
            quiz = await self.store.get_quiz_session(context.active_quiz.quiz_id)
            if quiz is None or quiz.user_id != user_id:
                logger.info(f"Active quiz {context.active_quiz.quiz_id} not available for follow-up")
                return None
            questions = quiz.questions
        return answer_followup(questions, number, user_input)

    # =========================================================================
    # Turn entry point
    # =========================================================================

    async def handle_turn(
        self,
        user_id: str,
        session_id: Optional[str],
        user_input: str,
        prior_context: Optional[Dict[str, Any]] = None,
    ) -> TurnResult:
        """
        Run one dialogue turn.

        Args:
            user_id: Authenticated user id
            session_id: Existing chat session id, or None to start a new one
            user_input: Raw learner message
            prior_context: Context keys overlaid on the stored context

        Returns:
            TurnResult; internal failures yield the generic capabilities message

        Raises:
            ValidationError: Blank message or unknown requested node
            NotFoundError: Session missing or owned by another user
            DatabaseError: A new session could not be created
        """
        if not user_input or not user_input.strip():
            raise ValidationError("Message is required")
        requested = (prior_context or {}).get("requested_node")
        if requested is not None and not is_mode_tag(requested):
            raise ValidationError(
                f"Invalid node type. Valid types: {', '.join(MODE_TAGS)}",
                details={"valid_nodes": list(MODE_TAGS)},
            )

        if session_id:
            session = await self.get_session(user_id, session_id)
        else:
            session = await self.store.create_chat_session(user_id, default_session_name())
            logger.info(f"Created chat session {session.id} for user {user_id}")

        preferences = await self._load_preferences(user_id)

        try:
            context = SessionContext.model_validate(session.context or {}).merged(prior_context)
            initial_state: TutorState = {
                "user_id": user_id,
                "session_id": session.id,
                "user_input": user_input,
                "preferences": preferences,
                "context": context,
                "history": list(session.conversation_history),
                "target_node": None,
                "response": None,
                "current_node": None,
                "persisted": False,
            }
            config = build_trace_config(
                thread_id=session.id,
                tags=["devtutor", "dialogue_turn"],
                metadata={"session_id": session.id, "user_id": user_id},
            )
            final_state = await self.graph.ainvoke(initial_state, config=config)
        except Exception as e:
            logger.error(f"Dialogue turn failed for session {session.id}: {e}", exc_info=True)
            return self._fallback_result(session.id, user_input)

        return TurnResult(
            response=final_state["response"],
            session_id=session.id,
            current_node=final_state["current_node"],
            available_transitions=list(MODE_TAGS),
            session_context=final_state["context"].to_storage(),
            metadata=TurnMetadata(
                timestamp=_now(),
                iteration_count=len(final_state["history"]),
            ),
        )

    def _fallback_result(self, session_id: Optional[str], user_input: str) -> TurnResult:
        return TurnResult(
            response=FALLBACK_RESPONSE,
            session_id=session_id,
            current_node=CONCEPT_EXPLAINER,
            available_transitions=list(MODE_TAGS),
            session_context={"user_input": user_input},
            metadata=TurnMetadata(timestamp=_now(), iteration_count=0),
        )

    async def _load_preferences(self, user_id: str) -> UserPreferences:
        try:
            user = await self.store.get_user(user_id)
        except DatabaseError as e:
            logger.warning(f"Preferences unavailable for user {user_id}, using defaults: {e}")
            return UserPreferences()
        if user is None or user.preferences is None:
            return UserPreferences()
        return user.preferences

    # =========================================================================
    # Session operations
    # =========================================================================

    async def get_session(self, user_id: str, session_id: str) -> ChatSessionRecord:
        session = await self.store.get_chat_session(session_id)
        if session is None or session.user_id != user_id:
            raise NotFoundError("Chat session not found")
        return session

    async def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        """Summaries of the user's chat sessions, most recently active first."""
        sessions = await self.store.list_user_chat_sessions(user_id)
        return [
            {
                "id": session.id,
                "session_name": session.session_name,
                "current_node": session.current_node,
                "message_count": len(session.conversation_history),
                "created_at": session.created_at,
                "updated_at": session.updated_at,
                "last_activity": session.last_activity,
            }
            for session in sessions
        ]

    async def rename_session(
        self,
        user_id: str,
        session_id: str,
        session_name: str,
    ) -> ChatSessionRecord:
        if not session_name or not session_name.strip():
            raise ValidationError("Session name is required")
        await self.get_session(user_id, session_id)
        updated = await self.store.update_chat_session(session_id, session_name=session_name.strip())
        if updated is None:
            raise NotFoundError("Chat session not found")
        return updated

    async def attach_quiz(
        self,
        user_id: str,
        chat_session_id: str,
        quiz_id: str,
    ) -> ChatSessionRecord:
        """Make a quiz the session's active quiz so follow-up questions can refer to it."""
        session = await self.get_session(user_id, chat_session_id)
        quiz = await self.store.get_quiz_session(quiz_id)
        if quiz is None or quiz.user_id != user_id:
            raise NotFoundError("Quiz session not found")

        context = SessionContext.model_validate(session.context or {}).model_copy(
            update={"active_quiz": ActiveQuiz(quiz_id=quiz.id, questions=quiz.questions)}
        )
        updated = await self.store.update_chat_session(
            chat_session_id,
            context=context.to_storage(),
        )
        if updated is None:
            raise NotFoundError("Chat session not found")
        logger.info(f"Attached quiz {quiz_id} to chat session {chat_session_id}")
        return updated

    async def switch_node(
        self,
        user_id: str,
        session_id: Optional[str],
        node_type: Optional[str],
        message: Optional[str] = None,
    ) -> TurnResult:
        """Force the next turn into ``node_type`` mode."""
        if not session_id or not node_type:
            raise ValidationError("Session ID and node type are required")
        await self.get_session(user_id, session_id)
        if not is_mode_tag(node_type):
            raise ValidationError(
                f"Invalid node type. Valid types: {', '.join(MODE_TAGS)}",
                details={"valid_nodes": list(MODE_TAGS)},
            )

        return await self.handle_turn(
            user_id,
            session_id,
            message or f"Switch to {node_type} mode",
            {"requested_node": node_type},
        )
