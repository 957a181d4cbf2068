"""Session store adapter.

Typed async CRUD over the record store for users, chat sessions, quiz
sessions and code submissions. Every call is bounded by a timeout and
storage failures surface as ``DatabaseError``. Ownership is NOT checked here;
callers compare ``record.user_id`` with the requester.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import DatabaseError
from .base import Database
from .models import ChatSession, CodeSubmission, QuizSession, User
from .schemas import (
    ChatSessionRecord,
    CodeSubmissionRecord,
    QuizSessionRecord,
    UserPreferences,
    UserRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHAT_SESSION_FIELDS = {
    "session_name",
    "current_node",
    "conversation_history",
    "context",
    "available_transitions",
}
QUIZ_SESSION_FIELDS = {
    "questions",
    "answers",
    "score",
    "completed",
    "time_taken",
    "completed_at",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_json(value: Any) -> Any:
    """Convert pydantic models (possibly nested in lists/dicts) to plain JSON values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_to_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_json(item) for key, item in value.items()}
    return value


@dataclass
class PersistResult(Generic[T]):
    """Outcome of a best-effort write."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SessionStore:
    """Async CRUD facade used by the orchestrator, quiz engine and code review."""

    def __init__(self, database: Database, timeout: float = 30.0):
        self.database = database
        self.timeout = timeout

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        async def _execute() -> T:
            async with self.database.session() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(_execute(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Store operation '{operation}' timed out after {self.timeout}s")
            raise DatabaseError(f"Store operation '{operation}' timed out") from e
        except SQLAlchemyError as e:
            logger.error(f"Store operation '{operation}' failed: {e}")
            raise DatabaseError(f"Store operation '{operation}' failed") from e

    # ===== USERS =====

    async def create_user(
        self,
        name: str,
        username: str,
        email: str,
        preferences: Optional[UserPreferences] = None,
    ) -> UserRecord:
        prefs = preferences or UserPreferences()

        async def work(session: AsyncSession) -> UserRecord:
            user = User(
                name=name,
                username=username,
                email=email,
                preferences=prefs.model_dump(),
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return UserRecord.model_validate(user)

        return await self._run("create_user", work)

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        async def work(session: AsyncSession) -> Optional[UserRecord]:
            user = await session.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

        return await self._run("get_user", work)

    async def update_user_preferences(
        self,
        user_id: str,
        preferences: UserPreferences,
    ) -> Optional[UserRecord]:
        async def work(session: AsyncSession) -> Optional[UserRecord]:
            user = await session.get(User, user_id)
            if user is None:
                return None
            user.preferences = preferences.model_dump()
            user.updated_at = _now()
            await session.commit()
            await session.refresh(user)
            return UserRecord.model_validate(user)

        return await self._run("update_user_preferences", work)

    # ===== CHAT SESSIONS =====

    async def create_chat_session(
        self,
        user_id: str,
        session_name: str,
        current_node: str = "router",
    ) -> ChatSessionRecord:
        async def work(session: AsyncSession) -> ChatSessionRecord:
            chat = ChatSession(
                user_id=user_id,
                session_name=session_name,
                current_node=current_node,
                conversation_history=[],
                context={},
                available_transitions=[],
            )
            session.add(chat)
            await session.commit()
            await session.refresh(chat)
            return ChatSessionRecord.model_validate(chat)

        return await self._run("create_chat_session", work)

    async def get_chat_session(self, session_id: str) -> Optional[ChatSessionRecord]:
        async def work(session: AsyncSession) -> Optional[ChatSessionRecord]:
            chat = await session.get(ChatSession, session_id)
            return ChatSessionRecord.model_validate(chat) if chat else None

        return await self._run("get_chat_session", work)

    async def list_user_chat_sessions(self, user_id: str) -> List[ChatSessionRecord]:
        async def work(session: AsyncSession) -> List[ChatSessionRecord]:
            result = await session.execute(
                select(ChatSession)
                .where(ChatSession.user_id == user_id)
                .order_by(ChatSession.last_activity.desc())
            )
            return [ChatSessionRecord.model_validate(row) for row in result.scalars().all()]

        return await self._run("list_user_chat_sessions", work)

    async def update_chat_session(
        self,
        session_id: str,
        **changes: Any,
    ) -> Optional[ChatSessionRecord]:
        """
        Update selected fields of a chat session.

        JSON columns are always replaced with new values so SQLAlchemy
        detects the change.

        Returns:
            The updated record, or None if the session does not exist
        """
        unknown = set(changes) - CHAT_SESSION_FIELDS
        if unknown:
            raise ValueError(f"Unknown chat session fields: {sorted(unknown)}")

        async def work(session: AsyncSession) -> Optional[ChatSessionRecord]:
            chat = await session.get(ChatSession, session_id)
            if chat is None:
                return None
            for field, value in changes.items():
                setattr(chat, field, _to_json(value))
            chat.last_activity = _now()
            chat.updated_at = chat.last_activity
            await session.commit()
            await session.refresh(chat)
            return ChatSessionRecord.model_validate(chat)

        return await self._run("update_chat_session", work)

    async def try_update_chat_session(
        self,
        session_id: str,
        **changes: Any,
    ) -> PersistResult[ChatSessionRecord]:
        """Best-effort variant of ``update_chat_session`` that reports instead of raising."""
        try:
            record = await self.update_chat_session(session_id, **changes)
        except DatabaseError as e:
            return PersistResult(error=e)
        if record is None:
            return PersistResult(error=DatabaseError(f"Chat session {session_id} disappeared"))
        return PersistResult(value=record)

    # ===== QUIZ SESSIONS =====

    async def create_quiz_session(
        self,
        user_id: str,
        questions: List[Any],
        purpose: str = "practice",
        topic: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> QuizSessionRecord:
        payload = _to_json(list(questions))

        async def work(session: AsyncSession) -> QuizSessionRecord:
            quiz = QuizSession(
                user_id=user_id,
                purpose=purpose,
                topic=topic,
                difficulty=difficulty,
                questions=payload,
                answers=[],
                score=0,
                total_questions=len(payload),
                completed=False,
                time_taken=0,
            )
            session.add(quiz)
            await session.commit()
            await session.refresh(quiz)
            return QuizSessionRecord.model_validate(quiz)

        return await self._run("create_quiz_session", work)

    async def get_quiz_session(self, quiz_id: str) -> Optional[QuizSessionRecord]:
        async def work(session: AsyncSession) -> Optional[QuizSessionRecord]:
            quiz = await session.get(QuizSession, quiz_id)
            return QuizSessionRecord.model_validate(quiz) if quiz else None

        return await self._run("get_quiz_session", work)

    async def list_user_quiz_sessions(self, user_id: str) -> List[QuizSessionRecord]:
        async def work(session: AsyncSession) -> List[QuizSessionRecord]:
            result = await session.execute(
                select(QuizSession)
                .where(QuizSession.user_id == user_id)
                .order_by(QuizSession.created_at.desc())
            )
            return [QuizSessionRecord.model_validate(row) for row in result.scalars().all()]

        return await self._run("list_user_quiz_sessions", work)

    async def update_quiz_session(
        self,
        quiz_id: str,
        **changes: Any,
    ) -> Optional[QuizSessionRecord]:
        # total_questions is fixed at creation
        unknown = set(changes) - QUIZ_SESSION_FIELDS
        if unknown:
            raise ValueError(f"Unknown quiz session fields: {sorted(unknown)}")

        async def work(session: AsyncSession) -> Optional[QuizSessionRecord]:
            quiz = await session.get(QuizSession, quiz_id)
            if quiz is None:
                return None
            for field, value in changes.items():
                setattr(quiz, field, _to_json(value))
            await session.commit()
            await session.refresh(quiz)
            return QuizSessionRecord.model_validate(quiz)

        return await self._run("update_quiz_session", work)

    async def delete_quiz_session(self, quiz_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                delete(QuizSession).where(QuizSession.id == quiz_id)
            )
            await session.commit()
            return result.rowcount > 0

        return await self._run("delete_quiz_session", work)

    # ===== CODE SUBMISSIONS =====

    async def create_code_submission(
        self,
        user_id: str,
        code: str,
        language: str,
        analysis_results: Optional[Dict[str, Any]] = None,
        feedback_provided: Optional[str] = None,
    ) -> CodeSubmissionRecord:
        async def work(session: AsyncSession) -> CodeSubmissionRecord:
            submission = CodeSubmission(
                user_id=user_id,
                code=code,
                language=language,
                analysis_results=_to_json(analysis_results or {}),
                feedback_provided=feedback_provided,
            )
            session.add(submission)
            await session.commit()
            await session.refresh(submission)
            return CodeSubmissionRecord.model_validate(submission)

        return await self._run("create_code_submission", work)

    async def get_code_submission(self, submission_id: str) -> Optional[CodeSubmissionRecord]:
        async def work(session: AsyncSession) -> Optional[CodeSubmissionRecord]:
            submission = await session.get(CodeSubmission, submission_id)
            return CodeSubmissionRecord.model_validate(submission) if submission else None

        return await self._run("get_code_submission", work)

    async def list_user_code_submissions(self, user_id: str) -> List[CodeSubmissionRecord]:
        async def work(session: AsyncSession) -> List[CodeSubmissionRecord]:
            result = await session.execute(
                select(CodeSubmission)
                .where(CodeSubmission.user_id == user_id)
                .order_by(CodeSubmission.created_at.desc())
            )
            return [CodeSubmissionRecord.model_validate(row) for row in result.scalars().all()]

        return await self._run("list_user_code_submissions", work)

    async def delete_code_submission(self, submission_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                delete(CodeSubmission).where(CodeSubmission.id == submission_id)
            )
            await session.commit()
            return result.rowcount > 0

        return await self._run("delete_code_submission", work)
