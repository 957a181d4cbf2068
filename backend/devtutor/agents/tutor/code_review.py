"""Code review service.

Runs the code-feedback executor on a submitted snippet and keeps the result
as a code submission.
"""

import logging
from typing import Any, Dict, List, Optional

from ...core.errors import DatabaseError, NotFoundError, ValidationError
from ...db.schemas import CodeSubmissionRecord, UserPreferences
from ...db.store import SessionStore
from .executors import CodeFeedbackExecutor
from .state import SessionContext, TutorState

logger = logging.getLogger(__name__)


class CodeReviewer:
    def __init__(self, store: SessionStore, executor: CodeFeedbackExecutor):
        self.store = store
        self.executor = executor

    async def analyze_code(
        self,
        user_id: str,
        code: str,
        language: str = "javascript",
        analysis_results: Optional[Dict[str, Any]] = None,
    ) -> CodeSubmissionRecord:
        """
        Review a snippet and store the submission with its feedback.

        Raises:
            ValidationError: Blank code
        """
        if not code or not code.strip():
            raise ValidationError("Code is required")

        try:
            user = await self.store.get_user(user_id)
            preferences = user.preferences if user and user.preferences else UserPreferences()
        except DatabaseError as e:
            logger.warning(f"Preferences unavailable for code review ({user_id}): {e}")
            preferences = UserPreferences()

        state: TutorState = {
            "user_id": user_id,
            "user_input": f"Please review my {language} code",
            "preferences": preferences,
            "context": SessionContext(last_code_snippet=code),
            "history": [],
        }
        feedback = await self.executor.execute(state)

        submission = await self.store.create_code_submission(
            user_id,
            code,
            language,
            analysis_results=analysis_results,
            feedback_provided=feedback,
        )
        logger.info(f"Stored code submission {submission.id} ({language}) for user {user_id}")
        return submission

    async def list_submissions(self, user_id: str) -> List[CodeSubmissionRecord]:
        return await self.store.list_user_code_submissions(user_id)

    async def delete_submission(self, user_id: str, submission_id: str) -> None:
        submission = await self.store.get_code_submission(submission_id)
        if submission is None or submission.user_id != user_id:
            raise NotFoundError("Code submission not found")
        await self.store.delete_code_submission(submission_id)
