"""Quiz API endpoints.

Quiz sessions are scoped to the authenticated owner; a foreign id is
reported exactly like a missing one.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..agents.quiz.engine import DEFAULT_QUIZ_LENGTH
from ..db.schemas import UserRecord
from ..services import TutorServices, get_services
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["Quiz"])


# ==============================================================================
# Pydantic Models
# ==============================================================================

class CreateQuizRequest(BaseModel):
    """Create a quiz from a topic (generated) or from supplied questions."""
    model_config = ConfigDict(populate_by_name=True)

    topic: Optional[str] = None
    total_questions: int = Field(default=DEFAULT_QUIZ_LENGTH, alias="totalQuestions")
    difficulty: Optional[str] = None
    questions: Optional[List[Dict[str, Any]]] = None
    chat_session_id: Optional[str] = Field(default=None, alias="chatSessionId")


class AnswerItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(alias="questionId")
    user_answer: str = Field(alias="userAnswer")
    time_taken: int = Field(default=0, ge=0, alias="timeTaken")


class SubmitAnswersRequest(BaseModel):
    answers: List[AnswerItem]


class UpgradeQuizRequest(BaseModel):
    topic: Optional[str] = None


# ==============================================================================
# Endpoints
# ==============================================================================

@router.post("/sessions")
async def create_quiz_session(
    request: CreateQuizRequest,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    session = await services.quiz_engine.create_quiz_session(
        current_user.id,
        topic=request.topic,
        total_questions=request.total_questions,
        difficulty=request.difficulty,
        questions=request.questions,
        chat_session_id=request.chat_session_id,
    )
    return {"success": True, "data": {"session": session.model_dump()}}


@router.get("/sessions")
async def list_quiz_sessions(
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    sessions = await services.quiz_engine.list_quiz_sessions(current_user.id)
    return {"success": True, "data": {"sessions": [session.model_dump() for session in sessions]}}


@router.get("/sessions/{quiz_id}")
async def get_quiz_session(
    quiz_id: str,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    session = await services.quiz_engine.get_quiz_session(current_user.id, quiz_id)
    return {"success": True, "data": {"session": session.model_dump()}}


@router.post("/sessions/{quiz_id}/submit")
async def submit_quiz_answers(
    quiz_id: str,
    request: SubmitAnswersRequest,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    """Grade answers server-side and return the score with explanations for misses."""
    result = await services.quiz_engine.submit_answers(
        current_user.id,
        quiz_id,
        [answer.model_dump() for answer in request.answers],
    )
    return {"success": True, "data": result}


@router.delete("/sessions/{quiz_id}")
async def delete_quiz_session(
    quiz_id: str,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    await services.quiz_engine.delete_quiz_session(current_user.id, quiz_id)
    return {"success": True}


@router.post("/upgrade")
async def start_upgrade_quiz(
    request: Optional[UpgradeQuizRequest] = None,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Start a difficulty-upgrade quiz.

    Submitting it with enough correct answers promotes the user to the next
    difficulty tier.
    """
    topic = request.topic if request else None
    session = await services.quiz_engine.start_upgrade_quiz(current_user.id, topic)
    return {"success": True, "data": {"session": session.model_dump()}}
