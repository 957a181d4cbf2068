"""Chat API endpoints.

HTTP adapter for the dialogue orchestrator. The WebSocket adapter in
``api.websocket`` builds the same ``handle_turn`` call and payloads.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..agents.tutor.router import describe_modes
from ..agents.tutor.state import TurnResult
from ..db.schemas import ChatSessionRecord, UserRecord
from ..services import TutorServices, get_services
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


# ==============================================================================
# Pydantic Models
# ==============================================================================

class ChatMessageRequest(BaseModel):
    """Chat turn request."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    node_type: Optional[str] = Field(default=None, alias="nodeType")
    quiz_id: Optional[str] = Field(default=None, alias="quizId")

    def to_prior_context(self) -> Optional[Dict[str, Any]]:
        """Context overlay for this turn: a forced mode and/or the quiz to answer from."""
        context: Dict[str, Any] = {}
        if self.node_type:
            context["requested_node"] = self.node_type
        if self.quiz_id:
            context["active_quiz"] = {"quiz_id": self.quiz_id}
        return context or None


class SwitchNodeRequest(BaseModel):
    """Force the next turn into a mode."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    node_type: Optional[str] = Field(default=None, alias="nodeType")
    message: Optional[str] = None


class RenameSessionRequest(BaseModel):
    name: str


class FeedbackRequest(BaseModel):
    """Learner rating of a tutor response."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    message_id: Optional[str] = Field(default=None, alias="messageId")
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    feedback: Optional[str] = None


# ==============================================================================
# Payload helpers (shared with the WebSocket adapter)
# ==============================================================================

def serialize_turn(result: TurnResult) -> Dict[str, Any]:
    return {
        "response": result.response,
        "sessionId": result.session_id,
        "currentNode": result.current_node,
        "availableTransitions": result.available_transitions,
        "metadata": result.metadata.model_dump(),
    }


def serialize_session(session: ChatSessionRecord) -> Dict[str, Any]:
    return {
        "id": session.id,
        "name": session.session_name,
        "currentNode": session.current_node,
        "conversationHistory": [entry.model_dump() for entry in session.conversation_history],
        "availableTransitions": session.available_transitions,
        "context": session.context,
        "createdAt": session.created_at,
        "lastActivity": session.last_activity,
    }


# ==============================================================================
# Endpoints
# ==============================================================================

@router.post("/message")
async def send_message(
    request: ChatMessageRequest,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Send a message to the tutor.

    Starts a new chat session when ``sessionId`` is omitted. ``nodeType``
    forces the mode for this turn; ``quizId`` makes that quiz available for
    "question N" follow-ups.
    """
    result = await services.orchestrator.handle_turn(
        current_user.id,
        request.session_id,
        request.message.strip(),
        request.to_prior_context(),
    )
    return {"success": True, "data": serialize_turn(result)}


@router.post("/switch-node")
async def switch_node(
    request: SwitchNodeRequest,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    result = await services.orchestrator.switch_node(
        current_user.id,
        request.session_id,
        request.node_type,
        request.message,
    )
    return {
        "success": True,
        "message": f"Switched to {request.node_type} mode",
        "data": serialize_turn(result),
    }


@router.get("/sessions")
async def list_sessions(
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    sessions = await services.orchestrator.list_sessions(current_user.id)
    return {
        "success": True,
        "data": {
            "sessions": [
                {
                    "id": session["id"],
                    "name": session["session_name"],
                    "currentNode": session["current_node"],
                    "lastActivity": session["last_activity"],
                    "createdAt": session["created_at"],
                    "messageCount": session["message_count"],
                }
                for session in sessions
            ]
        },
    }


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    session = await services.orchestrator.get_session(current_user.id, session_id)
    return {"success": True, "data": {"session": serialize_session(session)}}


@router.post("/sessions/{session_id}/rename")
async def rename_session(
    session_id: str,
    request: RenameSessionRequest,
    current_user: UserRecord = Depends(get_current_user),
    services: TutorServices = Depends(get_services),
) -> Dict[str, Any]:
    session = await services.orchestrator.rename_session(current_user.id, session_id, request.name)
    return {
        "success": True,
        "message": "Session renamed successfully",
        "data": {"session": {"id": session.id, "name": session.session_name}},
    }


@router.get("/available-nodes")
async def available_nodes() -> Dict[str, Any]:
    return {"success": True, "data": {"nodes": describe_modes()}}


@router.post("/feedback")
async def submit_feedback(
    request: FeedbackRequest,
    current_user: UserRecord = Depends(get_current_user),
) -> Dict[str, Any]:
    """Acknowledge learner feedback on a tutor response."""
    logger.info(
        f"Feedback from user {current_user.id} on session {request.session_id} "
        f"(message {request.message_id}): rating={request.rating}"
    )
    return {
        "success": True,
        "message": "Thank you for your feedback! It helps us improve the tutor.",
    }
