"""State definitions for the tutoring dialogue.

This module defines the mode tags, the per-session context aggregate and the
TypedDict that flows through the orchestrator graph.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypedDict

from ...db.schemas import HistoryEntry, QuizQuestion, UserPreferences


# =============================================================================
# Mode Tags
# =============================================================================

CODE_FEEDBACK = "code-feedback"
CONCEPT_EXPLAINER = "concept-explainer"
QUIZ_GENERATOR = "quiz-generator"
MISTAKE_ANALYZER = "mistake-analyzer"

# Initial node of a freshly created session, never the result of a turn
ROUTER_NODE = "router"

MODE_TAGS = (CODE_FEEDBACK, CONCEPT_EXPLAINER, QUIZ_GENERATOR, MISTAKE_ANALYZER)


def is_mode_tag(value: Any) -> bool:
    return isinstance(value, str) and value in MODE_TAGS


# =============================================================================
# Session Context
# =============================================================================

class ActiveQuiz(BaseModel):
    """Quiz the learner may ask follow-up questions about."""

    quiz_id: Optional[str] = None
    questions: List[QuizQuestion] = Field(default_factory=list)


class SessionContext(BaseModel):
    """
    Context carried across turns of one chat session.

    Known fields are typed; any executor may stash additional keys, which are
    preserved as extras.
    """

    model_config = ConfigDict(extra="allow")

    last_code_snippet: Optional[str] = None
    active_quiz: Optional[ActiveQuiz] = None
    requested_node: Optional[str] = None
    current_topic: Optional[str] = None
    learning_objective: Optional[str] = None
    node_output: Optional[str] = None

    def merged(self, overlay: Optional[Dict[str, Any]]) -> "SessionContext":
        """Return a new context with ``overlay`` keys taking precedence."""
        if not overlay:
            return self.model_copy(deep=True)
        data = self.model_dump(mode="json", exclude_none=True)
        data.update({key: value for key, value in overlay.items()})
        return SessionContext.model_validate(data)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# Graph State
# =============================================================================

class TutorState(TypedDict, total=False):
    """State flowing through the orchestrator graph for one turn."""

    user_id: str
    session_id: str
    user_input: str
    preferences: UserPreferences
    context: SessionContext
    history: List[HistoryEntry]

    # Set by intake
    target_node: Optional[str]
    response: Optional[str]
    current_node: Optional[str]

    # Set by persist
    persisted: bool


# =============================================================================
# Turn Result
# =============================================================================

class TurnMetadata(BaseModel):
    timestamp: str
    iteration_count: int = 0


class TurnResult(BaseModel):
    """Outcome of one dialogue turn, identical for every transport."""

    response: str
    session_id: Optional[str] = None
    current_node: str
    available_transitions: List[str] = Field(default_factory=lambda: list(MODE_TAGS))
    session_context: Dict[str, Any] = Field(default_factory=dict)
    metadata: TurnMetadata
