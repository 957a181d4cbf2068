"""Typed records returned by the session store.

ORM rows never leave the store; callers receive these pydantic models.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Difficulty = Literal["beginner", "intermediate", "advanced"]
QuizPurpose = Literal["practice", "upgrade"]


class UserPreferences(BaseModel):
    """Tutoring preferences stored on the user record."""

    model_config = ConfigDict(extra="ignore")

    difficulty: Difficulty = "beginner"
    preferred_languages: List[str] = Field(default_factory=lambda: ["javascript"])
    learning_style: str = "hands-on"
    explanation_mode: str = "simple"
    topics_of_interest: List[str] = Field(default_factory=list)


class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: str
    email: str
    preferences: Optional[UserPreferences] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_active: Optional[str] = None


class HistoryEntry(BaseModel):
    timestamp: str
    user_input: str
    node: str
    response: str


class ChatSessionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    session_name: str
    current_node: str = "router"
    conversation_history: List[HistoryEntry] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
    available_transitions: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_activity: Optional[str] = None


class QuizQuestion(BaseModel):
    """A multiple-choice question. Options always hold exactly four entries."""

    id: str
    type: str = "mcq"
    question: str
    options: List[str] = Field(min_length=4, max_length=4)
    code_snippet: str = ""
    correct_answer: str
    explanation: str = ""
    difficulty: str = "beginner"
    concepts: List[str] = Field(default_factory=list)


class QuizAnswer(BaseModel):
    question_id: str
    user_answer: str
    is_correct: bool = False
    time_taken: int = 0
    timestamp: Optional[str] = None


class QuizSessionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    purpose: QuizPurpose = "practice"
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    questions: List[QuizQuestion] = Field(default_factory=list)
    answers: List[QuizAnswer] = Field(default_factory=list)
    score: int = 0
    total_questions: int = 0
    completed: bool = False
    time_taken: int = 0
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class CodeSubmissionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    code: str
    language: str
    analysis_results: Dict[str, Any] = Field(default_factory=dict)
    feedback_provided: Optional[str] = None
    created_at: Optional[str] = None
