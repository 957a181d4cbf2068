"""Database models for the tutor record store.

This module defines SQLAlchemy ORM models for:
- Users (owned by the auth service, preferences are read here)
- Chat Sessions
- Quiz Sessions
- Code Submissions
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
)
from sqlalchemy.orm import relationship

from .base import Base


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid4())


class User(Base):
    """Learner account with tutoring preferences."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    preferences = Column(JSON, nullable=True)
    created_at = Column(String(50), default=_now)
    updated_at = Column(String(50), default=_now, onupdate=_now)
    last_active = Column(String(50), default=_now)

    # Relationships
    chat_sessions = relationship("ChatSession", back_populates="user", cascade="all, delete-orphan")
    quiz_sessions = relationship("QuizSession", back_populates="user", cascade="all, delete-orphan")
    code_submissions = relationship("CodeSubmission", back_populates="user", cascade="all, delete-orphan")


class ChatSession(Base):
    """A conversation with the tutor and its accumulated context."""
    __tablename__ = "chat_sessions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_name = Column(String(255), nullable=False)
    current_node = Column(String(100), default="router", nullable=False)
    conversation_history = Column(JSON, default=list, nullable=False)
    context = Column(JSON, default=dict, nullable=False)
    available_transitions = Column(JSON, default=list, nullable=False)
    created_at = Column(String(50), default=_now)
    updated_at = Column(String(50), default=_now, onupdate=_now)
    last_activity = Column(String(50), default=_now, index=True)

    # Relationships
    user = relationship("User", back_populates="chat_sessions")


class QuizSession(Base):
    """A generated quiz and the learner's graded answers."""
    __tablename__ = "quiz_sessions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    purpose = Column(String(20), default="practice", nullable=False)  # practice | upgrade
    topic = Column(String(255), nullable=True)
    difficulty = Column(String(20), nullable=True)
    questions = Column(JSON, default=list, nullable=False)
    answers = Column(JSON, default=list, nullable=False)
    score = Column(Integer, default=0, nullable=False)
    total_questions = Column(Integer, default=0, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    time_taken = Column(Integer, default=0, nullable=False)  # seconds
    created_at = Column(String(50), default=_now)
    completed_at = Column(String(50), nullable=True)

    # Relationships
    user = relationship("User", back_populates="quiz_sessions")


class CodeSubmission(Base):
    """Code snippet submitted for review with the feedback it received."""
    __tablename__ = "code_submissions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(Text, nullable=False)
    language = Column(String(50), nullable=False)
    analysis_results = Column(JSON, default=dict, nullable=False)
    feedback_provided = Column(Text, nullable=True)
    created_at = Column(String(50), default=_now)

    # Relationships
    user = relationship("User", back_populates="code_submissions")
