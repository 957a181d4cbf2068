"""Tutoring dialogue agents.

This package provides the per-turn dialogue pipeline:
- Mode Router: keyword routing to one of four modes
- Mode Executors: prompt building, completion call and deterministic fallback
- Dialogue Orchestrator: the LangGraph that runs a turn and persists the session
- Code Review: code-feedback executor applied to stored submissions

Quiz follow-ups ("question 2", "Q3") are answered straight from the active
quiz without calling the completion service.
"""

from .code_review import CodeReviewer
from .executors import ModeExecutor, build_executors
from .graph import DialogueOrchestrator
from .router import describe_modes, determine_mode
from .state import MODE_TAGS, SessionContext, TurnResult, TutorState

__all__ = [
    # Orchestration
    "DialogueOrchestrator",
    "CodeReviewer",
    # Routing
    "determine_mode",
    "describe_modes",
    # Executors
    "ModeExecutor",
    "build_executors",
    # State
    "MODE_TAGS",
    "SessionContext",
    "TurnResult",
    "TutorState",
]
