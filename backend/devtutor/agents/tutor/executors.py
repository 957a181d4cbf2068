"""Mode executors.

Each executor builds a mode-specific prompt from the learner's preferences and
the session context, calls the completion service with its own output budget,
and falls back to a deterministic template when the service fails. Executors
never raise.
"""

import logging
from typing import Dict, Optional

from ...core.errors import CompletionServiceError
from ...db.schemas import UserPreferences
from ..base.llm import CompletionClient
from . import prompts
from .state import (
    CODE_FEEDBACK,
    CONCEPT_EXPLAINER,
    MISTAKE_ANALYZER,
    QUIZ_GENERATOR,
    SessionContext,
    TutorState,
)

logger = logging.getLogger(__name__)


def _profile(preferences: Optional[UserPreferences]) -> Dict[str, str]:
    """Preference fields shared by every prompt, with defaults for missing values."""
    difficulty = "beginner"
    languages = "JavaScript"
    learning_style = "hands-on"
    if preferences is not None:
        difficulty = preferences.difficulty or difficulty
        if preferences.preferred_languages:
            languages = ", ".join(preferences.preferred_languages)
        learning_style = preferences.learning_style or learning_style
    return {
        "difficulty": difficulty,
        "languages": languages,
        "learning_style": learning_style,
    }


def _mentions(text: str, *words: str) -> bool:
    lowered = (text or "").lower()
    return any(word in lowered for word in words)


class ModeExecutor:
    """Base class for the four tutoring modes."""

    mode: str = ""
    label: str = ""
    max_tokens: int = 600
    temperature: float = 0.7

    def __init__(self, completion: CompletionClient):
        self.completion = completion

    def build_prompt(self, state: TutorState) -> str:
        raise NotImplementedError

    def fallback(self, state: TutorState) -> str:
        raise NotImplementedError

    def _ensure_label(self, text: str) -> str:
        if self.label.lower() in text.lower():
            return text
        return f"{self.label} {text}"

    async def execute(self, state: TutorState) -> str:
        """
        Produce the mode response for one turn.

        Args:
            state: Graph state with preferences, context, input and history

        Returns:
            A mode-labelled response; the fallback template on any failure
        """
        prompt = self.build_prompt(state)
        try:
            text = await self.completion.complete(
                prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except CompletionServiceError as e:
            logger.warning(f"[{self.mode}] Completion unavailable, using fallback: {e.message}")
            return self.fallback(state)

        text = (text or "").strip()
        if not text:
            logger.warning(f"[{self.mode}] Empty completion, using fallback")
            return self.fallback(state)
        return self._ensure_label(text)


class CodeFeedbackExecutor(ModeExecutor):
    mode = CODE_FEEDBACK
    label = prompts.CODE_FEEDBACK_LABEL
    max_tokens = 500
    temperature = 0.7

    def build_prompt(self, state: TutorState) -> str:
        context = state.get("context") or SessionContext()
        if context.last_code_snippet:
            code_section = f"Code to analyze:\n{context.last_code_snippet}"
        else:
            code_section = "No code provided yet."
        return prompts.CODE_FEEDBACK_PROMPT.format(
            **_profile(state.get("preferences")),
            user_input=state.get("user_input", ""),
            code_section=code_section,
            label=self.label,
        )

    def fallback(self, state: TutorState) -> str:
        user_input = state.get("user_input", "")
        if _mentions(user_input, "code", "review"):
            closing = "Please paste your code here and I'll give you detailed, actionable feedback!"
        else:
            closing = "Feel free to ask specific coding questions or share code for review!"
        return prompts.CODE_FEEDBACK_FALLBACK.format(
            **_profile(state.get("preferences")),
            label=self.label,
            closing=closing,
        )


class ConceptExplainerExecutor(ModeExecutor):
    mode = CONCEPT_EXPLAINER
    label = prompts.CONCEPT_EXPLAINER_LABEL
    max_tokens = 600
    temperature = 0.7

    def build_prompt(self, state: TutorState) -> str:
        return prompts.CONCEPT_EXPLAINER_PROMPT.format(
            **_profile(state.get("preferences")),
            user_input=state.get("user_input", ""),
            label=self.label,
        )

    def fallback(self, state: TutorState) -> str:
        user_input = state.get("user_input", "")
        if _mentions(user_input, "explain", "what", "how"):
            closing = f'Great question about "{user_input}"! I\'d love to break this down for you with practical examples.'
        else:
            closing = "What programming concept would you like me to explain today? Just ask!"
        return prompts.CONCEPT_EXPLAINER_FALLBACK.format(
            **_profile(state.get("preferences")),
            label=self.label,
            closing=closing,
        )


class QuizExecutor(ModeExecutor):
    mode = QUIZ_GENERATOR
    label = prompts.QUIZ_LABEL
    max_tokens = 800
    temperature = 0.8

    def build_prompt(self, state: TutorState) -> str:
        return prompts.QUIZ_PROMPT.format(
            **_profile(state.get("preferences")),
            user_input=state.get("user_input", ""),
            label=self.label,
        )

    def fallback(self, state: TutorState) -> str:
        profile = _profile(state.get("preferences"))
        if _mentions(state.get("user_input", ""), "quiz", "test", "question"):
            closing = prompts.QUIZ_SAMPLE_CHALLENGE
        else:
            closing = "What specific topic would you like me to quiz you on? Just ask!"
        return prompts.QUIZ_FALLBACK.format(
            **profile,
            difficulty_upper=profile["difficulty"].upper(),
            label=self.label,
            closing=closing,
        )


class ProgressAnalyzerExecutor(ModeExecutor):
    mode = MISTAKE_ANALYZER
    label = prompts.PROGRESS_ANALYZER_LABEL
    max_tokens = 700
    temperature = 0.6

    def build_prompt(self, state: TutorState) -> str:
        return prompts.PROGRESS_ANALYZER_PROMPT.format(
            **_profile(state.get("preferences")),
            user_input=state.get("user_input", ""),
            sessions_completed=len(state.get("history") or []),
            label=self.label,
        )

    def fallback(self, state: TutorState) -> str:
        profile = _profile(state.get("preferences"))
        if _mentions(state.get("user_input", ""), "mistake", "error", "wrong"):
            closing = prompts.PROGRESS_ERROR_FOCUS.format(difficulty=profile["difficulty"])
        else:
            closing = prompts.PROGRESS_GROWTH_FOCUS
        return prompts.PROGRESS_ANALYZER_FALLBACK.format(
            **profile,
            sessions_completed=len(state.get("history") or []),
            label=self.label,
            closing=closing,
        )


def build_executors(completion: CompletionClient) -> Dict[str, ModeExecutor]:
    """Create one executor per mode tag."""
    executors = (
        CodeFeedbackExecutor(completion),
        ConceptExplainerExecutor(completion),
        QuizExecutor(completion),
        ProgressAnalyzerExecutor(completion),
    )
    return {executor.mode: executor for executor in executors}
