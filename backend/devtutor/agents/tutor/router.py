"""Keyword router that picks the tutoring mode for a turn."""

from typing import Dict, List, Tuple

from .state import CODE_FEEDBACK, CONCEPT_EXPLAINER, MISTAKE_ANALYZER, QUIZ_GENERATOR

# Checked in order; the first group with a matching keyword wins
KEYWORD_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (CODE_FEEDBACK, ("code", "debug", "review", "feedback")),
    (QUIZ_GENERATOR, ("quiz", "test", "question", "practice")),
    (MISTAKE_ANALYZER, ("progress", "mistake", "track", "analysis")),
)

MODE_DESCRIPTIONS: Dict[str, Tuple[str, str]] = {
    CODE_FEEDBACK: (
        "Code Feedback",
        "Get AI-powered feedback and analysis on your code",
    ),
    CONCEPT_EXPLAINER: (
        "Concept Explainer",
        "Learn programming concepts with personalized explanations",
    ),
    QUIZ_GENERATOR: (
        "Quiz Generator",
        "Take interactive quizzes to test your knowledge",
    ),
    MISTAKE_ANALYZER: (
        "Mistake Analyzer",
        "Analyze your learning progress and identify improvement areas",
    ),
}


def determine_mode(user_input: str) -> str:
    """
    Pick a mode by case-insensitive substring match.

    Args:
        user_input: Raw learner message (may be empty)

    Returns:
        One of the four mode tags; concept explanation is the default
    """
    text = (user_input or "").lower()
    for mode, keywords in KEYWORD_GROUPS:
        if any(keyword in text for keyword in keywords):
            return mode
    return CONCEPT_EXPLAINER


def describe_modes() -> List[Dict[str, str]]:
    """List the modes for "available nodes" surfaces."""
    return [
        {"type": mode, "name": name, "description": description}
        for mode, (name, description) in MODE_DESCRIPTIONS.items()
    ]
