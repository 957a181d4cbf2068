"""Quiz generation, normalization and grading."""

from .engine import QuizEngine, grade_answer, next_difficulty
from .normalizer import normalize_options, normalize_quiz_response

__all__ = [
    "QuizEngine",
    "grade_answer",
    "next_difficulty",
    "normalize_options",
    "normalize_quiz_response",
]
