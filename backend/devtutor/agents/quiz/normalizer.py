"""Response-shape normalizer for generated quizzes.

The completion service is asked for a JSON array of
``{question, options: {a, b, c, d}, answer, explanation}`` objects, but real
responses arrive fenced in markdown, with options as a list, as a list of
``{"text": ...}`` objects or with upper-case labels. Everything that coerces
those shapes lives here.
"""

import json
import logging
import re
from typing import Any, List, Optional
from uuid import uuid4

from ...db.schemas import QuizQuestion
from ..base.utils import strip_code_fences

logger = logging.getLogger(__name__)

OPTION_KEYS = ("a", "b", "c", "d")
OPTION_COUNT = 4

_ARRAY_START = re.compile(r"\[")
_DECODER = json.JSONDecoder()


def _option_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return str(value.get("text", value.get("option", "")))
    return str(value)


def normalize_options(raw: Any) -> List[str]:
    """
    Coerce an options value to an ordered list of exactly four strings.

    Accepts a labelled map (``a``-``d`` keys, either case), a list of strings,
    or a list of ``{"text": ...}`` objects. Short lists are padded with empty
    strings, long ones truncated.
    """
    options: List[str] = []
    if isinstance(raw, dict):
        for key in OPTION_KEYS:
            value = raw.get(key, raw.get(key.upper()))
            options.append(_option_text(value))
    elif isinstance(raw, (list, tuple)):
        options = [_option_text(item) for item in raw]

    options = options[:OPTION_COUNT]
    options.extend([""] * (OPTION_COUNT - len(options)))
    return options


def extract_json_array(text: str) -> Optional[List[Any]]:
    """
    Return the first well-formed JSON array in a model response, or None.

    Bracketed prose such as "[3]" parses as an array too, so an array of
    objects wins over an earlier array of scalars.
    """
    cleaned = strip_code_fences(text or "")
    first_list: Optional[List[Any]] = None
    for match in _ARRAY_START.finditer(cleaned):
        try:
            parsed, _ = _DECODER.raw_decode(cleaned, match.start())
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, list):
            continue
        if any(isinstance(item, dict) for item in parsed):
            return parsed
        if first_list is None:
            first_list = parsed
    if first_list is None and "[" in cleaned:
        logger.warning("Quiz response contained no well-formed JSON array")
    return first_list


def placeholder_question(topic: str, difficulty: str) -> QuizQuestion:
    """Single question returned when generation fails, so callers always get a list."""
    return QuizQuestion(
        id=str(uuid4()),
        question=f"No quiz generated for topic: {topic}",
        options=normalize_options([]),
        correct_answer="",
        explanation="Quiz generation failed. Please try again.",
        difficulty=difficulty,
        concepts=[topic],
    )


def to_quiz_question(raw: Any, topic: str, difficulty: str) -> Optional[QuizQuestion]:
    """Map one raw question object to the canonical shape, or None if unusable."""
    if not isinstance(raw, dict):
        return None
    question = str(raw.get("question") or "").strip()
    if not question:
        return None
    answer = raw.get("answer", raw.get("correct_answer", ""))
    return QuizQuestion(
        id=str(uuid4()),
        question=question,
        options=normalize_options(raw.get("options")),
        code_snippet=str(raw.get("code_snippet") or ""),
        correct_answer=str(answer or "").strip(),
        explanation=str(raw.get("explanation") or ""),
        difficulty=difficulty,
        concepts=[topic],
    )


def normalize_quiz_response(text: str, topic: str, difficulty: str) -> List[QuizQuestion]:
    """
    Turn a raw completion into a non-empty list of quiz questions.

    Args:
        text: Raw completion text
        topic: Quiz topic, recorded as the question concept
        difficulty: Effective difficulty for the quiz

    Returns:
        Parsed questions, or a single placeholder question on failure
    """
    raw_questions = extract_json_array(text)
    if raw_questions is None:
        logger.warning(f"No valid JSON array in quiz response for topic '{topic}'")
        return [placeholder_question(topic, difficulty)]

    questions = [
        question
        for question in (to_quiz_question(raw, topic, difficulty) for raw in raw_questions)
        if question is not None
    ]
    if not questions:
        logger.warning(f"Quiz response for topic '{topic}' had no usable questions")
        return [placeholder_question(topic, difficulty)]
    return questions
