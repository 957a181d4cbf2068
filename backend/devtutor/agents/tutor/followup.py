"""Quiz follow-up answers.

When a session has an active quiz and the learner refers to one of its
questions ("question 2", "Q2", "answer to 2"), the answer is formatted
directly from the stored question without calling the completion service.
"""

import re
from typing import List, Optional

from ...db.schemas import QuizQuestion

QUESTION_REFERENCE = re.compile(r"(question\s*\d+|q\d+|answer to \d+)", re.IGNORECASE)
_NUMBER_PATTERNS = (
    re.compile(r"question\s*(\d+)", re.IGNORECASE),
    re.compile(r"q(\d+)", re.IGNORECASE),
    re.compile(r"answer to (\d+)", re.IGNORECASE),
)

# "option b", a standalone capital letter, or "b)"
_OPTION_LETTER = re.compile(r"[Oo]ption\s+([a-dA-D])\b|\b([A-D])\b|\b([a-d])\)")

OPTION_LETTERS = "ABCD"


def parse_question_reference(user_input: str) -> Optional[int]:
    """
    Extract the 1-indexed question number the learner refers to.

    Returns:
        The question number, or None when the input is not a question reference
    """
    if not QUESTION_REFERENCE.search(user_input or ""):
        return None
    for pattern in _NUMBER_PATTERNS:
        match = pattern.search(user_input)
        if match:
            return int(match.group(1))
    return None


def named_option_letters(user_input: str) -> List[str]:
    """Upper-case option letters named in the input, in first-mention order."""
    letters: List[str] = []
    for match in _OPTION_LETTER.finditer(user_input or ""):
        letter = next(group for group in match.groups() if group).upper()
        if letter not in letters:
            letters.append(letter)
    return letters


def correct_option_index(question: QuizQuestion) -> int:
    """Index of the correct option, or -1 when it cannot be determined."""
    answer = (question.correct_answer or "").strip()
    if len(answer) == 1 and answer.upper() in OPTION_LETTERS:
        return OPTION_LETTERS.index(answer.upper())
    for idx, option in enumerate(question.options):
        if option.strip().casefold() == answer.casefold():
            return idx
    return -1


def missing_question_message(number: int) -> str:
    return (
        f"Sorry, your current quiz does not have a question {number}. "
        "Please check the question number and try again."
    )


def answer_followup(questions: List[QuizQuestion], number: int, user_input: str) -> str:
    """
    Format the answer to a follow-up about question ``number``.

    Args:
        questions: Questions of the active quiz
        number: 1-indexed question number
        user_input: Raw learner message, scanned for named option letters

    Returns:
        The formatted answer, or the "no such question" message
    """
    index = number - 1
    if index < 0 or index >= len(questions):
        return missing_question_message(number)

    question = questions[index]
    options = "\n".join(
        f"{OPTION_LETTERS[idx]}) {option}" for idx, option in enumerate(question.options)
    )
    response = (
        f"Q{number}: {question.question}\n\n"
        f"Options:\n{options}\n\n"
        f"Correct Answer: {question.correct_answer}\n\n"
        f"Explanation: {question.explanation}"
    )

    correct_idx = correct_option_index(question)
    for letter in named_option_letters(user_input):
        idx = OPTION_LETTERS.index(letter)
        if idx == correct_idx or idx >= len(question.options):
            continue
        response += (
            f"\n\nOption {letter}) {question.options[idx]} is not correct because it does "
            "not satisfy the requirements of the question or is not the best answer."
        )
    return response
