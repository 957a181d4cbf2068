"""Quiz engine.

Generates quizzes through the completion service, stores them as quiz
sessions, grades submitted answers, runs the difficulty-upgrade flow and
summarizes progress from completed quizzes.
"""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from ...core.errors import CompletionServiceError, DatabaseError, NotFoundError, ValidationError
from ...db.schemas import QuizAnswer, QuizQuestion, QuizSessionRecord, UserPreferences
from ...db.store import SessionStore
from ..base.llm import CompletionClient
from .normalizer import normalize_options, normalize_quiz_response, placeholder_question
from .prompts import (
    QUIZ_GENERATION_MAX_TOKENS,
    QUIZ_GENERATION_PROMPT,
    QUIZ_GENERATION_TEMPERATURE,
)

if TYPE_CHECKING:
    from ..tutor.graph import DialogueOrchestrator

logger = logging.getLogger(__name__)

DIFFICULTY_TIERS = ("beginner", "intermediate", "advanced")
DEFAULT_QUIZ_LENGTH = 5
MAX_QUIZ_LENGTH = 20
UPGRADE_QUIZ_LENGTH = 10
UPGRADE_PASS_SCORE = 6
MASTERY_PERCENT = 80

_OPTION_LETTERS = {"a", "b", "c", "d"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def grade_answer(user_answer: str, correct_answer: str) -> bool:
    """
    Compare a submitted answer with the stored correct answer.

    Surrounding whitespace is ignored. Single option letters compare
    case-insensitively; anything else must match exactly.
    """
    submitted = (user_answer or "").strip()
    expected = (correct_answer or "").strip()
    if not expected:
        return False
    if submitted.lower() in _OPTION_LETTERS and expected.lower() in _OPTION_LETTERS:
        return submitted.lower() == expected.lower()
    return submitted == expected


def next_difficulty(current: str) -> str:
    """Next difficulty tier, capped at the highest."""
    if current not in DIFFICULTY_TIERS:
        return DIFFICULTY_TIERS[0]
    index = DIFFICULTY_TIERS.index(current)
    return DIFFICULTY_TIERS[min(index + 1, len(DIFFICULTY_TIERS) - 1)]


def _tier_rank(difficulty: Optional[str]) -> int:
    return DIFFICULTY_TIERS.index(difficulty) if difficulty in DIFFICULTY_TIERS else -1


class QuizEngine:
    """Owner-scoped quiz operations."""

    def __init__(
        self,
        store: SessionStore,
        completion: CompletionClient,
        orchestrator: Optional["DialogueOrchestrator"] = None,
    ):
        self.store = store
        self.completion = completion
        self.orchestrator = orchestrator

    # ===== GENERATION =====

    async def _preferences(self, user_id: str) -> UserPreferences:
        try:
            user = await self.store.get_user(user_id)
        except DatabaseError as e:
            logger.warning(f"Preferences unavailable for quiz generation ({user_id}): {e}")
            return UserPreferences()
        if user is None or user.preferences is None:
            return UserPreferences()
        return user.preferences

    async def generate_quiz(
        self,
        topic: str,
        total_questions: int,
        user_id: str,
        difficulty: Optional[str] = None,
    ) -> List[QuizQuestion]:
        """
        Generate multiple-choice questions for a topic.

        Args:
            topic: Quiz topic
            total_questions: Number of questions to request
            user_id: Requesting user, for preference lookup
            difficulty: Explicit difficulty, else the user's preference

        Returns:
            A non-empty list of questions (a placeholder on any failure)
        """
        preferences = await self._preferences(user_id)
        quiz_difficulty = (difficulty or preferences.difficulty or "beginner").lower()
        languages = ", ".join(preferences.preferred_languages) or "JavaScript"

        prompt = QUIZ_GENERATION_PROMPT.format(
            total_questions=total_questions,
            topic=topic,
            difficulty_upper=quiz_difficulty.upper(),
            difficulty_label=quiz_difficulty.capitalize(),
            languages=languages,
        )

        try:
            text = await self.completion.complete(
                prompt,
                max_tokens=QUIZ_GENERATION_MAX_TOKENS,
                temperature=QUIZ_GENERATION_TEMPERATURE,
            )
        except CompletionServiceError as e:
            logger.warning(f"Quiz generation failed for topic '{topic}': {e.message}")
            return [placeholder_question(topic, quiz_difficulty)]

        questions = normalize_quiz_response(text, topic, quiz_difficulty)
        logger.info(f"Generated {len(questions)} quiz question(s) for topic '{topic}'")
        return questions

    @staticmethod
    def _coerce_questions(raw_questions: Iterable[Any]) -> List[QuizQuestion]:
        questions = []
        for raw in raw_questions:
            if isinstance(raw, QuizQuestion):
                questions.append(raw)
                continue
            data = dict(raw)
            data.setdefault("id", str(uuid4()))
            data["options"] = normalize_options(data.get("options"))
            try:
                questions.append(QuizQuestion.model_validate(data))
            except PydanticValidationError as e:
                raise ValidationError(
                    "Invalid quiz question",
                    details=e.errors(include_url=False),
                ) from e
        return questions

    # ===== QUIZ SESSIONS =====

    async def create_quiz_session(
        self,
        user_id: str,
        topic: Optional[str] = None,
        total_questions: int = DEFAULT_QUIZ_LENGTH,
        difficulty: Optional[str] = None,
        questions: Optional[List[Any]] = None,
        chat_session_id: Optional[str] = None,
        purpose: str = "practice",
    ) -> QuizSessionRecord:
        """
        Create a quiz session from supplied questions or by generating them.

        When ``chat_session_id`` is given the quiz becomes that chat's active
        quiz, so later "question N" messages are answered from it.
        """
        if not (topic and topic.strip()) and not questions:
            raise ValidationError("Either a topic or questions are required")
        if difficulty is not None and difficulty.lower() not in DIFFICULTY_TIERS:
            raise ValidationError(
                f"Invalid difficulty. Valid values: {', '.join(DIFFICULTY_TIERS)}"
            )
        if not 1 <= total_questions <= MAX_QUIZ_LENGTH:
            raise ValidationError(f"total_questions must be between 1 and {MAX_QUIZ_LENGTH}")

        if questions:
            quiz_questions = self._coerce_questions(questions)
        else:
            quiz_questions = await self.generate_quiz(
                topic.strip(), total_questions, user_id, difficulty
            )

        resolved_difficulty = (
            difficulty.lower() if difficulty else (quiz_questions[0].difficulty or None)
        )
        quiz = await self.store.create_quiz_session(
            user_id,
            quiz_questions,
            purpose=purpose,
            topic=topic.strip() if topic else None,
            difficulty=resolved_difficulty,
        )
        logger.info(f"Created {purpose} quiz {quiz.id} ({quiz.total_questions} questions) for user {user_id}")

        if chat_session_id and self.orchestrator is not None:
            await self.orchestrator.attach_quiz(user_id, chat_session_id, quiz.id)
        return quiz

    async def list_quiz_sessions(self, user_id: str) -> List[QuizSessionRecord]:
        return await self.store.list_user_quiz_sessions(user_id)

    async def get_quiz_session(self, user_id: str, quiz_id: str) -> QuizSessionRecord:
        quiz = await self.store.get_quiz_session(quiz_id)
        if quiz is None or quiz.user_id != user_id:
            raise NotFoundError("Quiz session not found")
        return quiz

    async def delete_quiz_session(self, user_id: str, quiz_id: str) -> None:
        await self.get_quiz_session(user_id, quiz_id)
        deleted = await self.store.delete_quiz_session(quiz_id)
        if not deleted:
            raise NotFoundError("Quiz session not found")
        logger.info(f"Deleted quiz {quiz_id} for user {user_id}")

    # ===== GRADING =====

    async def submit_answers(
        self,
        user_id: str,
        quiz_id: str,
        answers: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Grade a set of answers and store them on the quiz session.

        Every stored question gets exactly one graded answer, in question
        order. Unanswered questions are stored as wrong with an empty answer.

        Args:
            user_id: Quiz owner
            quiz_id: Quiz session id
            answers: Items with ``question_id``, ``user_answer`` and optional ``time_taken``

        Returns:
            Dict with ``score``, ``total_questions`` and ``wrong_explanations``;
            upgrade quizzes also report ``passed`` and ``new_difficulty``
        """
        quiz = await self.get_quiz_session(user_id, quiz_id)
        first_completion = not quiz.completed
        known_ids = {question.id for question in quiz.questions}

        # The last answer given for a question counts
        latest: Dict[str, Dict[str, Any]] = {}
        for answer in answers:
            question_id = str(answer["question_id"])
            if question_id not in known_ids:
                logger.warning(f"Ignoring answer for unknown question {question_id} on quiz {quiz_id}")
                continue
            latest[question_id] = answer

        graded: List[QuizAnswer] = []
        wrong_explanations: List[Dict[str, str]] = []
        score = 0
        total_time = 0
        for question in quiz.questions:
            answer = latest.get(question.id, {})
            user_answer = str(answer.get("user_answer", ""))
            time_taken = int(answer.get("time_taken") or 0)
            is_correct = grade_answer(user_answer, question.correct_answer)

            graded.append(QuizAnswer(
                question_id=question.id,
                user_answer=user_answer,
                is_correct=is_correct,
                time_taken=time_taken,
                timestamp=_now(),
            ))
            total_time += time_taken
            if is_correct:
                score += 1
            else:
                wrong_explanations.append({
                    "question": question.question,
                    "correct_answer": question.correct_answer,
                    "explanation": question.explanation,
                })

        await self.store.update_quiz_session(
            quiz_id,
            answers=graded,
            score=score,
            completed=True,
            time_taken=total_time,
            completed_at=_now(),
        )
        logger.info(f"Quiz {quiz_id} graded: {score}/{quiz.total_questions}")

        result: Dict[str, Any] = {
            "score": score,
            "total_questions": quiz.total_questions,
            "wrong_explanations": wrong_explanations,
        }
        if quiz.purpose == "upgrade":
            result.update(await self._apply_upgrade(user_id, quiz, score, first_completion))
        return result

    # ===== UPGRADE FLOW =====

    async def start_upgrade_quiz(
        self,
        user_id: str,
        topic: Optional[str] = None,
    ) -> QuizSessionRecord:
        """Generate the quiz that promotes the user to the next difficulty tier."""
        preferences = await self._preferences(user_id)
        if not topic:
            topic = preferences.preferred_languages[0] if preferences.preferred_languages else "JavaScript"
        return await self.create_quiz_session(
            user_id,
            topic=topic,
            total_questions=UPGRADE_QUIZ_LENGTH,
            difficulty=preferences.difficulty,
            purpose="upgrade",
        )

    async def _apply_upgrade(
        self,
        user_id: str,
        quiz: QuizSessionRecord,
        score: int,
        first_completion: bool,
    ) -> Dict[str, Any]:
        # Strict read: a failed lookup must not write default preferences back
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        preferences = user.preferences or UserPreferences()
        current = preferences.difficulty

        passed = score >= UPGRADE_PASS_SCORE
        new_difficulty = current
        # Only the first completion of an upgrade quiz can promote, one tier above the quiz's own
        if passed and first_completion:
            target = next_difficulty(quiz.difficulty or current)
            if _tier_rank(target) > _tier_rank(current):
                await self.store.update_user_preferences(
                    user_id,
                    preferences.model_copy(update={"difficulty": target}),
                )
                new_difficulty = target
                logger.info(f"User {user_id} promoted to {target} by quiz {quiz.id}")
        return {"passed": passed, "new_difficulty": new_difficulty}

    # ===== PROGRESS =====

    async def progress_overview(self, user_id: str) -> Dict[str, Any]:
        """
        Summarize a user's progress from their completed quiz sessions.

        A topic counts as learned once any completed quiz on it scored at
        least ``MASTERY_PERCENT``. ``time_spent`` is the sum of recorded
        answer times, in seconds.
        """
        quizzes = [quiz for quiz in await self.store.list_user_quiz_sessions(user_id) if quiz.completed]

        topics: Dict[str, Dict[str, Any]] = {}
        total_percent = 0.0
        time_spent = 0
        for quiz in quizzes:
            percent = 100.0 * quiz.score / quiz.total_questions if quiz.total_questions else 0.0
            total_percent += percent
            time_spent += quiz.time_taken
            name = quiz.topic or "general"
            entry = topics.setdefault(name, {"topic": name, "attempts": 0, "best_percent": 0.0})
            entry["attempts"] += 1
            entry["best_percent"] = max(entry["best_percent"], round(percent, 1))

        return {
            "quizzes_completed": len(quizzes),
            "average_percent": round(total_percent / len(quizzes), 1) if quizzes else 0.0,
            "time_spent": time_spent,
            "concepts_learned": sorted(
                name for name, entry in topics.items() if entry["best_percent"] >= MASTERY_PERCENT
            ),
            "topics": sorted(topics.values(), key=lambda entry: entry["topic"]),
        }
