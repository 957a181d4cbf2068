"""
Test quiz follow-up parsing and formatting.
"""

import pytest

from devtutor.agents.tutor.followup import (
    answer_followup,
    correct_option_index,
    named_option_letters,
    parse_question_reference,
)
from devtutor.db.schemas import QuizQuestion


@pytest.fixture
def questions():
    return [
        QuizQuestion(
            id="q1",
            question="What does map() return?",
            options=["undefined", "A new array", "The same array", "A number"],
            correct_answer="b",
            explanation="map() builds a new array.",
        ),
        QuizQuestion(
            id="q2",
            question="Which keyword declares a constant?",
            options=["var", "let", "const", "static"],
            correct_answer="c",
            explanation="const declares a block-scoped constant.",
        ),
    ]


class TestParseQuestionReference:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Explain question 2", 2),
            ("why is QUESTION3 wrong", 3),
            ("what about q1?", 1),
            ("Q12 please", 12),
            ("what is the answer to 4", 4),
        ],
    )
    def test_references(self, text, expected):
        assert parse_question_reference(text) == expected

    @pytest.mark.parametrize("text", ["Explain closures", "I have a question", "", "queue"])
    def test_non_references(self, text):
        assert parse_question_reference(text) is None


class TestNamedOptionLetters:
    def test_capital_letters(self):
        assert named_option_letters("Why not A or C?") == ["A", "C"]

    def test_option_prefix(self):
        assert named_option_letters("is option d also right?") == ["D"]

    def test_parenthesised_letter(self):
        assert named_option_letters("I picked a) there") == ["A"]

    def test_article_a_is_not_an_option(self):
        assert named_option_letters("explain question 2 in a simple way") == []

    def test_duplicates_collapse(self):
        assert named_option_letters("B? really B?") == ["B"]


class TestAnswerFollowup:
    def test_formats_question(self, questions):
        response = answer_followup(questions, 2, "explain question 2")
        assert response == (
            "Q2: Which keyword declares a constant?\n\n"
            "Options:\nA) var\nB) let\nC) const\nD) static\n\n"
            "Correct Answer: c\n\n"
            "Explanation: const declares a block-scoped constant."
        )

    def test_why_not_clause_for_wrong_letters(self, questions):
        response = answer_followup(questions, 1, "question 1: why not A or B?")
        assert "Option A) undefined is not correct because" in response
        assert "Option B)" not in response.split("Explanation:")[1]

    def test_out_of_range(self, questions):
        response = answer_followup(questions, 5, "question 5")
        assert response == (
            "Sorry, your current quiz does not have a question 5. "
            "Please check the question number and try again."
        )

    def test_question_zero_is_out_of_range(self, questions):
        assert answer_followup(questions, 0, "question 0").startswith("Sorry")

    def test_correct_index_from_option_text(self):
        question = QuizQuestion(
            id="q",
            question="Pick four",
            options=["1", "2", "3", "4"],
            correct_answer="4",
        )
        assert correct_option_index(question) == 3
