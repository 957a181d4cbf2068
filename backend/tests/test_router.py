"""
Test keyword routing to tutoring modes.
"""

import pytest

from devtutor.agents.tutor.router import describe_modes, determine_mode
from devtutor.agents.tutor.state import MODE_TAGS


class TestDetermineMode:
    """Test the ordered keyword groups."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Can you review this function?", "code-feedback"),
            ("I need help to DEBUG my loop", "code-feedback"),
            ("Give me a quiz on arrays", "quiz-generator"),
            ("I want to practice recursion", "quiz-generator"),
            ("Show my progress", "mistake-analyzer"),
            ("What mistake do I keep making?", "mistake-analyzer"),
            ("Explain closures", "concept-explainer"),
        ],
    )
    def test_keyword_groups(self, text, expected):
        assert determine_mode(text) == expected

    def test_first_group_wins(self):
        """Code keywords beat quiz and progress keywords."""
        assert determine_mode("quiz me on code review") == "code-feedback"
        assert determine_mode("track my quiz results") == "quiz-generator"

    def test_substring_match(self):
        """Keywords match inside longer words."""
        assert determine_mode("testing strategies") == "quiz-generator"
        assert determine_mode("barcode scanner") == "code-feedback"

    def test_empty_input_defaults_to_explainer(self):
        assert determine_mode("") == "concept-explainer"
        assert determine_mode(None) == "concept-explainer"

    def test_always_returns_a_mode_tag(self):
        for text in ["", "hello", "QUIZ", "progress code", "¿qué es una closure?"]:
            assert determine_mode(text) in MODE_TAGS


class TestDescribeModes:
    def test_lists_every_mode(self):
        nodes = describe_modes()
        assert [node["type"] for node in nodes] == list(MODE_TAGS)
        for node in nodes:
            assert node["name"]
            assert node["description"]

    def test_descriptions(self):
        by_type = {node["type"]: node for node in describe_modes()}
        assert by_type["code-feedback"]["name"] == "Code Feedback"
        assert "quizzes" in by_type["quiz-generator"]["description"]
