"""
Test normalization of generated quiz responses.
"""

import json

from devtutor.agents.quiz.normalizer import (
    extract_json_array,
    normalize_options,
    normalize_quiz_response,
)


class TestNormalizeOptions:
    """Options always come out as an ordered list of four strings."""

    def test_labelled_map(self):
        assert normalize_options({"a": "X", "b": "Y", "c": "Z", "d": "W"}) == ["X", "Y", "Z", "W"]

    def test_labelled_map_upper_case_keys(self):
        assert normalize_options({"A": "X", "B": "Y", "C": "Z", "D": "W"}) == ["X", "Y", "Z", "W"]

    def test_labelled_map_out_of_order(self):
        assert normalize_options({"d": "W", "b": "Y", "a": "X", "c": "Z"}) == ["X", "Y", "Z", "W"]

    def test_list_is_unchanged(self):
        options = ["X", "Y", "Z", "W"]
        assert normalize_options(options) == options
        assert normalize_options(normalize_options(options)) == options

    def test_list_of_text_objects(self):
        raw = [{"text": "X"}, {"text": "Y"}, {"text": "Z"}, {"text": "W"}]
        assert normalize_options(raw) == ["X", "Y", "Z", "W"]

    def test_missing_labels_become_empty(self):
        assert normalize_options({"a": "X", "c": "Z"}) == ["X", "", "Z", ""]

    def test_short_list_is_padded(self):
        assert normalize_options(["X", "Y"]) == ["X", "Y", "", ""]

    def test_long_list_is_truncated(self):
        assert normalize_options(["1", "2", "3", "4", "5"]) == ["1", "2", "3", "4"]

    def test_missing_options(self):
        assert normalize_options(None) == ["", "", "", ""]


class TestExtractJsonArray:
    def test_fenced_json(self):
        text = '```json\n[{"question": "Q"}]\n```'
        assert extract_json_array(text) == [{"question": "Q"}]

    def test_array_inside_prose(self):
        text = 'Here is your quiz:\n[{"question": "Q"}]\nGood luck!'
        assert extract_json_array(text) == [{"question": "Q"}]

    def test_bracketed_prose_before_array(self):
        text = 'Here are [3] questions: [{"question": "Q"}]'
        assert extract_json_array(text) == [{"question": "Q"}]

    def test_bracket_after_array(self):
        text = '[{"question": "Q"}]\nSee [docs] for more.'
        assert extract_json_array(text) == [{"question": "Q"}]

    def test_no_array(self):
        assert extract_json_array("Sorry, I cannot help with that.") is None

    def test_invalid_json(self):
        assert extract_json_array("[{question: 'unquoted'}]") is None


class TestNormalizeQuizResponse:
    def test_maps_to_canonical_questions(self):
        raw = [
            {
                "question": "What is 2 + 2?",
                "options": {"a": "3", "b": "4", "c": "5", "d": "22"},
                "answer": "b",
                "explanation": "Basic arithmetic.",
            },
            {
                "question": "Which is a list?",
                "options": ["()", "[]", "{}", "<>"],
                "answer": "b",
                "explanation": "Square brackets.",
            },
        ]
        questions = normalize_quiz_response(json.dumps(raw), "basics", "beginner")

        assert len(questions) == 2
        first = questions[0]
        assert first.type == "mcq"
        assert first.question == "What is 2 + 2?"
        assert first.options == ["3", "4", "5", "22"]
        assert first.correct_answer == "b"
        assert first.explanation == "Basic arithmetic."
        assert first.difficulty == "beginner"
        assert first.concepts == ["basics"]
        assert questions[1].options == ["()", "[]", "{}", "<>"]
        assert first.id != questions[1].id

    def test_no_array_returns_placeholder(self):
        questions = normalize_quiz_response("no quiz today", "closures", "advanced")
        assert len(questions) == 1
        assert questions[0].question == "No quiz generated for topic: closures"
        assert len(questions[0].options) == 4
        assert questions[0].difficulty == "advanced"

    def test_invalid_json_returns_placeholder(self):
        questions = normalize_quiz_response("[not json]", "closures", "beginner")
        assert questions[0].question == "No quiz generated for topic: closures"

    def test_unusable_items_are_skipped(self):
        text = json.dumps([
            "just a string",
            {"options": ["a", "b", "c", "d"]},
            {"question": "Kept", "options": ["1", "2", "3", "4"], "answer": "a"},
        ])
        questions = normalize_quiz_response(text, "misc", "beginner")
        assert [q.question for q in questions] == ["Kept"]

    def test_empty_array_returns_placeholder(self):
        questions = normalize_quiz_response("[]", "loops", "beginner")
        assert len(questions) == 1
        assert questions[0].question == "No quiz generated for topic: loops"
