"""Prompt templates for quiz generation."""

QUIZ_GENERATION_MAX_TOKENS = 1200
QUIZ_GENERATION_TEMPERATURE = 0.8

QUIZ_GENERATION_PROMPT = """You are an expert programming tutor in Quiz Mode. Create {total_questions} multiple choice questions about "{topic}" for a {difficulty_upper} level student using {languages}.

Make the questions appropriately challenging for a {difficulty_label} level.
Each question must have exactly 4 options (a, b, c, d), the letter of the correct answer and a brief explanation.

Respond ONLY with a JSON array of exactly {total_questions} objects in this format:
[{{"question": "...", "options": {{"a": "...", "b": "...", "c": "...", "d": "..."}}, "answer": "a", "explanation": "..."}}]"""
