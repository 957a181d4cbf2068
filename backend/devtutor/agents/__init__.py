"""devtutor agents package.

- tutor: mode routing, mode executors and the dialogue orchestrator graph
- quiz: quiz generation, normalization and grading
"""

from .base import CompletionClient, get_llm

__all__ = [
    "CompletionClient",
    "get_llm",
]
