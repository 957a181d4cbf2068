"""Base infrastructure shared by the tutoring agents."""

from .llm import CompletionClient, get_llm

__all__ = [
    "CompletionClient",
    "get_llm",
]
