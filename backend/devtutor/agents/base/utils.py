"""Shared utilities for agent implementations."""

import functools
import logging
import re
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCED_BLOCK = re.compile(r"```[\w+#.-]*\s*\n?(.*?)```", re.DOTALL)


def log_agent_action(agent_name: str):
    """
    Decorator to log async graph node actions.

    Args:
        agent_name: Name of the agent for logging

    Usage:
        @log_agent_action("orchestrator")
        async def my_node(state):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger.debug(f"[{agent_name}] Starting {func.__name__}")
            try:
                result = await func(*args, **kwargs)
                logger.debug(f"[{agent_name}] Completed {func.__name__}")
                return result
            except Exception as e:
                logger.error(f"[{agent_name}] Error in {func.__name__}: {e}")
                raise

        return wrapper

    return decorator


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences around a model response."""
    if "```json" in text:
        text = text.split("```json", 1)[1]
        text = text.split("```", 1)[0]
    elif text.strip().startswith("```"):
        text = text.strip()[3:]
        text = text.split("```", 1)[0]
    return text.strip()


def extract_code_block(text: str) -> Optional[str]:
    """Return the body of the first fenced code block in ``text``, if any."""
    match = _FENCED_BLOCK.search(text or "")
    if not match:
        return None
    code = match.group(1).strip()
    return code or None


def truncate_text(text: Any, max_length: int = 80, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length for log lines.

    Args:
        text: Text to truncate
        max_length: Maximum length (default 80)
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    text = str(text)
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
