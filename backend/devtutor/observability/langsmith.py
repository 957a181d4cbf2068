"""LangSmith tracing setup and run-config helpers."""

import logging
import os
from typing import Any, Dict, Iterable, Optional

from ..core.config import Settings

logger = logging.getLogger(__name__)


def initialize_langsmith(settings: Settings) -> bool:
    """
    Export LangSmith tracing environment variables from settings.

    Returns:
        True when tracing is requested and an API key is present, else False.
    """
    tracing_requested = bool(settings.LANGSMITH_TRACING)
    tracing_enabled = tracing_requested and bool(settings.LANGSMITH_API_KEY.strip())

    os.environ["LANGSMITH_TRACING"] = "true" if tracing_enabled else "false"

    if settings.LANGSMITH_API_KEY:
        os.environ["LANGSMITH_API_KEY"] = settings.LANGSMITH_API_KEY
    if settings.LANGSMITH_ENDPOINT:
        os.environ["LANGSMITH_ENDPOINT"] = settings.LANGSMITH_ENDPOINT
    if settings.LANGSMITH_PROJECT:
        os.environ["LANGSMITH_PROJECT"] = settings.LANGSMITH_PROJECT

    if tracing_enabled:
        logger.info(
            "LangSmith tracing enabled (project=%s, endpoint=%s)",
            settings.LANGSMITH_PROJECT,
            settings.LANGSMITH_ENDPOINT,
        )
    elif tracing_requested:
        logger.warning("LangSmith tracing requested but LANGSMITH_API_KEY is empty")
    else:
        logger.info("LangSmith tracing disabled")

    return tracing_enabled


def build_trace_config(
    thread_id: str,
    tags: Optional[Iterable[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a LangGraph run config carrying the thread id, tags and metadata."""
    config: Dict[str, Any] = {"configurable": {"thread_id": thread_id}}
    if tags:
        config["tags"] = list(tags)
    if metadata:
        config["metadata"] = dict(metadata)
    return config
