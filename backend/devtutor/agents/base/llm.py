"""Completion client for the OpenAI-compatible chat backend.

``get_llm`` builds the LangChain chat model from settings; ``CompletionClient``
wraps it with a timeout and converts every failure into
``CompletionServiceError`` so mode executors can fall back deterministically.
"""

import asyncio
import logging
from typing import Any, Optional

from langchain_openai import ChatOpenAI

from ...core.config import get_settings
from ...core.errors import CompletionServiceError

logger = logging.getLogger(__name__)


def _resolve_api_key(base_url: str, api_key: str) -> str:
    """Provide a placeholder API key for local OpenAI-compatible servers."""
    if api_key:
        return api_key
    base = (base_url or "").lower()
    if "127.0.0.1" in base or "localhost" in base:
        return "local-llm"
    return ""


def get_llm(
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
) -> ChatOpenAI:
    """
    Get a configured chat model.

    Args:
        temperature: Override default temperature (0.0-1.0)
        model: Override default model name
        max_tokens: Override default max tokens

    Returns:
        Configured ChatOpenAI instance
    """
    settings = get_settings()

    return ChatOpenAI(
        base_url=settings.LLM_BASE_URL,
        api_key=_resolve_api_key(settings.LLM_BASE_URL, settings.LLM_API_KEY),
        model=model or settings.LLM_MODEL,
        temperature=temperature if temperature is not None else settings.LLM_TEMPERATURE,
        max_tokens=max_tokens or settings.LLM_MAX_TOKENS,
        timeout=settings.COMPLETION_TIMEOUT_SECONDS,
    )


def _content_to_text(response: Any) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        # Some providers return content blocks
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(str(block.get("text", "")))
            else:
                parts.append(str(block))
        return "".join(parts)
    return str(content)


class CompletionClient:
    """
    Text completion collaborator shared by all executors.

    The chat model is created lazily so the application can start without
    credentials; tests pass a fake chat model instead.
    """

    def __init__(self, chat_model: Optional[Any] = None, timeout: float = 30.0):
        self._chat_model = chat_model
        self.timeout = timeout

    @property
    def chat_model(self) -> Any:
        if self._chat_model is None:
            self._chat_model = get_llm()
        return self._chat_model

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Run a single completion.

        Args:
            prompt: Full prompt text
            max_tokens: Output budget for this call
            temperature: Sampling temperature for this call

        Returns:
            The completion text (may be empty)

        Raises:
            CompletionServiceError: On any failure or timeout
        """
        try:
            response = await asyncio.wait_for(
                self.chat_model.ainvoke(
                    prompt,
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Completion timed out after {self.timeout}s")
            raise CompletionServiceError("Completion timed out") from e
        except Exception as e:
            logger.warning(f"Completion failed: {e}")
            raise CompletionServiceError(str(e) or "Completion failed") from e

        return _content_to_text(response)
