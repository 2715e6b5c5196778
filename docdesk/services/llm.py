from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from ..core.config import Settings
from ..core.logging import get_logger

logger = get_logger(name=__name__)


class LLMServiceError(RuntimeError):
    """Raised when the generative-language API cannot produce a completion."""


def _messages_from_text(
    prompt: str,
    system_prompt: str | None = None,
) -> Sequence[BaseMessage]:
    messages: list[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    messages.append(HumanMessage(content=prompt))
    return messages


@dataclass
class LLMService:
    """Thin LangChain client for the hosted Gemini models.

    Calls are single attempts: authentication, quota and network errors
    surface as ``LLMServiceError`` for the caller to handle.
    """

    settings: Settings
    model: str
    _client: Any = None
    _client_cache: ClassVar[dict[str, Any]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        model: str | None = None,
        client: Any | None = None,
    ) -> "LLMService":
        return cls(settings=settings, model=model or settings.gemini.model, _client=client)

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = self.settings.gemini.api_key
        cache_key = f"{self.model}:{hash(api_key)}"
        cached = LLMService._client_cache.get(cache_key)
        if cached is None:
            try:
                cached = ChatGoogleGenerativeAI(
                    model=self.model,
                    google_api_key=api_key,
                    temperature=self.settings.gemini.temperature,
                )
            except Exception as exc:
                raise LLMServiceError(
                    "Gemini client could not be initialized. Set GEMINI__API_KEY or GOOGLE_API_KEY."
                ) from exc
            LLMService._client_cache[cache_key] = cached
        self._client = cached
        return cached

    async def generate(self, prompt: str, *, system_prompt: str | None = None) -> str:
        """Send one prompt and return the completion text."""
        messages = _messages_from_text(prompt, system_prompt)
        client = self._ensure_client()
        try:
            result = await client.ainvoke(messages)
        except Exception as exc:
            logger.error("llm_generation_failed", model=self.model, error=str(exc))
            raise LLMServiceError(str(exc)) from exc
        return _extract_content(result)


def _extract_content(result: Any) -> str:
    content = result.content if isinstance(result, AIMessage) or hasattr(result, "content") else result
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                parts.append(str(item.get("text", "")))
            else:
                parts.append(str(item))
        return "".join(parts)
    return str(content)


__all__ = ["LLMService", "LLMServiceError"]
