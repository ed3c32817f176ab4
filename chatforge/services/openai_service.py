"""OpenAI-compatible LLM service used by the chat relay."""
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple
from openai import OpenAI, OpenAIError
from chatforge.core.config import settings

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """The model provider rejected or failed a request."""


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class StreamChunk:
    """One piece of a streamed completion: a text delta and/or final usage."""

    text: str = ""
    usage: Optional[TokenUsage] = None


def resolve_model(model_config: Optional[Dict[str, str]]) -> Tuple[str, str]:
    """
    Pick the provider and model id for a project's model configuration.

    OpenRouter model ids are namespaced ("vendor/model"); anything else
    stored for an OpenRouter project falls back to the default model.
    """
    config = model_config or {}
    provider = config.get("provider") or settings.DEFAULT_PROVIDER
    model = (config.get("model") or "").strip()

    if provider == "openai":
        return provider, model or settings.DEFAULT_OPENAI_MODEL

    if "/" not in model:
        model = settings.DEFAULT_MODEL
    return "openrouter", model


class OpenAIService:
    """Service for streaming chat completions from OpenAI or OpenRouter."""

    def __init__(self):
        """Clients are created lazily, one per provider."""
        self._clients: Dict[str, OpenAI] = {}

    def _client(self, provider: str) -> OpenAI:
        if provider not in self._clients:
            if provider == "openrouter":
                client = OpenAI(
                    api_key=settings.OPENROUTER_API_KEY,
                    base_url=settings.OPENROUTER_BASE_URL,
                )
            else:
                client = OpenAI(
                    api_key=settings.OPENAI_API_KEY,
                    base_url=settings.OPENAI_BASE_URL,
                )
            self._clients[provider] = client
        return self._clients[provider]

    def stream_chat(
        self,
        provider: str,
        model: str,
        system_prompt: str,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
    ) -> Iterator[StreamChunk]:
        """
        Start a streamed chat completion.

        The request is sent eagerly so that a refused request surfaces as
        ``ProviderError`` before the caller starts relaying. Errors after
        that point are raised from the returned iterator.

        Args:
            provider: "openai" or "openrouter"
            model: Provider model id
            system_prompt: Assembled system instruction
            messages: Conversation as ``{"role", "content"}`` dicts
            max_tokens: Cap on generated tokens, CHAT_MAX_OUTPUT_TOKENS if omitted

        Returns:
            Iterator of StreamChunk; the last one may carry usage only
        """
        if max_tokens is None:
            max_tokens = settings.CHAT_MAX_OUTPUT_TOKENS

        logger.debug("Starting %s completion model=%s turns=%d", provider, model, len(messages))
        try:
            stream = self._client(provider).chat.completions.create(
                model=model,
                messages=[{"role": "system", "content": system_prompt}, *messages],
                max_tokens=max_tokens,
                stream=True,
                stream_options={"include_usage": True},
            )
        except OpenAIError as e:
            raise ProviderError(f"Error starting completion from {provider}: {str(e)}") from e

        return self._iter_chunks(stream, provider)

    def _iter_chunks(self, stream, provider: str) -> Iterator[StreamChunk]:
        try:
            for chunk in stream:
                text = ""
                if chunk.choices:
                    text = chunk.choices[0].delta.content or ""

                usage = None
                if getattr(chunk, "usage", None):
                    usage = TokenUsage(
                        prompt_tokens=chunk.usage.prompt_tokens or 0,
                        completion_tokens=chunk.usage.completion_tokens or 0,
                        total_tokens=chunk.usage.total_tokens or 0,
                    )

                if text or usage:
                    yield StreamChunk(text=text, usage=usage)
        except OpenAIError as e:
            raise ProviderError(f"Error streaming completion from {provider}: {str(e)}") from e
