import logging
import os
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from chatrelay.chunk import (
    Generation,
    ResponseChunk,
    ResponseMetadata,
    Usage,
)
from chatrelay.prompt import ChatOptions, Prompt

logger = logging.getLogger(__name__)


class ChatClient:
    """Transport seam for chat completions.

    ``stream`` returns an async iterator of chunks and must raise
    ``NotImplementedError`` synchronously when the client cannot stream,
    so callers can fall back to ``call``.
    """

    system = "unknown"

    def stream(self, prompt: Prompt) -> AsyncIterator[ResponseChunk]:
        raise NotImplementedError(
            f"{type(self).__name__} does not support streaming"
        )

    async def call(self, prompt: Prompt) -> ResponseChunk:
        raise NotImplementedError


def _to_metadata(response) -> ResponseMetadata:
    usage = getattr(response, "usage", None)
    return ResponseMetadata(
        id=getattr(response, "id", None),
        model=getattr(response, "model", None),
        usage=Usage(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        ) if usage is not None else None,
    )


def chunk_from_stream_event(event) -> ResponseChunk:
    """Map an OpenAI ``ChatCompletionChunk`` onto a :class:`ResponseChunk`.

    The trailing usage chunk (sent when ``include_usage`` is on) has no
    choices and becomes a metadata-only chunk.
    """
    generations = [
        Generation(
            text=choice.delta.content if choice.delta else None,
            index=choice.index,
            finish_reason=choice.finish_reason,
        )
        for choice in (event.choices or [])
    ]
    return ResponseChunk(generations=generations, metadata=_to_metadata(event))


def chunk_from_completion(completion) -> ResponseChunk:
    """Map an OpenAI ``ChatCompletion`` onto a single :class:`ResponseChunk`."""
    generations = [
        Generation(
            text=choice.message.content,
            index=choice.index,
            finish_reason=choice.finish_reason,
        )
        for choice in (completion.choices or [])
    ]
    return ResponseChunk(generations=generations, metadata=_to_metadata(completion))


class OpenAIChatClient(ChatClient):

    system = "openai"

    def __init__(
            self,
            api_key: str | None = None,
            base_url: str | None = None,
            default_options: ChatOptions | None = None,
            timeout: float = 600.0,
            max_retries: int = 5,
    ):
        if not api_key:
            api_key = os.getenv("OPENAI_API_KEY")
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=max_retries,
            timeout=timeout,
        )
        self.default_options = default_options or ChatOptions()

    def _request_kwargs(self, prompt: Prompt) -> tuple[dict, ChatOptions]:
        options = (prompt.options or ChatOptions()).merged_over(self.default_options)
        if not options.model:
            raise ValueError("No model configured for chat request")
        kwargs = {
            "model": options.model,
            "messages": prompt.message_dump(),
        }
        for name in ("temperature", "top_p", "n", "reasoning_effort"):
            value = getattr(options, name)
            if value is not None:
                kwargs[name] = value
        return kwargs, options

    def stream(self, prompt: Prompt) -> AsyncIterator[ResponseChunk]:
        return self._stream(prompt)

    async def _stream(self, prompt: Prompt) -> AsyncIterator[ResponseChunk]:
        kwargs, options = self._request_kwargs(prompt)
        if options.stream_usage:
            kwargs["stream_options"] = {"include_usage": True}
        logger.debug(f"Streaming chat completion from {kwargs['model']}")
        response = await self.client.chat.completions.create(stream=True, **kwargs)
        async for event in response:
            yield chunk_from_stream_event(event)

    async def call(self, prompt: Prompt) -> ResponseChunk:
        kwargs, _ = self._request_kwargs(prompt)
        logger.debug(f"Requesting chat completion from {kwargs['model']}")
        completion = await self.client.chat.completions.create(**kwargs)
        return chunk_from_completion(completion)


class OpenRouterChatClient(OpenAIChatClient):

    system = "openrouter"

    def __init__(
            self,
            api_key: str | None = None,
            default_options: ChatOptions | None = None,
            timeout: float = 180.0,
            max_retries: int = 5,
    ):
        if not api_key:
            api_key = os.getenv("OPENROUTER_API_KEY")
        super().__init__(
            api_key=api_key,
            base_url="https://openrouter.ai/api/v1",
            default_options=default_options,
            timeout=timeout,
            max_retries=max_retries,
        )
