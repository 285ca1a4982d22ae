import pytest

from chatrelay.chunk import Generation, ResponseChunk, ResponseMetadata, Usage
from chatrelay.context import ConversationContext
from chatrelay.events import ExchangeInitiating
from chatrelay.listener import CollectingListener
from chatrelay.message import Message, MessageRole
from chatrelay.models import ModelType
from chatrelay.prompt import Prompt
from chatrelay.provider import ChatClient


class TransportError(Exception):
    """Stands in for a network failure raised mid-stream."""


# ---------------------------------------------------------------------------
# Chunk builder helpers
# ---------------------------------------------------------------------------

def text_chunk(text: str | None, index: int = 0, metadata=None) -> ResponseChunk:
    """Content chunk carrying one generation."""
    return ResponseChunk(
        generations=[Generation(text=text, index=index)],
        metadata=metadata,
    )


def multi_choice_chunk(*texts: str) -> ResponseChunk:
    """Content chunk with one generation per choice index."""
    return ResponseChunk(
        generations=[Generation(text=t, index=i) for i, t in enumerate(texts)],
    )


def usage_chunk(prompt_tokens: int = 3, completion_tokens: int = 5) -> ResponseChunk:
    """Metadata-only chunk, like OpenAI's trailing usage chunk."""
    return ResponseChunk(metadata=ResponseMetadata(
        id="resp_1",
        model="mock-model",
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    ))


# ---------------------------------------------------------------------------
# Mock chat clients
# ---------------------------------------------------------------------------

class MockChatClient(ChatClient):
    """Client that replays pre-queued chunks. No network calls.

    ``chunks`` feeds ``stream()``; ``result`` is returned by ``call()``.
    Setting ``error`` raises it after the queued chunks are delivered.
    """

    system = "mock"

    def __init__(self, chunks=None, result=None, error=None):
        self.chunks: list[ResponseChunk] = list(chunks or [])
        self.result = result
        self.error = error
        self.stream_calls: list[Prompt] = []
        self.call_calls: list[Prompt] = []
        self.closed = False

    def stream(self, prompt):
        self.stream_calls.append(prompt)
        return self._stream()

    async def _stream(self):
        try:
            for chunk in self.chunks:
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True

    async def call(self, prompt):
        self.call_calls.append(prompt)
        if self.error is not None:
            raise self.error
        return self.result


class CallOnlyChatClient(MockChatClient):
    """Client whose transport cannot stream."""

    def stream(self, prompt):
        self.stream_calls.append(prompt)
        raise NotImplementedError("no streaming here")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def make_prompt(text: str = "Say hello") -> Prompt:
    return Prompt(instructions=[Message(role=MessageRole.USER, content=text)])


@pytest.fixture
def listener():
    return CollectingListener()


@pytest.fixture
def initiating():
    return ExchangeInitiating.create(make_prompt())


@pytest.fixture
def make_context():
    """Factory fixture building a conversation around a mock client."""
    def _make(client=None, model_type=None):
        return ConversationContext(
            session_id="s1",
            model_type=model_type or ModelType(name="mock-model"),
            chat_client=client or MockChatClient(),
        )
    return _make
