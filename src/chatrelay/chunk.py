"""Provider-neutral response chunks.

Chat clients translate whatever their SDK returns into
:class:`ResponseChunk` objects.  A chunk carries zero or more
:class:`Generation` entries (one per choice index) and optional
:class:`ResponseMetadata`.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Generation:
    """One choice's output inside a chunk, or a finalized message."""

    text: str | None = None
    index: int = 0
    finish_reason: str | None = None


@dataclass
class Usage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass
class ResponseMetadata:
    """Opaque-to-the-core response metadata (ids, model, usage)."""

    id: str | None = None
    model: str | None = None
    usage: Usage | None = None


@dataclass
class ResponseChunk:
    """One unit of delivery from a chat client, partial or complete."""

    generations: list[Generation] = field(default_factory=list)
    metadata: ResponseMetadata | None = None

    @property
    def result(self) -> Generation | None:
        """The first generation, or ``None`` for metadata-only chunks."""
        return self.generations[0] if self.generations else None


@dataclass
class ChatResponse:
    """A finalized response handed to listeners."""

    generations: list[Generation] = field(default_factory=list)
    metadata: ResponseMetadata | None = None

    @property
    def result(self) -> Generation | None:
        return self.generations[0] if self.generations else None

    @property
    def text(self) -> str:
        return (self.result.text or "") if self.result else ""
