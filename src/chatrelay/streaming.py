"""Per-choice accumulation of streamed response text.

A :class:`FragmentStore` keeps one :class:`ResponseFragment` per choice
index.  The :class:`CompletionAggregator` classifies incoming
:class:`~chatrelay.chunk.ResponseChunk` objects and folds them into the
store.

One exchange has a single writer, but ``snapshot()`` may be polled from
another thread (a UI refresh timer, for example).  All access to the
slot map goes through one lock, and a slot is only published together
with its first piece of text.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from chatrelay.chunk import Generation, ResponseChunk, ResponseMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChoiceSnapshot:
    """Immutable view of one choice's text at a point in time."""

    index: int
    text: str


@dataclass
class ResponseFragment:
    """Growable text buffer plus last-seen metadata for one choice."""

    index: int
    parts: list[str] = field(default_factory=list)
    last_metadata: ResponseMetadata | None = None

    @property
    def text(self) -> str:
        return "".join(self.parts)


class FragmentStore:
    """Sorted map of choice index to :class:`ResponseFragment`."""

    def __init__(self) -> None:
        self._fragments: dict[int, ResponseFragment] = {}
        self._metadata: dict[int, ResponseMetadata] = {}
        self._lock = threading.Lock()
        self._finalized = False

    def append(
        self,
        index: int,
        text_delta: str | None,
        metadata: ResponseMetadata | None = None,
    ) -> None:
        if index < 0:
            raise ValueError(f"choice index must be non-negative, got {index}")
        with self._lock:
            fragment = self._fragments.get(index)
            if fragment is None:
                fragment = ResponseFragment(index=index, parts=[text_delta or ""])
                self._fragments[index] = fragment
            else:
                fragment.parts.append(text_delta or "")
            if metadata is not None:
                fragment.last_metadata = metadata
                self._metadata[index] = metadata

    def record_metadata_only(self, metadata: ResponseMetadata) -> None:
        """Update the index-0 metadata slot without touching any text."""
        with self._lock:
            self._metadata[0] = metadata
            if 0 in self._fragments:
                self._fragments[0].last_metadata = metadata

    def metadata(self, index: int = 0) -> ResponseMetadata | None:
        with self._lock:
            return self._metadata.get(index)

    def indices(self) -> list[int]:
        with self._lock:
            return sorted(self._fragments)

    def snapshot(self) -> list[ChoiceSnapshot]:
        with self._lock:
            return [
                ChoiceSnapshot(index=i, text=self._fragments[i].text)
                for i in sorted(self._fragments)
            ]

    def finalize(self) -> list[Generation]:
        """Collapse the store into the single canonical generation.

        Only the first (lowest-index) buffer is surfaced, even when
        several choices were streamed.  Returns an empty list when no
        content arrived.
        """
        if self._finalized:
            logger.warning("finalize() called more than once for one exchange")
        self._finalized = True
        choices = self.snapshot()
        if not choices:
            return []
        return [Generation(text=choices[0].text, index=0)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._fragments)


class CompletionAggregator:
    """Classifies chunks and merges them into a :class:`FragmentStore`."""

    def __init__(self, store: FragmentStore | None = None) -> None:
        self.store = store if store is not None else FragmentStore()

    @staticmethod
    def is_content(chunk: ResponseChunk) -> bool:
        return chunk.result is not None

    @staticmethod
    def is_metadata_only(chunk: ResponseChunk) -> bool:
        return chunk.result is None and chunk.metadata is not None

    def merge(self, chunk: ResponseChunk) -> list[ChoiceSnapshot]:
        """Fold *chunk* into the store and return the current snapshot."""
        if self.is_content(chunk):
            for generation in chunk.generations:
                self.store.append(
                    generation.index, generation.text, chunk.metadata,
                )
        elif self.is_metadata_only(chunk):
            logger.debug("Metadata-only chunk received")
            self.store.record_metadata_only(chunk.metadata)
        else:
            logger.debug("Ignoring chunk with neither result nor metadata")
        return self.store.snapshot()

    def snapshot(self) -> list[ChoiceSnapshot]:
        return self.store.snapshot()

    def finalize(self) -> list[Generation]:
        return self.store.finalize()

    @property
    def last_metadata(self) -> ResponseMetadata | None:
        return self.store.metadata(0)
