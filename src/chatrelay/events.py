"""Lifecycle events emitted for one chat exchange.

An exchange starts from an :class:`ExchangeInitiating` event created by
the caller.  Once the response source is subscribed to, it becomes an
:class:`ExchangeStarted` event bound to a :class:`Subscription`, and every
later event is derived from that one.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chatrelay.chunk import ChatResponse, ResponseChunk
from chatrelay.streaming import ChoiceSnapshot

if TYPE_CHECKING:
    from chatrelay.prompt import Prompt


class Subscription:
    """Cancellation handle for an in-flight exchange."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ExchangeEvent:
    """Base for all exchange events."""

    exchange_id: str


@dataclass
class ExchangeInitiating(ExchangeEvent):
    """A user prompt about to be sent."""

    prompt: Prompt | None = None

    @classmethod
    def create(cls, prompt: Prompt | None) -> ExchangeInitiating:
        return cls(exchange_id=uuid.uuid4().hex, prompt=prompt)

    def started(self, subscription: Subscription) -> ExchangeStarted:
        return ExchangeStarted(
            exchange_id=self.exchange_id,
            prompt=self.prompt,
            subscription=subscription,
        )


@dataclass
class ExchangeStarted(ExchangeEvent):
    """The response source has been subscribed to."""

    prompt: Prompt | None = None
    subscription: Subscription = field(default_factory=Subscription)

    def cancel(self) -> None:
        self.subscription.cancel()

    def response_arriving(
        self, chunk: ResponseChunk, partial: list[ChoiceSnapshot],
    ) -> ResponseArriving:
        return ResponseArriving(
            exchange_id=self.exchange_id,
            prompt=self.prompt,
            chunk=chunk,
            partial=partial,
        )

    def response_arrived(self, response: ChatResponse) -> ResponseArrived:
        return ResponseArrived(
            exchange_id=self.exchange_id,
            prompt=self.prompt,
            response=response,
        )

    def failed(self, cause: BaseException) -> ExchangeFailed:
        return ExchangeFailed(
            exchange_id=self.exchange_id,
            prompt=self.prompt,
            cause=cause,
        )


@dataclass
class ResponseArriving(ExchangeEvent):
    """A partial chunk arrived; ``partial`` is the cumulative text so far."""

    prompt: Prompt | None = None
    chunk: ResponseChunk | None = None
    partial: list[ChoiceSnapshot] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.partial[0].text if self.partial else ""


@dataclass
class ResponseArrived(ExchangeEvent):
    """Final event of a successful exchange."""

    prompt: Prompt | None = None
    response: ChatResponse = field(default_factory=ChatResponse)

    @property
    def text(self) -> str:
        return self.response.text


@dataclass
class ExchangeFailed(ExchangeEvent):
    """Final event of a failed exchange, wrapping the original cause."""

    prompt: Prompt | None = None
    cause: BaseException | None = None
