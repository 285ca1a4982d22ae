"""Turns a response chunk source into exchange lifecycle notifications.

An :class:`ExchangeSequencer` handles exactly one exchange::

    IDLE -> STARTED -> ARRIVING* -> ARRIVED
                  \\-------------> FAILED

``observe()`` is the driver: it subscribes, pushes every chunk through
the matching callback, and finishes with ``on_complete`` or
``on_error``.  The callbacks are public so other drivers (a thread
reading from a queue, for example) can run the same state machine.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import TYPE_CHECKING

from chatrelay.chunk import ChatResponse, Generation, ResponseChunk
from chatrelay.events import ExchangeInitiating, ExchangeStarted, Subscription
from chatrelay.instrumentation import exchange_span, record_error, record_usage
from chatrelay.listener import ExchangeListener
from chatrelay.message import assistant_message
from chatrelay.streaming import CompletionAggregator

if TYPE_CHECKING:
    from chatrelay.context import ConversationContext

logger = logging.getLogger(__name__)


class ExchangeState(Enum):
    IDLE = "idle"
    STARTED = "started"
    ARRIVING = "arriving"
    ARRIVED = "arrived"
    FAILED = "failed"


class ExchangeSequencer:
    """State machine for one exchange.

    Args:
        listener: Receives the lifecycle notifications.
        event: The initiating event; becomes ``ExchangeStarted`` on
            subscription.
        aggregator: Accumulates chunk text per choice. A fresh one is
            created when omitted.
    """

    def __init__(
        self,
        listener: ExchangeListener,
        event: ExchangeInitiating,
        aggregator: CompletionAggregator | None = None,
    ):
        self.listener = listener
        self.initiating = event
        self.aggregator = aggregator or CompletionAggregator()
        self.state = ExchangeState.IDLE
        self.event: ExchangeStarted | None = None
        self.response: ChatResponse | None = None
        self._completed = False

    @property
    def terminated(self) -> bool:
        return self.state in (ExchangeState.ARRIVED, ExchangeState.FAILED)

    # ------------------------------------------------------------------
    # Lifecycle callbacks
    # ------------------------------------------------------------------

    def on_subscribe(self, subscription: Subscription) -> ExchangeStarted:
        if self.state is not ExchangeState.IDLE:
            raise RuntimeError(
                "ExchangeSequencer handles a single exchange; create a new one"
            )
        self.event = self.initiating.started(subscription)
        self.state = ExchangeState.STARTED
        logger.info(f"Exchange {self.event.exchange_id} started")
        self.listener.exchange_started(self.event)
        return self.event

    def on_next_chunk(self, chunk: ResponseChunk) -> None:
        """Streaming path: one partial chunk."""
        if not self._accepts("chunk"):
            return
        is_content = self.aggregator.is_content(chunk)
        partial = self.aggregator.merge(chunk)
        if is_content:
            self.state = ExchangeState.ARRIVING
            self.listener.response_arriving(
                self.event.response_arriving(chunk, partial)
            )

    def on_next(self, chunk: ResponseChunk) -> None:
        """Single-shot path: the one complete chunk."""
        if not self._accepts("result"):
            return
        is_content = self.aggregator.is_content(chunk)
        partial = self.aggregator.merge(chunk)
        if not is_content:
            return
        self.response = ChatResponse(
            generations=[Generation(
                text=partial[0].text,
                index=0,
                finish_reason=chunk.result.finish_reason,
            )],
            metadata=self.aggregator.last_metadata,
        )
        self.state = ExchangeState.ARRIVED
        self.listener.response_arrived(self.event.response_arrived(self.response))

    def on_complete(self, context: ConversationContext) -> None:
        if self.state in (ExchangeState.IDLE, ExchangeState.FAILED) or self._completed:
            logger.warning(f"Ignoring completion in state {self.state.value}")
            return
        self._completed = True
        generations = self.aggregator.finalize()
        if generations:
            context.add_chat_message(assistant_message(generations[0].text))
        if self.state is ExchangeState.ARRIVED:
            # single-shot path already notified
            return
        self.response = ChatResponse(
            generations=generations,
            metadata=self.aggregator.last_metadata,
        )
        self.state = ExchangeState.ARRIVED
        logger.info(f"Exchange {self.event.exchange_id} completed")
        self.listener.response_arrived(self.event.response_arrived(self.response))

    def on_error(self, cause: BaseException) -> None:
        if not self._accepts("error"):
            return
        self.state = ExchangeState.FAILED
        logger.error(
            f"Exchange {self.event.exchange_id} failed: {cause}",
            exc_info=cause,
        )
        self.listener.exchange_failed(self.event.failed(cause))

    def _accepts(self, signal: str) -> bool:
        if self.state is ExchangeState.IDLE:
            logger.warning(f"Ignoring {signal} before subscription")
            return False
        if self.terminated:
            logger.warning(f"Ignoring {signal} after exchange {self.state.value}")
            return False
        return True

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def observe(
        self,
        source: AsyncIterator[ResponseChunk],
        context: ConversationContext,
        *,
        streaming: bool = True,
        system: str = "unknown",
        model: str = "",
    ) -> AsyncIterator[ResponseChunk]:
        """Drive the exchange over *source*, re-yielding each chunk.

        Nothing happens until the returned iterator is first advanced.
        Only errors raised while pulling from *source* are reported
        through ``exchange_failed``; they are then re-raised to the
        consumer.  Exceptions from listener hooks or thrown in by the
        consumer propagate untouched.  Cancelling the subscription
        stops delivery without a terminal notification.
        """
        subscription = Subscription()
        async with exchange_span(system, model, streaming) as span:
            self.on_subscribe(subscription)
            chunks = source.__aiter__()
            try:
                while not subscription.cancelled:
                    try:
                        chunk = await chunks.__anext__()
                    except StopAsyncIteration:
                        break
                    except Exception as e:
                        record_error(span, e)
                        self.on_error(e)
                        raise
                    if streaming:
                        self.on_next_chunk(chunk)
                    else:
                        self.on_next(chunk)
                    yield chunk
            finally:
                aclose = getattr(chunks, "aclose", None)
                if aclose is not None:
                    await aclose()

            if subscription.cancelled:
                logger.info(f"Exchange {self.event.exchange_id} cancelled")
                return
            self.on_complete(context)
            record_usage(span, self.aggregator.last_metadata)
