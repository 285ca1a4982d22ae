import logging
from collections.abc import AsyncIterator

from chatrelay.chunk import ChatResponse, ResponseChunk
from chatrelay.context import ConversationContext
from chatrelay.events import ExchangeInitiating
from chatrelay.listener import ExchangeListener
from chatrelay.prompt import Prompt, maybe_override_chat_options
from chatrelay.provider import ChatClient
from chatrelay.sequencer import ExchangeSequencer

logger = logging.getLogger(__name__)


class PromptRequiredError(ValueError):
    """Raised when an exchange is started without a prompt."""


async def _single_shot(client: ChatClient, prompt: Prompt) -> AsyncIterator[ResponseChunk]:
    yield await client.call(prompt)


class ChatHandler:
    """Entry point for sending one prompt and observing its response.

    ``handle()`` returns a lazy async iterator of raw chunks; lifecycle
    notifications go to the listener while it is consumed.  ``run()``
    drains ``handle()`` and returns the final response.
    """

    def handle(
        self,
        context: ConversationContext,
        event: ExchangeInitiating,
        listener: ExchangeListener,
    ) -> AsyncIterator[ResponseChunk]:
        return self._prepare(context, event, listener)[1]

    async def run(
        self,
        context: ConversationContext,
        event: ExchangeInitiating,
        listener: ExchangeListener,
    ) -> ChatResponse | None:
        """Consume the exchange and return its response.

        Returns ``None`` if the exchange was cancelled.  Upstream errors
        are re-raised after the listener has been notified.
        """
        sequencer, stream = self._prepare(context, event, listener)
        async for _ in stream:
            pass
        return sequencer.response

    def _prepare(self, context, event, listener):
        model_type = context.model_type
        client = context.chat_client
        if event.prompt is None or not event.prompt.instructions:
            raise PromptRequiredError("Prompt is required")
        prompt = maybe_override_chat_options(model_type, event.prompt)
        sequencer = ExchangeSequencer(listener, event)

        if model_type.supports_streaming:
            try:
                source = client.stream(prompt)
            except NotImplementedError:
                logger.info(
                    f"{type(client).__name__} cannot stream; "
                    f"falling back to a single call"
                )
            else:
                return sequencer, sequencer.observe(
                    source, context, streaming=True,
                    system=client.system, model=model_type.name,
                )
        return sequencer, sequencer.observe(
            _single_shot(client, prompt), context, streaming=False,
            system=client.system, model=model_type.name,
        )
