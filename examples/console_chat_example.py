"""Interactive chat that prints responses as they stream in.

Demonstrates:
- Building a chat client from AssistantOptions through the model family
- Listening to exchange lifecycle events
- Keeping the conversation transcript in a ConversationContext

Usage:
    uv run --env-file=.env examples/console_chat_example.py --model gpt-4o-mini
    uv run --env-file=.env examples/console_chat_example.py --model o1 --trace
"""

import argparse
import asyncio
import logging
import uuid

from chatrelay.config import AssistantOptions
from chatrelay.context import ConversationContext
from chatrelay.events import ExchangeInitiating
from chatrelay.handler import ChatHandler
from chatrelay.listener import ExchangeListener
from chatrelay.message import Message, MessageRole
from chatrelay.models import get_model_type
from chatrelay.prompt import Prompt


def setup_tracing(service_name: str):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        SimpleSpanProcessor, ConsoleSpanExporter,
    )
    from chatrelay.instrumentation import instrument

    provider = TracerProvider(
        resource=Resource({SERVICE_NAME: service_name})
    )
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    instrument()


class ConsoleListener(ExchangeListener):
    """Prints only the newly arrived text of each partial response."""

    def __init__(self):
        self.printed = 0

    def exchange_started(self, event):
        self.printed = 0
        print("Assistant: ", end="", flush=True)

    def response_arriving(self, event):
        print(event.text[self.printed:], end="", flush=True)
        self.printed = len(event.text)

    def response_arrived(self, event):
        print(event.text[self.printed:] + "\n")

    def exchange_failed(self, event):
        print(f"\n[error] {event.cause}\n")


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--model", default=None)
    parser.add_argument("--trace", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    if args.trace:
        setup_tracing("chatrelay-console")

    options = AssistantOptions.from_env()
    if args.model:
        options.model_name = args.model
    model_type = get_model_type(options.model_name)

    context = ConversationContext(
        session_id=str(uuid.uuid4()),
        model_type=model_type,
        chat_client=model_type.family.create_chat_client(options),
        transcript=[Message(role=MessageRole.SYSTEM, content="You are concise.")],
    )
    handler = ChatHandler()
    listener = ConsoleListener()

    print(f"Chatting with {model_type.name}\n")

    while True:
        try:
            user_input = input("You: ")
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        context.add_chat_message(Message(role=MessageRole.USER, content=user_input))
        event = ExchangeInitiating.create(Prompt(instructions=list(context.transcript)))
        try:
            await handler.run(context, event, listener)
        except Exception:
            # already reported by the listener
            continue


if __name__ == "__main__":
    asyncio.run(main())
