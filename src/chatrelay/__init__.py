from chatrelay.chunk import ChatResponse, Generation, ResponseChunk, ResponseMetadata, Usage
from chatrelay.config import AssistantOptions
from chatrelay.context import ConversationContext
from chatrelay.events import (
    ExchangeFailed,
    ExchangeInitiating,
    ExchangeStarted,
    ResponseArrived,
    ResponseArriving,
    Subscription,
)
from chatrelay.handler import ChatHandler, PromptRequiredError
from chatrelay.instrumentation import instrument, uninstrument
from chatrelay.listener import CollectingListener, ExchangeListener
from chatrelay.message import Message, MessageRole
from chatrelay.models import KNOWN_MODELS, ModelType, OpenAiModelFamily, get_model_type
from chatrelay.prompt import OVERRIDE_NONE, ChatOptions, Prompt, maybe_override_chat_options
from chatrelay.provider import ChatClient, OpenAIChatClient, OpenRouterChatClient
from chatrelay.sequencer import ExchangeSequencer, ExchangeState
from chatrelay.streaming import ChoiceSnapshot, CompletionAggregator, FragmentStore

__all__ = [
    "AssistantOptions",
    "ChatClient",
    "ChatHandler",
    "ChatOptions",
    "ChatResponse",
    "ChoiceSnapshot",
    "CollectingListener",
    "CompletionAggregator",
    "ConversationContext",
    "ExchangeFailed",
    "ExchangeInitiating",
    "ExchangeListener",
    "ExchangeSequencer",
    "ExchangeStarted",
    "ExchangeState",
    "FragmentStore",
    "Generation",
    "KNOWN_MODELS",
    "Message",
    "MessageRole",
    "ModelType",
    "OVERRIDE_NONE",
    "OpenAIChatClient",
    "OpenAiModelFamily",
    "OpenRouterChatClient",
    "Prompt",
    "PromptRequiredError",
    "ResponseArrived",
    "ResponseArriving",
    "ResponseChunk",
    "ResponseMetadata",
    "Subscription",
    "Usage",
    "get_model_type",
    "instrument",
    "maybe_override_chat_options",
    "uninstrument",
]
