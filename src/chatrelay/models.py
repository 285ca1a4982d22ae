"""Model descriptors.

A :class:`ModelType` is resolved once per exchange and tells the handler
whether to stream and whether the request's options must be replaced.
Its :class:`ModelFamily` knows how to build a chat client and which API
endpoints speak the same protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from chatrelay.config import AssistantOptions
from chatrelay.prompt import OVERRIDE_NONE, ChatOptions
from chatrelay.provider import ChatClient, OpenAIChatClient


class ModelFamily:
    """Builds chat clients for one API dialect."""

    name = "base"

    def create_chat_client(self, config: AssistantOptions) -> ChatClient:
        raise NotImplementedError

    @property
    def default_api_endpoint_url(self) -> str:
        raise NotImplementedError

    @property
    def compatible_api_endpoint_urls(self) -> list[str]:
        return []

    @property
    def api_keys_homepage(self) -> str | None:
        return None


class OpenAiModelFamily(ModelFamily):

    name = "openai"

    def create_chat_client(self, config: AssistantOptions) -> OpenAIChatClient:
        if config.enable_custom_api_endpoint_url and config.api_endpoint_url:
            base_url = config.api_endpoint_url
        else:
            base_url = self.default_api_endpoint_url
        options = ChatOptions(
            model=config.model_name,
            temperature=config.temperature,
            stream_usage=config.enable_stream_options,
            top_p=config.top_p,
            n=1,
            reasoning_effort=(
                config.reasoning_effort if config.reasoning_effort_enabled else None
            ),
        )
        return OpenAIChatClient(
            api_key=config.api_key,
            base_url=_with_v1(base_url),
            default_options=options,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    @property
    def default_api_endpoint_url(self) -> str:
        return "https://api.openai.com"

    @property
    def compatible_api_endpoint_urls(self) -> list[str]:
        return [
            "https://api.groq.com/openai",
            "https://api.mistral.ai",
            "https://openrouter.ai/api",
        ]

    @property
    def api_keys_homepage(self) -> str:
        return "https://platform.openai.com/api-keys"


def _with_v1(url: str) -> str:
    url = url.rstrip("/")
    if not url.endswith("/v1"):
        url = f"{url}/v1"
    return url


@dataclass(frozen=True)
class ModelType:
    """Capabilities of one selectable model."""

    name: str
    family: ModelFamily = field(default_factory=OpenAiModelFamily, compare=False)
    supports_streaming: bool = True
    incompatible_chat_options_override: ChatOptions | None = OVERRIDE_NONE


OPENAI = OpenAiModelFamily()

KNOWN_MODELS: dict[str, ModelType] = {
    m.name: m for m in [
        ModelType(name="gpt-4o", family=OPENAI),
        ModelType(name="gpt-4o-mini", family=OPENAI),
        ModelType(name="gpt-4.1", family=OPENAI),
        # Reasoning models reject sampling parameters.
        ModelType(
            name="o1",
            family=OPENAI,
            supports_streaming=False,
            incompatible_chat_options_override=ChatOptions(model="o1", n=1),
        ),
        ModelType(
            name="o3-mini",
            family=OPENAI,
            incompatible_chat_options_override=ChatOptions(
                model="o3-mini", n=1, reasoning_effort="medium",
            ),
        ),
    ]
}


def get_model_type(name: str) -> ModelType:
    """Look up a known model, or describe an unknown one with defaults."""
    model_type = KNOWN_MODELS.get(name)
    if model_type is None:
        return ModelType(name=name, family=OPENAI)
    return model_type
