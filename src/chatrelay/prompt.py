from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

from chatrelay.message import Message

if TYPE_CHECKING:
    from chatrelay.models import ModelType


class ChatOptions(BaseModel):
    """Per-request model options. ``None`` fields fall back to client defaults."""

    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    n: int | None = None
    stream_usage: bool | None = None
    reasoning_effort: Literal["low", "medium", "high"] | None = None

    def merged_over(self, defaults: ChatOptions | None) -> ChatOptions:
        """Return these options with unset fields taken from *defaults*."""
        if defaults is None:
            return self
        return defaults.model_copy(update=self.model_dump(exclude_none=True))


# Marks a model that accepts whatever options the request carries.
OVERRIDE_NONE: ChatOptions | None = None


class Prompt(BaseModel):
    instructions: list[Message]
    options: ChatOptions | None = None

    def message_dump(self) -> list[dict]:
        return [m.model_dump() for m in self.instructions]


def maybe_override_chat_options(model_type: ModelType, prompt: Prompt) -> Prompt:
    """Swap in the model's fixed options when it cannot take the request's."""
    override = model_type.incompatible_chat_options_override
    if override is not OVERRIDE_NONE:
        return Prompt(instructions=prompt.instructions, options=override)
    return prompt
