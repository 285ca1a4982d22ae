"""Assistant settings.

Settings are plain pydantic models.  ``AssistantOptions.from_env`` reads
``CHATRELAY_*`` variables so the same options can be configured from a
shell or a ``.env`` loader without code changes.
"""

import os
from typing import Literal

from pydantic import BaseModel, Field

ENV_PREFIX = "CHATRELAY_"


class AssistantOptions(BaseModel):
    model_config = {"protected_namespaces": ()}

    model_name: str = "gpt-4o-mini"
    api_key: str | None = Field(default=None, repr=False)
    temperature: float = 0.7
    top_p: float = 1.0
    enable_stream_options: bool = True
    reasoning_effort_enabled: bool = False
    reasoning_effort: Literal["low", "medium", "high"] = "medium"
    enable_custom_api_endpoint_url: bool = False
    api_endpoint_url: str | None = None
    timeout: float = 600.0
    max_retries: int = 5

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "AssistantOptions":
        """Build options from ``<prefix><FIELD>`` environment variables.

        ``api_key`` falls back to ``OPENAI_API_KEY``.  Values are
        validated by pydantic, so ``"true"``/``"0.2"`` strings coerce to
        the declared field types.
        """
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None:
                values[name] = raw
        if "api_key" not in values:
            values["api_key"] = os.getenv("OPENAI_API_KEY")
        return cls.model_validate(values)
