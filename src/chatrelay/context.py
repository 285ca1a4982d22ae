from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chatrelay.message import Message
from chatrelay.models import ModelType
from chatrelay.provider import ChatClient

logger = logging.getLogger(__name__)


@dataclass
class ConversationContext:
    """Session state for one conversation.

    Holds the selected model, the client used to reach it, and the
    transcript.  Exchanges only ever append the finalized assistant
    message through :meth:`add_chat_message`.

    Args:
        session_id: Identifier for the conversation.
        model_type: The model selected for new exchanges.
        chat_client: Client that talks to ``model_type``'s API.
        transcript: Messages exchanged so far.
    """

    session_id: str
    model_type: ModelType
    chat_client: ChatClient
    transcript: list[Message] = field(default_factory=list)

    def add_chat_message(self, message: Message) -> None:
        logger.debug(f"Appending {message.role.value} message to {self.session_id}")
        self.transcript.append(message)
