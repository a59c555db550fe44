"""
Chat transcript messages.

``Message`` is what an actor said during a task; ``ChatMessage`` is the
persistable form with an id and plain-text content.
"""

import time
import uuid
from typing import Any, Union

from pydantic import BaseModel, Field

from .events import Actors

MessageContent = Union[str, list[dict[str, Any]]]


def content_to_text(content: MessageContent) -> str:
    """Concatenate the text parts of mixed content; image parts are dropped."""
    if isinstance(content, str):
        return content
    return "".join(
        part.get("text", "") for part in content if part.get("type") == "text"
    )


class Message(BaseModel):
    actor: Actors
    content: MessageContent
    timestamp: float = Field(default_factory=lambda: time.time() * 1000)


class ChatMessage(Message):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    content: str

    @classmethod
    def from_message(cls, message: Message) -> "ChatMessage":
        return cls(
            actor=message.actor,
            content=content_to_text(message.content),
            timestamp=message.timestamp,
        )
