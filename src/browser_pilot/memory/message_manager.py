"""
Message Manager

Bounded conversation history shared by the planner, navigator and validator.
Every message carries an estimated token count; when the running total
exceeds the budget, the oldest messages after the system prompt are evicted.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from ..llm.provider import Message, assistant_message, system_message, user_message

logger = logging.getLogger(__name__)

# Message types
INIT = "init"
STATE = "state"
PLAN = "plan"
MODEL_OUTPUT = "model_output"
TASK = "task"


class MessageManagerSettings(BaseModel):
    max_input_tokens: int = 128000
    estimated_characters_per_token: int = 3
    image_tokens: int = 800


@dataclass
class ManagedMessage:
    message: Message
    tokens: int = 0
    message_type: Optional[str] = None


class MessageManager:
    """
    Ordered message history with token-budget eviction.

    Position 0 holds the system prompt and is never evicted. The transient
    browser-state message is tagged ``state`` so it can be removed again.

    Example:
        >>> manager = MessageManager()
        >>> manager.init_task_messages("You are a navigator.", "Find the top headline")
        >>> manager.length()
        2
    """

    def __init__(self, settings: Optional[MessageManagerSettings] = None):
        self.settings = settings or MessageManagerSettings()
        self._history: list[ManagedMessage] = []
        self._total_tokens = 0

    @property
    def total_tokens(self) -> int:
        return self._total_tokens

    def length(self) -> int:
        return len(self._history)

    def get_messages(self) -> tuple[Message, ...]:
        """Immutable snapshot of the current history."""
        return tuple(managed.message for managed in self._history)

    def message_types(self) -> tuple[Optional[str], ...]:
        return tuple(managed.message_type for managed in self._history)

    def init_task_messages(
        self,
        system_prompt: str,
        task: str,
        context: Optional[str] = None,
    ) -> None:
        """Seed the history: system prompt, optional context, then the task."""
        self._history.clear()
        self._total_tokens = 0

        self.add_message_with_tokens(system_message(system_prompt), message_type=INIT)
        if context:
            self.add_message_with_tokens(
                user_message(f"Context for the task: {context}"), message_type=INIT
            )
        self.add_message_with_tokens(user_message(_wrap_task(task)), message_type=INIT)

    def add_new_task(self, task: str) -> None:
        """Append a follow-up instruction to an ongoing task."""
        content = (
            f"Now you have a new task: {_wrap_task(task)}\n"
            "Continue from where the previous task left off."
        )
        self.add_message_with_tokens(user_message(content), message_type=TASK)

    def add_plan(self, plan: Optional[str], position: Optional[int] = None) -> None:
        if plan:
            self.add_message_with_tokens(
                assistant_message(f"<plan>{plan}</plan>"),
                message_type=PLAN,
                position=position,
            )

    def add_state_message(self, message: Message) -> None:
        self.add_message_with_tokens(message, message_type=STATE)

    def remove_last_state_message(self) -> bool:
        """
        Remove the most recent state message.

        Returns:
            True if a state message was found and removed
        """
        for i in range(len(self._history) - 1, -1, -1):
            if self._history[i].message_type == STATE:
                removed = self._history.pop(i)
                self._total_tokens -= removed.tokens
                return True
        return False

    def add_model_output(self, output: dict[str, Any]) -> None:
        """Record an agent's structured decision so later steps see it."""
        content = json.dumps(output, ensure_ascii=False)
        self.add_message_with_tokens(assistant_message(content), message_type=MODEL_OUTPUT)

    def add_message_with_tokens(
        self,
        message: Message,
        message_type: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        managed = ManagedMessage(
            message=message,
            tokens=self.count_tokens(message),
            message_type=message_type,
        )
        if position is None:
            self._history.append(managed)
        else:
            self._history.insert(position, managed)
        self._total_tokens += managed.tokens
        self._ensure_token_limit(keep=managed)

    def count_tokens(self, message: Message) -> int:
        return (
            len(message.text) // self.settings.estimated_characters_per_token
            + message.image_count * self.settings.image_tokens
        )

    def _ensure_token_limit(self, keep: ManagedMessage) -> None:
        while self._total_tokens > self.settings.max_input_tokens:
            victim = next(
                (i for i in range(1, len(self._history)) if self._history[i] is not keep),
                None,
            )
            if victim is None:
                logger.warning(
                    "Could not reduce token count further: %d messages, %d tokens",
                    len(self._history),
                    self._total_tokens,
                )
                break

            removed = self._history.pop(victim)
            self._total_tokens -= removed.tokens
            logger.debug(
                "Token limit exceeded, evicted %s message (%d tokens). Now %d tokens",
                removed.message_type,
                removed.tokens,
                self._total_tokens,
            )


def _wrap_task(task: str) -> str:
    return f"<user_request>\n{task}\n</user_request>"
