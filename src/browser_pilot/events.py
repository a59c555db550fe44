"""
Execution Events

Status reporting from the agents to whoever is watching the task
(terminal renderer, tests, a UI). Agents emit through the TaskContext;
the EventManager fans events out to subscribers.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Actors(str, Enum):
    """Who produced an event or message."""

    SYSTEM = "system"
    USER = "user"
    PLANNER = "planner"
    NAVIGATOR = "navigator"
    VALIDATOR = "validator"


class ExecutionState(str, Enum):
    """Lifecycle phase reported by an event."""

    TASK_START = "task.start"
    TASK_OK = "task.ok"
    TASK_FAIL = "task.fail"
    TASK_PAUSE = "task.pause"
    TASK_RESUME = "task.resume"
    TASK_CANCEL = "task.cancel"

    STEP_START = "step.start"
    STEP_OK = "step.ok"
    STEP_FAIL = "step.fail"
    STEP_CANCEL = "step.cancel"

    ACT_START = "act.start"
    ACT_OK = "act.ok"
    ACT_FAIL = "act.fail"


class EventData(BaseModel):
    task_id: str
    step: int
    max_steps: int
    details: str = ""


class AgentEvent(BaseModel):
    actor: Actors
    state: ExecutionState
    data: EventData
    timestamp: float = Field(default_factory=lambda: time.time() * 1000)


EventCallback = Callable[[AgentEvent], None]


class EventManager:
    """
    Fan-out of AgentEvents to subscribers.

    Subscribers may register for specific execution states or for all of them.
    A subscriber that raises is logged and skipped; it never breaks the task.
    """

    def __init__(self):
        self._subscribers: list[tuple[Optional[ExecutionState], EventCallback]] = []

    def subscribe(
        self,
        callback: EventCallback,
        state: Optional[ExecutionState] = None,
    ) -> None:
        """
        Register a callback.

        Args:
            callback: Called with each matching AgentEvent
            state: Only deliver events in this state (all events if None)
        """
        self._subscribers.append((state, callback))

    def unsubscribe(self, callback: EventCallback) -> None:
        self._subscribers = [
            (state, cb) for state, cb in self._subscribers if cb != callback
        ]

    def clear_subscribers(self) -> None:
        self._subscribers.clear()

    def emit(self, event: AgentEvent) -> None:
        for state, callback in list(self._subscribers):
            if state is not None and state != event.state:
                continue
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Event subscriber failed for %s/%s", event.actor.value, event.state.value
                )
