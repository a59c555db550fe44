"""
Task Context

Per-task state shared by the planner, navigator and validator: resolved
options, memory, the browser, control flags, and the cancellation token that
every outbound await goes through.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional, TypeVar

from ..actions.base import ActionResult
from ..browser.context import BrowserContext
from ..config import AgentSettings
from ..errors import RequestCancelledError
from ..events import Actors, AgentEvent, EventData, EventManager, ExecutionState
from ..llm.provider import ProviderType
from ..memory import MessageManager, MessageManagerSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation shared by all agents of one task.

    ``run`` races an awaitable against the token; when the token fires first
    the in-flight work is cancelled and RequestCancelledError is raised.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelledError("Request cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        if self.cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RequestCancelledError("Request cancelled")

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RequestCancelledError("Request cancelled")

    async def sleep(self, seconds: float) -> None:
        await self.run(asyncio.sleep(seconds))


@dataclass(frozen=True)
class AgentOptions:
    """Per-task options, fixed once at task start."""

    max_steps: int = 100
    max_actions_per_step: int = 10
    max_failures: int = 3
    max_action_errors: int = 3
    navigator_steps_per_plan: int = 3
    use_vision: bool = False
    use_vision_for_planner: bool = False
    validate_output: bool = True
    use_function_calling: bool = False
    action_settle_delay: float = 1.0
    max_input_tokens: int = 128000

    # Seconds between checks while the task is paused
    pause_poll_interval: float = 0.2

    @classmethod
    def resolve(
        cls,
        settings: AgentSettings,
        provider_type: Optional[ProviderType] = None,
        supports_function_calling: bool = False,
    ) -> "AgentOptions":
        """
        Derive task options from global settings and the navigator's provider.

        Function calling is used only in advanced mode and only when the
        provider supports it.
        """
        use_function_calling = settings.advanced_mode and supports_function_calling
        logger.debug(
            "Resolved options for %s provider: function_calling=%s",
            provider_type.value if provider_type else "unknown",
            use_function_calling,
        )
        return cls(
            max_steps=settings.max_steps,
            max_actions_per_step=settings.max_actions_per_step,
            max_failures=settings.max_failures,
            navigator_steps_per_plan=settings.navigator_steps_per_plan,
            use_vision=settings.use_vision,
            use_vision_for_planner=settings.use_vision_for_planner,
            validate_output=settings.validate_output,
            use_function_calling=use_function_calling,
            action_settle_delay=settings.action_settle_delay,
            max_input_tokens=settings.max_input_tokens,
        )


@dataclass
class TaskContext:
    """
    Mutable state of one running task.

    Exactly one agent steps at a time, so fields are read and written without
    locking.
    """

    task_id: str
    browser_context: BrowserContext
    options: AgentOptions = field(default_factory=AgentOptions)
    event_manager: EventManager = field(default_factory=EventManager)
    message_manager: Optional[MessageManager] = None
    llm_provider_type: Optional[ProviderType] = None
    cancellation: CancellationToken = field(default_factory=CancellationToken)

    action_results: list[ActionResult] = field(default_factory=list)
    paused: bool = False
    stopped: bool = False
    state_message_added: bool = False
    screenshot: Optional[str] = None
    n_steps: int = 0
    consecutive_failures: int = 0

    def __post_init__(self):
        if self.message_manager is None:
            self.message_manager = MessageManager(
                MessageManagerSettings(max_input_tokens=self.options.max_input_tokens)
            )

    @property
    def should_halt(self) -> bool:
        return self.paused or self.stopped

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def stop(self) -> None:
        self.stopped = True
        self.cancellation.cancel()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await through the task's cancellation token."""
        return await self.cancellation.run(awaitable)

    def emit_event(self, actor: Actors, state: ExecutionState, details: Any = "") -> None:
        self.event_manager.emit(
            AgentEvent(
                actor=actor,
                state=state,
                data=EventData(
                    task_id=self.task_id,
                    step=self.n_steps,
                    max_steps=self.options.max_steps,
                    details=str(details),
                ),
            )
        )
