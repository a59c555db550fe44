"""
Event Renderer

Subscribes to an EventManager and prints agent events as they happen.
"""

from typing import Optional

from ..events import Actors, AgentEvent, EventManager, ExecutionState
from .console import AgentConsole, get_console

# States printed as full panels; everything else is a one-line note
_PANEL_STATES = {
    ExecutionState.STEP_OK,
    ExecutionState.STEP_FAIL,
    ExecutionState.TASK_OK,
    ExecutionState.TASK_FAIL,
    ExecutionState.TASK_CANCEL,
}

_FAILURE_STATES = {
    ExecutionState.STEP_FAIL,
    ExecutionState.ACT_FAIL,
    ExecutionState.TASK_FAIL,
}


class EventRenderer:
    """
    Console view of a running task.

    Example:
        >>> renderer = EventRenderer()
        >>> renderer.attach(executor.event_manager)
    """

    def __init__(self, console: Optional[AgentConsole] = None, verbose: bool = False):
        self.console = console or get_console()
        self.verbose = verbose

    def attach(self, event_manager: EventManager) -> None:
        event_manager.subscribe(self.render)

    def detach(self, event_manager: EventManager) -> None:
        event_manager.unsubscribe(self.render)

    def render(self, event: AgentEvent) -> None:
        state = event.state
        details = event.data.details
        block_type = "error" if state in _FAILURE_STATES else event.actor.value

        if state == ExecutionState.TASK_OK:
            self.console.print_block(details, "system", title="[ANSWER]")
        elif state in _PANEL_STATES:
            if not details and not self.verbose:
                return
            title = f"[{event.actor.value.upper()}] step {event.data.step + 1}/{event.data.max_steps}"
            self.console.print_block(details or state.value, block_type, title=title)
        elif self.verbose or event.actor == Actors.SYSTEM or state == ExecutionState.ACT_FAIL:
            text = f"{state.value} {details}".strip()
            self.console.print_line(text, block_type)
