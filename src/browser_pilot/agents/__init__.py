"""
Agent Orchestration Module

Implements the three-role loop for browser automation:
- Planner: decides whether the task needs the browser and what to do next
- Navigator: turns the plan into page actions and executes them
- Validator: checks whether the task has really been accomplished

The Executor drives the loop for one task and owns pause/stop/cancel.
"""

from .base import AgentOutput, BaseAgent, BoolLike, parse_bool_like
from .context import AgentOptions, CancellationToken, TaskContext
from .executor import Executor, TaskResult
from .navigator import NavigatorAgent, NavigatorModelOutput, NavigatorResult, NavigatorState
from .planner import PlannerAgent, PlannerOutput
from .validator import ValidatorAgent, ValidatorOutput

__all__ = [
    "AgentOptions",
    "AgentOutput",
    "BaseAgent",
    "BoolLike",
    "CancellationToken",
    "Executor",
    "NavigatorAgent",
    "NavigatorModelOutput",
    "NavigatorResult",
    "NavigatorState",
    "PlannerAgent",
    "PlannerOutput",
    "TaskContext",
    "TaskResult",
    "ValidatorAgent",
    "ValidatorOutput",
    "parse_bool_like",
]
