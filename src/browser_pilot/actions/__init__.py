"""
Navigator Actions

Actions are what the navigator asks the browser to do. Each one has a
pydantic parameter model and an async handler returning an ActionResult.
"""

from .base import Action, ActionResult, NoParams, action
from .builtin import build_default_actions
from .registry import (
    ActionCall,
    ActionRegistry,
    AgentBrain,
    normalize_actions,
)

__all__ = [
    "Action",
    "ActionCall",
    "ActionRegistry",
    "ActionResult",
    "AgentBrain",
    "NoParams",
    "action",
    "build_default_actions",
    "normalize_actions",
]
