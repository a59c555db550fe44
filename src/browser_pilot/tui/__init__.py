"""
Rich TUI Interface Module

Terminal output for the browser pilot, using the Rich library.

Components:
- AgentConsole: console wrapper with per-actor themed panels
- TUIConfig: colours and display options
- EventRenderer: prints agent events as the task runs
"""

from .console import (
    AgentConsole,
    BlockType,
    TUIConfig,
    create_console,
    get_console,
)
from .renderer import EventRenderer

__all__ = [
    "AgentConsole",
    "BlockType",
    "EventRenderer",
    "TUIConfig",
    "create_console",
    "get_console",
]
