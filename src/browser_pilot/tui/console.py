"""
Rich TUI Console Setup

Core console for the browser pilot: one colour per agent role, optional
timestamps. Configured via environment variables.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.style import Style
from rich.text import Text
from rich.theme import Theme

# Block types for agent output, one per actor
BlockType = Literal["planner", "navigator", "validator", "system", "error"]


@dataclass
class TUIConfig:
    """
    TUI configuration loaded from environment variables.

    Attributes:
        color_planner: Colour for PLANNER blocks
        color_navigator: Colour for NAVIGATOR blocks (actions)
        color_validator: Colour for VALIDATOR blocks
        show_timestamps: Whether to display timestamps
    """

    color_planner: str = "blue"
    color_navigator: str = "green"
    color_validator: str = "yellow"
    color_system: str = "magenta"
    show_timestamps: bool = True

    @classmethod
    def from_env(cls) -> "TUIConfig":
        return cls(
            color_planner=os.getenv("COLOR_PLANNER", "blue"),
            color_navigator=os.getenv("COLOR_NAVIGATOR", "green"),
            color_validator=os.getenv("COLOR_VALIDATOR", "yellow"),
            color_system=os.getenv("COLOR_SYSTEM", "magenta"),
            show_timestamps=os.getenv("SHOW_TIMESTAMPS", "true").lower() == "true",
        )


def create_theme(config: TUIConfig) -> Theme:
    return Theme(
        {
            "planner": Style(color=config.color_planner, bold=True),
            "navigator": Style(color=config.color_navigator, bold=True),
            "validator": Style(color=config.color_validator, bold=True),
            "system": Style(color=config.color_system, bold=True),
            "error": Style(color="red", bold=True),
            "timestamp": Style(dim=True),
        }
    )


class AgentConsole:
    """
    Rich console wrapper for agent output.

    Every block is a panel coloured by the actor that produced it.
    """

    def __init__(self, config: Optional[TUIConfig] = None, console: Optional[Console] = None):
        self.config = config or TUIConfig.from_env()
        self.console = console or Console(theme=create_theme(self.config))

    def _get_timestamp(self) -> str:
        if self.config.show_timestamps:
            return datetime.now().strftime("%H:%M:%S")
        return ""

    def _get_block_color(self, block_type: BlockType) -> str:
        colors = {
            "planner": self.config.color_planner,
            "navigator": self.config.color_navigator,
            "validator": self.config.color_validator,
            "system": self.config.color_system,
            "error": "red",
        }
        return colors[block_type]

    def print_block(
        self,
        content: str,
        block_type: BlockType,
        title: Optional[str] = None,
    ) -> None:
        """
        Print a styled block to the console.

        Args:
            content: The text content to display
            block_type: Actor (or "error") the block belongs to
            title: Optional title to override the default label
        """
        color = self._get_block_color(block_type)
        block_title = title or f"[{block_type.upper()}]"

        timestamp = self._get_timestamp()
        if timestamp:
            block_title = f"{timestamp} {block_title}"

        self.console.print(
            Panel(
                Text(content),
                title=block_title,
                title_align="left",
                border_style=color,
                expand=True,
            )
        )

    def print_line(self, content: str, block_type: BlockType) -> None:
        """Print a single dim line tagged with the actor."""
        color = self._get_block_color(block_type)
        self.console.print(f"[{color}]{block_type}[/] [dim]{escape(content)}[/dim]")

    def print(self, *args, **kwargs) -> None:
        """Passthrough to underlying Rich console."""
        self.console.print(*args, **kwargs)

    def status(self, message: str):
        return self.console.status(message)


_console: Optional[AgentConsole] = None


def get_console() -> AgentConsole:
    """Get or create the global console instance."""
    global _console
    if _console is None:
        _console = AgentConsole()
    return _console


def create_console(config: Optional[TUIConfig] = None) -> AgentConsole:
    return AgentConsole(config)
