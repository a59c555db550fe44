"""
Configuration and Logging Setup

Centralized settings and logging for the browser pilot.
Reads LOG_LEVEL and the agent limits from environment variables (.env supported).

Usage:
    from browser_pilot.config import configure_logging, get_logger, AgentSettings

    configure_logging()
    settings = AgentSettings.from_env()
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Loggers that flood the output below DEBUG
NOISY_LOGGERS = ("playwright", "asyncio", "httpx", "httpcore", "anthropic")


def get_log_level() -> int:
    """
    Get the log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO)
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level_str not in VALID_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the browser pilot.

    Should be called once at application startup.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("browser_pilot").setLevel(level)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically called with __name__)."""
    return logging.getLogger(name)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


def _env_list(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class AgentSettings:
    """
    Global agent settings.

    These are the user-level knobs; per-task options are resolved from them
    once at task start (see ``browser_pilot.agents.context.AgentOptions``).
    """

    # Overall planner/navigator/validator cycle ceiling
    max_steps: int = 100

    # Upper bound on actions accepted from one navigator response
    max_actions_per_step: int = 10

    # Consecutive failed steps before the task is abandoned
    max_failures: int = 3

    # Navigator steps allowed per plan before the validator is consulted
    navigator_steps_per_plan: int = 3

    use_vision: bool = False
    use_vision_for_planner: bool = False
    validate_output: bool = True

    # Provider-native function calling for the navigator (when supported)
    advanced_mode: bool = False

    max_input_tokens: int = 128000

    # Seconds to wait after each executed action
    action_settle_delay: float = 1.0

    allowed_urls: list[str] = field(default_factory=list)
    denied_urls: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """
        Create AgentSettings from environment variables.

        Environment variables:
            MAX_STEPS, MAX_ACTIONS_PER_STEP, MAX_FAILURES, NAVIGATOR_STEPS_PER_PLAN,
            USE_VISION, USE_VISION_FOR_PLANNER, VALIDATE_OUTPUT, ADVANCED_MODE,
            MAX_INPUT_TOKENS, ACTION_SETTLE_DELAY,
            ALLOWED_URLS, DENIED_URLS (comma-separated)
        """
        return cls(
            max_steps=int(os.getenv("MAX_STEPS", "100")),
            max_actions_per_step=int(os.getenv("MAX_ACTIONS_PER_STEP", "10")),
            max_failures=int(os.getenv("MAX_FAILURES", "3")),
            navigator_steps_per_plan=int(os.getenv("NAVIGATOR_STEPS_PER_PLAN", "3")),
            use_vision=_env_bool("USE_VISION", False),
            use_vision_for_planner=_env_bool("USE_VISION_FOR_PLANNER", False),
            validate_output=_env_bool("VALIDATE_OUTPUT", True),
            advanced_mode=_env_bool("ADVANCED_MODE", False),
            max_input_tokens=int(os.getenv("MAX_INPUT_TOKENS", "128000")),
            action_settle_delay=float(os.getenv("ACTION_SETTLE_DELAY", "1.0")),
            allowed_urls=_env_list("ALLOWED_URLS"),
            denied_urls=_env_list("DENIED_URLS"),
        )
