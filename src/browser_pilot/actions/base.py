"""
Action Infrastructure

Provides the foundation for navigator actions:
- ActionResult for standardized outcomes
- Action, an immutable name + parameter model + async handler
- ``action`` decorator that turns a handler into an Action
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class ActionResult(BaseModel):
    """
    Outcome of one executed action.

    Attributes:
        extracted_content: Text produced by the action, shown to the model
        error: Error message if the action failed
        is_done: The action finished the task
        include_in_memory: Fold this result into the next state message
    """

    extracted_content: Optional[str] = None
    error: Optional[str] = None
    is_done: bool = False
    include_in_memory: bool = False

    def __str__(self) -> str:
        if self.error:
            return f"Error: {self.error}"
        return self.extracted_content or ""


class NoParams(BaseModel):
    """Parameter model for actions that take no arguments."""


ActionHandler = Callable[[Any], Awaitable[Optional[ActionResult]]]


@dataclass(frozen=True)
class Action:
    """
    A unit of page work the navigator can request.

    Attributes:
        name: Identifier the model uses (e.g. "click_element")
        description: Shown to the model in the prompt and tool schema
        param_model: Pydantic model validating the raw arguments
        handler: Async callable receiving the validated parameters
    """

    name: str
    description: str
    param_model: type[BaseModel]
    handler: ActionHandler

    @property
    def has_index(self) -> bool:
        return "index" in self.param_model.model_fields

    def get_index_arg(self, args: Optional[dict[str, Any]]) -> Optional[int]:
        """The element index this call targets, or None for index-less actions."""
        if not self.has_index or not args:
            return None
        try:
            params = self.param_model.model_validate(args)
        except ValidationError:
            return None
        return params.index

    async def call(self, args: Optional[dict[str, Any]]) -> Optional[ActionResult]:
        """Validate ``args`` against the parameter model and run the handler."""
        params = self.param_model.model_validate(args or {})
        logger.debug("Running action %s(%s)", self.name, params.model_dump())
        return await self.handler(params)

    def prompt_description(self) -> str:
        schema = self.param_model.model_json_schema()
        properties = {
            key: {k: v for k, v in value.items() if k != "title"}
            for key, value in schema.get("properties", {}).items()
        }
        return f"{self.name}: {self.description}, args: {properties}"

    def tool_schema(self) -> dict[str, Any]:
        """Definition for provider-native function calling."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.param_model.model_json_schema(),
        }


def action(
    name: str,
    description: str,
    param_model: type[BaseModel] = NoParams,
):
    """
    Decorator to turn an async handler into an Action.

    Example:
        >>> @action("go_back", "Navigate back in history")
        ... async def go_back(params: NoParams) -> ActionResult:
        ...     await browser.go_back()
        ...     return ActionResult(extracted_content="Navigated back")
    """

    def decorator(func: ActionHandler) -> Action:
        return Action(
            name=name,
            description=description,
            param_model=param_model,
            handler=func,
        )

    return decorator
