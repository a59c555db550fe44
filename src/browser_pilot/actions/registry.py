"""
Action Registry

Name -> Action table used by the navigator, plus the pieces that connect it
to model output: the structured output schema and the normalization of the
``action`` field into concrete calls.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, create_model, model_validator

from ..errors import ActionParseError
from ..utils import parse_json_lenient
from .base import Action

logger = logging.getLogger(__name__)


class AgentBrain(BaseModel):
    """The navigator's reasoning about where the task stands."""

    evaluation_previous_goal: str
    memory: str
    next_goal: str


class ActionCall(BaseModel):
    """One requested action: a registered name and its raw arguments."""

    name: str
    args: dict[str, Any] = {}


class _ActionModelBase(BaseModel):
    """One list item of the ``action`` field: exactly one action key set."""

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _exactly_one_action(self):
        chosen = [
            name for name in type(self).model_fields if getattr(self, name) is not None
        ]
        if len(chosen) != 1:
            raise ValueError(
                f"Each action item must set exactly one action, got {len(chosen)}"
            )
        return self


class ActionRegistry:
    """
    Holds the actions available to a navigator.

    Registering under an existing name replaces the action. Once frozen
    (when a navigator is built on it) the table can no longer change.

    Example:
        >>> registry = ActionRegistry(build_default_actions(browser))
        >>> registry.get_action("click_element").has_index
        True
    """

    def __init__(self, actions: Optional[list[Action]] = None):
        self._actions: dict[str, Action] = {}
        self._frozen = False
        self._output_model: Optional[type[BaseModel]] = None
        for item in actions or []:
            self.register_action(item)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("Action registry is frozen; actions cannot change mid-task")

    def register_action(self, action: Action) -> None:
        self._check_mutable()
        if action.name in self._actions:
            logger.debug("Replacing action %s", action.name)
        self._actions[action.name] = action
        self._output_model = None

    def unregister_action(self, name: str) -> None:
        self._check_mutable()
        self._actions.pop(name, None)
        self._output_model = None

    def get_action(self, name: str) -> Optional[Action]:
        return self._actions.get(name)

    def get_actions(self) -> list[Action]:
        return list(self._actions.values())

    def __contains__(self, name: str) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def setup_model_output_schema(self) -> type[BaseModel]:
        """
        Build the navigator's structured output model.

        ``NavigatorOutput`` requires ``current_state`` (an AgentBrain) and an
        ordered ``action`` list whose items each hold exactly one registered
        action with its parameters.
        """
        if self._output_model is not None:
            return self._output_model

        fields: dict[str, Any] = {
            item.name: (Optional[item.param_model], None) for item in self._actions.values()
        }
        action_model = create_model("ActionModel", __base__=_ActionModelBase, **fields)
        self._output_model = create_model(
            "NavigatorOutput",
            current_state=(AgentBrain, ...),
            action=(list[action_model], ...),
        )
        return self._output_model

    def model_output_json_schema(self) -> dict[str, Any]:
        return self.setup_model_output_schema().model_json_schema()

    def action_descriptions(self) -> str:
        return "\n".join(item.prompt_description() for item in self._actions.values())

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [item.tool_schema() for item in self._actions.values()]


def _to_call(item: Any, position: int) -> ActionCall:
    if not isinstance(item, dict):
        raise ActionParseError(
            f"Invalid action at position {position}: expected an object, got {type(item).__name__}"
        )
    if not item:
        raise ActionParseError(f"Invalid action at position {position}: empty action object")

    name = next(iter(item))
    if len(item) > 1:
        logger.warning("Action object at position %d has %d keys, using %s", position, len(item), name)

    args = item[name]
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise ActionParseError(
            f"Invalid arguments for action {name}: expected an object, got {type(args).__name__}"
        )
    return ActionCall(name=name, args=args)


def normalize_actions(raw: Any) -> list[ActionCall]:
    """
    Turn the model's ``action`` field into an ordered list of calls.

    Accepts a list of single-key objects, the JSON text of such a list
    (repaired once if malformed), or one bare action object. ``None`` entries
    are dropped.

    Raises:
        ActionParseError: When the value cannot be read as actions
    """
    if raw is None:
        logger.warning("Model returned no actions")
        return []

    if isinstance(raw, str):
        try:
            parsed = parse_json_lenient(raw)
        except json.JSONDecodeError as e:
            raise ActionParseError("Invalid action output format") from e
        if isinstance(parsed, str):
            raise ActionParseError("Invalid action output format")
        return normalize_actions(parsed)

    if isinstance(raw, list):
        items = [item for item in raw if item is not None]
        if not items:
            logger.warning("Model returned an empty action list")
        return [_to_call(item, i) for i, item in enumerate(items)]

    if isinstance(raw, dict):
        return [_to_call(raw, 0)]

    raise ActionParseError(f"Unsupported action format: {type(raw).__name__}")
