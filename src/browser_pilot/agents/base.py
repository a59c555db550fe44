"""
Base Agent

Common machinery for the planner, navigator and validator: invoking the
chat model through the cancellation token, validating structured output,
and the AgentOutput envelope each step returns.
"""

import json
import logging
import uuid
from typing import Annotated, Any, ClassVar, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, BeforeValidator, ValidationError, model_validator

from ..errors import SchemaValidationError, classify_fatal
from ..events import Actors, ExecutionState
from ..llm.provider import LLMProvider, Message
from ..utils import parse_json_lenient
from .context import TaskContext

logger = logging.getLogger(__name__)

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_bool_like(value: Any) -> bool:
    """Accept booleans and the case-insensitive strings "true"/"false"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ValueError(f"Expected a boolean or 'true'/'false', got {value!r}")


BoolLike = Annotated[bool, BeforeValidator(parse_bool_like)]


class AgentOutput(BaseModel, Generic[T]):
    """
    Result envelope of one agent step.

    Exactly one of ``result`` and ``error`` is set. A cancelled step carries
    an error message and ``cancelled=True``.
    """

    id: str
    result: Optional[T] = None
    error: Optional[str] = None
    cancelled: bool = False

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.result is None) == (self.error is None):
            raise ValueError("AgentOutput needs exactly one of result or error")
        return self

    @classmethod
    def success(cls, agent_id: str, result: T) -> "AgentOutput[T]":
        return cls(id=agent_id, result=result)

    @classmethod
    def failure(cls, agent_id: str, error: str) -> "AgentOutput[T]":
        return cls(id=agent_id, error=error)

    @classmethod
    def cancelled_step(cls, agent_id: str, reason: str = "Cancelled") -> "AgentOutput[T]":
        return cls(id=agent_id, error=reason, cancelled=True)


class BaseAgent(Generic[ModelT]):
    """
    Shared base for the three LLM roles.

    Subclasses set ``actor`` and ``output_model`` and implement ``execute``.
    """

    actor: ClassVar[Actors]
    output_model: ClassVar[type[BaseModel]]

    def __init__(self, llm: LLMProvider, context: TaskContext, system_prompt: str):
        self.llm = llm
        self.context = context
        self.system_prompt = system_prompt
        self.id = f"{self.actor.value}-{uuid.uuid4().hex[:8]}"

    @property
    def role(self) -> str:
        return self.actor.value

    def emit(self, state: ExecutionState, details: Any = "") -> None:
        self.context.emit_event(self.actor, state, details)

    def output_schema(self) -> dict[str, Any]:
        return self.output_model.model_json_schema()

    async def invoke(self, messages: list[Message]) -> ModelT:
        """
        Call the model for a structured answer.

        Raises:
            SchemaValidationError: If the answer does not match the schema
            RequestCancelledError: If the task was cancelled mid-call
        """
        raw = await self.context.run(
            self.llm.invoke(
                messages,
                output_schema=self.output_schema(),
                options={"schema_name": f"{self.role}_output"},
            )
        )
        return self.validate_output(raw)

    def validate_output(self, raw: Union[dict[str, Any], str]) -> ModelT:
        data: Any = raw
        if isinstance(raw, str):
            try:
                data = parse_json_lenient(raw)
            except json.JSONDecodeError as e:
                raise SchemaValidationError(
                    f"Could not parse {self.role} output as JSON: {e}"
                ) from e

        try:
            return self.output_model.model_validate(data)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Invalid {self.role} output: {e.error_count()} validation error(s)\n{e}"
            ) from e

    def raise_if_fatal(self, error: Exception) -> None:
        """Re-raise auth, forbidden, cancellation and navigation-policy errors."""
        fatal = classify_fatal(error, self.role)
        if fatal is None:
            return
        if fatal is error:
            raise error
        raise fatal from error

    async def execute(self) -> AgentOutput:
        raise NotImplementedError
