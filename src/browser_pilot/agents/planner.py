"""
Planner Agent

Looks at the whole conversation and decides what should happen next:
whether the task needs the browser, whether it is done, and the next
high-level steps for the navigator.
"""

import logging
from pydantic import BaseModel

from ..events import Actors, ExecutionState
from ..llm.provider import LLMProvider, Message, system_message
from .base import AgentOutput, BaseAgent, BoolLike
from .context import TaskContext
from .prompts import PLANNER_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class PlannerOutput(BaseModel):
    observation: str
    challenges: str = ""
    done: BoolLike
    next_steps: str = ""
    reasoning: str = ""
    web_task: BoolLike


class PlannerAgent(BaseAgent[PlannerOutput]):
    """
    Strategic planning step.

    The planner sees the shared history with its own system prompt in place
    of the navigator's.
    """

    actor = Actors.PLANNER
    output_model = PlannerOutput

    def __init__(
        self,
        llm: LLMProvider,
        context: TaskContext,
        system_prompt: str = PLANNER_SYSTEM_PROMPT,
    ):
        super().__init__(llm, context, system_prompt)

    def build_messages(self) -> list[Message]:
        history = list(self.context.message_manager.get_messages())[1:]
        messages = [system_message(self.system_prompt), *history]

        options = self.context.options
        if options.use_vision and not options.use_vision_for_planner:
            last = messages[-1]
            if not isinstance(last.content, str):
                messages[-1] = Message(role=last.role, content=last.text)
        return messages

    async def execute(self) -> AgentOutput[PlannerOutput]:
        self.emit(ExecutionState.STEP_START, "Planning...")
        try:
            output = await self.invoke(self.build_messages())
            logger.debug("Planner output: %s", output.model_dump())
            self.emit(ExecutionState.STEP_OK, output.next_steps)
            return AgentOutput.success(self.id, output)
        except Exception as e:
            self.raise_if_fatal(e)
            error_message = f"Planning failed: {e}"
            logger.error(error_message)
            self.emit(ExecutionState.STEP_FAIL, error_message)
            return AgentOutput.failure(self.id, error_message)
