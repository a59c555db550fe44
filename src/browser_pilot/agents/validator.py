"""
Validator Agent

Checks whether the task has actually been accomplished. An invalid verdict
is fed back to the navigator through the action results; a valid one
carries the final answer.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from ..actions.base import ActionResult
from ..events import Actors, ExecutionState
from ..llm.provider import LLMProvider, Message, system_message, user_message
from .base import AgentOutput, BaseAgent, BoolLike
from .context import TaskContext
from .prompts import VALIDATOR_SYSTEM_PROMPT, build_validator_content

logger = logging.getLogger(__name__)


class ValidatorOutput(BaseModel):
    is_valid: BoolLike
    reason: str = ""
    answer: str = ""


class ValidatorAgent(BaseAgent[ValidatorOutput]):
    actor = Actors.VALIDATOR
    output_model = ValidatorOutput

    def __init__(
        self,
        llm: LLMProvider,
        context: TaskContext,
        task: str,
        system_prompt: str = VALIDATOR_SYSTEM_PROMPT,
    ):
        super().__init__(llm, context, system_prompt)
        self.task = task
        self.plan: Optional[str] = None

    def set_plan(self, plan: Optional[str]) -> None:
        self.plan = plan

    async def build_messages(self) -> list[Message]:
        ctx = self.context
        use_vision = ctx.options.use_vision
        state = await ctx.run(ctx.browser_context.get_state(use_vision))
        if use_vision and state.screenshot:
            ctx.screenshot = state.screenshot

        content = build_validator_content(self.task, state, self.plan, use_vision)
        return [system_message(self.system_prompt), user_message(content)]

    async def execute(self) -> AgentOutput[ValidatorOutput]:
        self.emit(ExecutionState.STEP_START, "Validating...")
        try:
            output = await self.invoke(await self.build_messages())

            if not output.is_valid:
                msg = f"The answer is not yet correct. {output.reason}."
                logger.info(msg)
                self.emit(ExecutionState.STEP_FAIL, msg)
                self.context.action_results = [
                    ActionResult(extracted_content=msg, include_in_memory=True)
                ]
            else:
                self.emit(ExecutionState.STEP_OK, output.answer)

            return AgentOutput.success(self.id, output)
        except Exception as e:
            self.raise_if_fatal(e)
            error_message = f"Validation failed: {e}"
            logger.error(error_message)
            self.emit(ExecutionState.STEP_FAIL, error_message)
            return AgentOutput.failure(self.id, error_message)
