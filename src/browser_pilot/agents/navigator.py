"""
Navigator Agent

Turns the plan into page actions. One navigator step:

1. injects the current browser state into memory,
2. asks the model for its reasoning and an ordered action list,
3. swaps the transient state message for the model's decision,
4. runs the actions, stopping early when the page grows new elements.

The transient state message is always removed before the step ends,
whatever the outcome.
"""

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from ..actions.base import ActionResult
from ..actions.registry import ActionRegistry, AgentBrain, normalize_actions
from ..browser.views import calc_branch_path_hash_set
from ..errors import (
    ActionExecutionError,
    RequestCancelledError,
    TooManyActionErrorsError,
    URLNotAllowedError,
)
from ..events import Actors, ExecutionState
from ..llm.provider import LLMProvider, Message, user_message
from .base import AgentOutput, BaseAgent
from .context import TaskContext
from .prompts import build_state_message, navigator_system_prompt

logger = logging.getLogger(__name__)


class NavigatorState(str, Enum):
    INIT = "init"
    STATE_INJECTED = "state_injected"
    MODEL_INVOKED = "model_invoked"
    ACTIONS_EXECUTING = "actions_executing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class NavigatorModelOutput(BaseModel):
    """
    Parsed navigator answer.

    ``current_state`` is validated strictly; ``action`` is kept raw and
    normalized separately so list, JSON-text and bare-object forms all work.
    """

    current_state: AgentBrain
    action: Any = None


class NavigatorResult(BaseModel):
    done: bool = False
    actions_executed: int = 0


class NavigatorAgent(BaseAgent[NavigatorModelOutput]):
    """
    Executes the plan on the page.

    The action registry is frozen on construction: the set of actions (and
    the output schema derived from it) cannot change while a task runs.
    """

    actor = Actors.NAVIGATOR
    output_model = NavigatorModelOutput

    def __init__(
        self,
        llm: LLMProvider,
        context: TaskContext,
        registry: ActionRegistry,
        system_prompt: Optional[str] = None,
    ):
        registry.freeze()
        self.registry = registry
        self._output_schema = registry.model_output_json_schema()
        super().__init__(
            llm,
            context,
            system_prompt
            or navigator_system_prompt(
                registry.action_descriptions(), context.options.max_actions_per_step
            ),
        )
        self.state = NavigatorState.INIT

    def output_schema(self) -> dict[str, Any]:
        return self._output_schema

    async def execute(self) -> AgentOutput[NavigatorResult]:
        ctx = self.context
        self.state = NavigatorState.INIT
        self.emit(ExecutionState.STEP_START, "Navigating...")
        cancelled = False

        try:
            if ctx.should_halt:
                cancelled = True
                return AgentOutput.cancelled_step(self.id, "Navigation cancelled")

            await self.add_state_message_to_memory()
            self.state = NavigatorState.STATE_INJECTED

            if ctx.should_halt:
                cancelled = True
                return AgentOutput.cancelled_step(self.id, "Navigation cancelled")

            model_output = await self.invoke_model(list(ctx.message_manager.get_messages()))
            self.state = NavigatorState.MODEL_INVOKED

            if ctx.should_halt:
                cancelled = True
                return AgentOutput.cancelled_step(self.id, "Navigation cancelled")

            self.remove_last_state_message_from_memory()
            ctx.message_manager.add_model_output(model_output.model_dump())

            self.state = NavigatorState.ACTIONS_EXECUTING
            results = await self.do_multi_action(model_output.action)
            ctx.action_results = results

            if ctx.should_halt:
                cancelled = True
                return AgentOutput.cancelled_step(self.id, "Navigation cancelled")

            done = bool(results) and results[-1].is_done
            self.state = NavigatorState.DONE
            self.emit(ExecutionState.STEP_OK, "Navigation done")
            return AgentOutput.success(
                self.id, NavigatorResult(done=done, actions_executed=len(results))
            )
        except Exception as e:
            self.remove_last_state_message_from_memory()
            if isinstance(e, RequestCancelledError):
                cancelled = True
            self.state = NavigatorState.FAILED
            self.raise_if_fatal(e)

            error_message = f"Navigation failed: {e}"
            logger.error(error_message)
            self.emit(ExecutionState.STEP_FAIL, error_message)
            return AgentOutput.failure(self.id, error_message)
        finally:
            self.remove_last_state_message_from_memory()
            if cancelled:
                self.state = NavigatorState.CANCELLED
                self.emit(ExecutionState.STEP_CANCEL, "Navigation cancelled")

    async def invoke_model(self, messages: list[Message]) -> NavigatorModelOutput:
        """Ask for the next actions, through function calling when enabled."""
        if self.context.options.use_function_calling and self.llm.supports_function_calling:
            calls = await self.context.run(
                self.llm.invoke_with_tools(messages, self.registry.tool_schemas())
            )
            return NavigatorModelOutput(
                current_state=AgentBrain(
                    evaluation_previous_goal="Unknown",
                    memory="",
                    next_goal=", ".join(call.name for call in calls),
                ),
                action=[{call.name: call.arguments} for call in calls],
            )
        return await self.invoke(messages)

    async def add_state_message_to_memory(self) -> None:
        """
        Fold pending results into memory and inject the browser state.

        Results marked ``include_in_memory`` become their own messages and are
        then reset, so each is reported once. Does nothing if the state
        message is already in memory.
        """
        ctx = self.context
        if ctx.state_message_added:
            return

        manager = ctx.message_manager
        for i, result in enumerate(ctx.action_results):
            if not result.include_in_memory:
                continue
            if result.extracted_content:
                manager.add_message_with_tokens(
                    user_message(f"Action result: {result.extracted_content}")
                )
            if result.error:
                last_line = result.error.splitlines()[-1] if result.error.strip() else ""
                manager.add_message_with_tokens(user_message(f"Action error: {last_line}"))
            ctx.action_results[i] = ActionResult()

        state = await ctx.run(ctx.browser_context.get_state(ctx.options.use_vision))
        ctx.screenshot = state.screenshot
        manager.add_state_message(
            build_state_message(
                state,
                ctx.action_results,
                step=ctx.n_steps,
                max_steps=ctx.options.max_steps,
                use_vision=ctx.options.use_vision,
            )
        )
        ctx.state_message_added = True

    def remove_last_state_message_from_memory(self) -> None:
        ctx = self.context
        if not ctx.state_message_added:
            return
        ctx.message_manager.remove_last_state_message()
        ctx.state_message_added = False

    async def do_multi_action(self, raw_actions: Any) -> list[ActionResult]:
        """
        Run the model's actions in order.

        Stops early when paused or stopped, or when an index-targeting action
        finds elements that were not on the page when the step began. Failed
        actions are recorded as error results until the per-step error budget
        is exceeded.

        Raises:
            ActionParseError: If the action field is malformed
            TooManyActionErrorsError: If more than the allowed actions fail
            URLNotAllowedError: If an action navigates somewhere forbidden
        """
        ctx = self.context
        options = ctx.options
        browser = ctx.browser_context
        results: list[ActionResult] = []

        calls = normalize_actions(raw_actions)
        if len(calls) > options.max_actions_per_step:
            logger.warning(
                "Model requested %d actions, running the first %d",
                len(calls),
                options.max_actions_per_step,
            )
            calls = calls[: options.max_actions_per_step]

        state = await ctx.run(browser.get_state(options.use_vision))
        cached_path_hashes = calc_branch_path_hash_set(state)
        await ctx.run(browser.remove_highlight())

        error_count = 0
        for i, call in enumerate(calls):
            if ctx.should_halt:
                logger.info("Action execution interrupted after %d actions", i)
                return results

            try:
                action = self.registry.get_action(call.name)
                if action is None:
                    raise ActionExecutionError(f"Action {call.name} not exists")

                if i > 0 and action.get_index_arg(call.args) is not None:
                    new_state = await ctx.run(browser.get_state(options.use_vision))
                    new_path_hashes = calc_branch_path_hash_set(new_state)
                    await ctx.run(browser.remove_highlight())
                    if not new_path_hashes.issubset(cached_path_hashes):
                        msg = f"Something new appeared after action {i} / {len(calls)}"
                        logger.info(msg)
                        results.append(ActionResult(extracted_content=msg, include_in_memory=True))
                        break

                ctx.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_START, call.name)
                result = await ctx.run(action.call(call.args))
                if result is None:
                    raise ActionExecutionError(f"Action {call.name} returned no result")
                results.append(result)
                ctx.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_OK, result.extracted_content or call.name)

                if ctx.should_halt:
                    return results

                await ctx.cancellation.sleep(options.action_settle_delay)

            except (URLNotAllowedError, RequestCancelledError):
                raise
            except Exception as e:
                error_count += 1
                error_message = str(e) or type(e).__name__
                logger.error("Action %s failed: %s", call.name, error_message)
                ctx.emit_event(Actors.NAVIGATOR, ExecutionState.ACT_FAIL, error_message)
                if error_count > options.max_action_errors:
                    raise TooManyActionErrorsError("Too many errors in actions") from e
                results.append(
                    ActionResult(error=error_message, is_done=False, include_in_memory=True)
                )

        return results
