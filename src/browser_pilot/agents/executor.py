"""
Task Executor

Runs one task through planner -> navigator -> validator cycles until the
validator accepts an answer, a fatal error occurs, the task is cancelled,
too many steps fail in a row, or the cycle ceiling is reached.
"""

import asyncio
import json
import logging
import uuid
from typing import Optional

from pydantic import BaseModel

from ..actions.base import Action
from ..actions.builtin import build_default_actions
from ..actions.registry import ActionRegistry
from ..browser.context import BrowserContext
from ..chat import ChatMessage
from ..config import AgentSettings
from ..errors import (
    ChatModelAuthError,
    ChatModelForbiddenError,
    MaxFailuresReachedError,
    RequestCancelledError,
    URLNotAllowedError,
)
from ..events import Actors, EventManager, ExecutionState
from ..llm.provider import LLMProvider
from .context import AgentOptions, CancellationToken, TaskContext
from .navigator import NavigatorAgent
from .planner import PlannerAgent
from .validator import ValidatorAgent

logger = logging.getLogger(__name__)


class TaskResult(BaseModel):
    task_id: str
    success: bool
    answer: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False
    steps: int = 0


class Executor:
    """
    Orchestrates the three agents over one task.

    Usage:
        >>> executor = Executor(task, "task-1", browser_context, navigator_llm)
        >>> result = await executor.execute()
        >>> print(result.answer)
    """

    def __init__(
        self,
        task: str,
        task_id: Optional[str],
        browser_context: BrowserContext,
        navigator_llm: LLMProvider,
        planner_llm: Optional[LLMProvider] = None,
        validator_llm: Optional[LLMProvider] = None,
        settings: Optional[AgentSettings] = None,
        event_manager: Optional[EventManager] = None,
        extra_actions: Optional[list[Action]] = None,
    ):
        settings = settings or AgentSettings.from_env()
        self.task = task
        self.tasks = [task]

        options = AgentOptions.resolve(
            settings,
            navigator_llm.provider_type,
            navigator_llm.supports_function_calling,
        )
        self.context = TaskContext(
            task_id=task_id or uuid.uuid4().hex,
            browser_context=browser_context,
            options=options,
            event_manager=event_manager or EventManager(),
            llm_provider_type=navigator_llm.provider_type,
        )

        registry = ActionRegistry(build_default_actions(browser_context))
        for extra in extra_actions or []:
            registry.register_action(extra)

        self.navigator = NavigatorAgent(navigator_llm, self.context, registry)
        self.planner = PlannerAgent(planner_llm or navigator_llm, self.context)
        self.validator = ValidatorAgent(validator_llm or navigator_llm, self.context, task)

        self.context.message_manager.init_task_messages(self.navigator.system_prompt, task)
        self.transcript: list[ChatMessage] = [ChatMessage(actor=Actors.USER, content=task)]

        self._llms: list[LLMProvider] = []
        for llm in (navigator_llm, planner_llm, validator_llm):
            if llm is not None and llm not in self._llms:
                self._llms.append(llm)

    @property
    def task_id(self) -> str:
        return self.context.task_id

    @property
    def event_manager(self) -> EventManager:
        return self.context.event_manager

    async def execute(self) -> TaskResult:
        ctx = self.context
        options = ctx.options
        logger.info("Executing task %s: %s", ctx.task_id, self.tasks[-1])
        ctx.emit_event(Actors.SYSTEM, ExecutionState.TASK_START, ctx.task_id)

        try:
            for step in range(options.max_steps):
                ctx.n_steps = step
                if await self._should_stop():
                    return self._finish_cancelled()

                answer = await self._run_cycle()
                if answer is not None:
                    return self._finish_ok(answer)

            return self._finish_failed(f"Task failed: reached max steps ({options.max_steps})")
        except RequestCancelledError:
            return self._finish_cancelled()
        except (
            ChatModelAuthError,
            ChatModelForbiddenError,
            URLNotAllowedError,
            MaxFailuresReachedError,
        ) as e:
            return self._finish_failed(str(e))
        except Exception as e:
            logger.exception("Task %s failed unexpectedly", ctx.task_id)
            return self._finish_failed(f"Task failed: {e}")

    async def _should_stop(self) -> bool:
        """Checkpoint between cycles: stop, or wait out a pause."""
        ctx = self.context
        if ctx.stopped:
            return True

        while ctx.paused and not ctx.stopped:
            await asyncio.sleep(ctx.options.pause_poll_interval)

        return ctx.stopped

    def _record_failure(self, error: str) -> None:
        ctx = self.context
        ctx.consecutive_failures += 1
        logger.warning(
            "Step failed (%d/%d consecutive): %s",
            ctx.consecutive_failures,
            ctx.options.max_failures,
            error,
        )
        if ctx.consecutive_failures >= ctx.options.max_failures:
            raise MaxFailuresReachedError(
                f"Stopping due to {ctx.consecutive_failures} consecutive failures. Last error: {error}"
            )

    async def _run_cycle(self) -> Optional[str]:
        """
        One planner -> navigator -> validator cycle.

        Returns:
            The final answer when the task is complete, else None
        """
        ctx = self.context
        options = ctx.options

        # The planner sees the current page through a transient state message
        try:
            try:
                await self.navigator.add_state_message_to_memory()
            except (RequestCancelledError, URLNotAllowedError):
                raise
            except Exception as e:
                logger.warning("Planning without browser state: %s", e)
            plan_output = await self.planner.execute()
        finally:
            self.navigator.remove_last_state_message_from_memory()

        if plan_output.error:
            self._record_failure(plan_output.error)
            return None

        plan = plan_output.result
        ctx.consecutive_failures = 0
        ctx.message_manager.add_plan(json.dumps(plan.model_dump(), ensure_ascii=False))

        done_text: Optional[str] = None
        navigator_done = False
        if plan.web_task and not plan.done:
            for _ in range(options.navigator_steps_per_plan):
                if ctx.should_halt:
                    return None

                nav_output = await self.navigator.execute()
                if nav_output.cancelled:
                    return None
                if nav_output.error:
                    self._record_failure(nav_output.error)
                    continue

                ctx.consecutive_failures = 0
                if nav_output.result.done:
                    navigator_done = True
                    done_text = ctx.action_results[-1].extracted_content
                    break

        if not options.validate_output:
            if plan.done:
                return plan.next_steps
            if navigator_done:
                return done_text or ""
            return None

        if ctx.should_halt:
            return None

        self.validator.set_plan(plan.next_steps if plan.done else None)
        val_output = await self.validator.execute()
        if val_output.error:
            self._record_failure(val_output.error)
            return None

        if val_output.result.is_valid:
            return val_output.result.answer or done_text or plan.next_steps
        return None

    def _finish_ok(self, answer: str) -> TaskResult:
        ctx = self.context
        logger.info("Task %s completed: %s", ctx.task_id, answer)
        ctx.emit_event(Actors.SYSTEM, ExecutionState.TASK_OK, answer)
        self.transcript.append(ChatMessage(actor=Actors.SYSTEM, content=answer))
        return TaskResult(
            task_id=ctx.task_id, success=True, answer=answer, steps=ctx.n_steps + 1
        )

    def _finish_failed(self, error: str) -> TaskResult:
        ctx = self.context
        logger.error("Task %s failed: %s", ctx.task_id, error)
        ctx.emit_event(Actors.SYSTEM, ExecutionState.TASK_FAIL, error)
        self.transcript.append(ChatMessage(actor=Actors.SYSTEM, content=error))
        return TaskResult(
            task_id=ctx.task_id, success=False, error=error, steps=ctx.n_steps + 1
        )

    def _finish_cancelled(self) -> TaskResult:
        ctx = self.context
        logger.info("Task %s cancelled", ctx.task_id)
        ctx.emit_event(Actors.SYSTEM, ExecutionState.TASK_CANCEL, "Task cancelled")
        self.transcript.append(ChatMessage(actor=Actors.SYSTEM, content="Task cancelled"))
        return TaskResult(
            task_id=ctx.task_id,
            success=False,
            error="Task cancelled",
            cancelled=True,
            steps=ctx.n_steps,
        )

    def pause(self) -> None:
        self.context.pause()
        self.context.emit_event(Actors.SYSTEM, ExecutionState.TASK_PAUSE, "Task paused")

    def resume(self) -> None:
        self.context.resume()
        self.context.emit_event(Actors.SYSTEM, ExecutionState.TASK_RESUME, "Task resumed")

    def stop(self) -> None:
        self.context.stop()

    def add_follow_up_task(self, task: str) -> None:
        """Continue the conversation with a new instruction after a task ends."""
        ctx = self.context
        self.tasks.append(task)
        self.validator.task = task
        ctx.message_manager.add_new_task(task)
        self.transcript.append(ChatMessage(actor=Actors.USER, content=task))

        ctx.stopped = False
        ctx.paused = False
        ctx.consecutive_failures = 0
        ctx.cancellation = CancellationToken()

    async def cleanup(self) -> None:
        """Drop subscribers and close the model clients."""
        self.context.event_manager.clear_subscribers()
        for llm in self._llms:
            await llm.close()
