"""
Unit tests for the planner and validator agents and the shared agent base.
"""

import pytest
from pydantic import ValidationError

from browser_pilot.actions import ActionResult
from browser_pilot.agents import (
    AgentOptions,
    AgentOutput,
    PlannerAgent,
    PlannerOutput,
    ValidatorAgent,
    ValidatorOutput,
)
from browser_pilot.agents.prompts import PLANNER_SYSTEM_PROMPT
from browser_pilot.config import AgentSettings
from browser_pilot.errors import (
    ChatModelForbiddenError,
    LLMAPIError,
    SchemaValidationError,
)
from browser_pilot.events import ExecutionState
from browser_pilot.llm import ProviderType, user_message

PLAN = {
    "observation": "Search page is open",
    "done": False,
    "next_steps": "Type the query",
    "web_task": True,
}


class TestBoolNormalization:
    """Boolean fields accept real booleans and "true"/"false" strings."""

    @pytest.mark.parametrize("raw, expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("TRUE", True),
        ("False", False),
        (" false ", False),
    ])
    def test_accepted_values(self, raw, expected):
        assert ValidatorOutput(is_valid=raw).is_valid is expected
        assert PlannerOutput(**{**PLAN, "done": raw}).done is expected

    @pytest.mark.parametrize("raw", ["yes", "1", "", 1, None])
    def test_rejected_values(self, raw):
        """Anything else is a validation error."""
        with pytest.raises(ValidationError):
            ValidatorOutput(is_valid=raw)


class TestAgentOutput:
    """The step result envelope."""

    def test_exactly_one_of_result_and_error(self):
        assert AgentOutput.success("a", {"x": 1}).error is None
        assert AgentOutput.failure("a", "boom").result is None

        with pytest.raises(ValidationError):
            AgentOutput(id="a")
        with pytest.raises(ValidationError):
            AgentOutput(id="a", result={"x": 1}, error="boom")

    def test_cancelled_step(self):
        output = AgentOutput.cancelled_step("nav-1", "Navigation cancelled")
        assert output.cancelled
        assert output.error == "Navigation cancelled"


class TestAgentOptions:
    """Options resolved once at task start."""

    def test_function_calling_requires_advanced_mode(self):
        settings = AgentSettings(advanced_mode=False)
        assert not AgentOptions.resolve(settings, ProviderType.ANTHROPIC, True).use_function_calling

    def test_function_calling_requires_support(self):
        settings = AgentSettings(advanced_mode=True)
        assert not AgentOptions.resolve(settings, ProviderType.OPENAI_COMPATIBLE, False).use_function_calling
        assert AgentOptions.resolve(settings, ProviderType.ANTHROPIC, True).use_function_calling

    def test_limits_copied(self):
        settings = AgentSettings(max_steps=7, max_failures=2, use_vision=True)
        options = AgentOptions.resolve(settings)
        assert (options.max_steps, options.max_failures, options.use_vision) == (7, 2, True)


class TestPlannerAgent:
    """Planner message building and failure handling."""

    def test_uses_own_system_prompt(self, make_llm, browser, make_context):
        """The navigator's system prompt is swapped for the planner's."""
        context = make_context(browser)
        planner = PlannerAgent(make_llm(), context, system_prompt="You plan.")

        messages = planner.build_messages()

        assert messages[0].text == "You plan."
        assert all(m.text != "You are a navigator." for m in messages)
        assert "Test task" in messages[-1].text

    def test_screenshot_stripped_without_planner_vision(self, make_llm, browser, make_context):
        """With vision for the navigator only, the planner gets text."""
        context = make_context(browser, use_vision=True, use_vision_for_planner=False)
        context.message_manager.add_state_message(user_message([
            {"type": "text", "text": "state"},
            {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAAA"}},
        ]))
        planner = PlannerAgent(make_llm(), context)

        messages = planner.build_messages()

        assert messages[-1].content == "state"

    def test_screenshot_kept_with_planner_vision(self, make_llm, browser, make_context):
        context = make_context(browser, use_vision=True, use_vision_for_planner=True)
        context.message_manager.add_state_message(user_message([
            {"type": "text", "text": "state"},
            {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAAA"}},
        ]))
        planner = PlannerAgent(make_llm(), context)

        assert planner.build_messages()[-1].image_count == 1

    @pytest.mark.asyncio
    async def test_plan_from_json_text(self, make_llm, browser, make_context, recorded_events):
        """String booleans in a JSON answer are normalized."""
        context = make_context(browser)
        events = recorded_events(context.event_manager)
        raw = '{"observation": "o", "done": "false", "next_steps": "Click login", "web_task": "TRUE"}'
        planner = PlannerAgent(make_llm([raw]), context)

        output = await planner.execute()

        assert output.result.web_task is True
        assert output.result.done is False
        assert [e.state for e in events] == [ExecutionState.STEP_START, ExecutionState.STEP_OK]
        assert events[-1].data.details == "Click login"

    @pytest.mark.asyncio
    async def test_failure_absorbed(self, make_llm, browser, make_context, recorded_events):
        """Ordinary errors become a failed step."""
        context = make_context(browser)
        events = recorded_events(context.event_manager)
        planner = PlannerAgent(make_llm([{"observation": "missing fields"}]), context)

        output = await planner.execute()

        assert output.error.startswith("Planning failed: Invalid planner output")
        assert events[-1].state == ExecutionState.STEP_FAIL

    @pytest.mark.asyncio
    async def test_forbidden_raised(self, make_llm, browser, make_context):
        """A 403 from the model is fatal."""
        context = make_context(browser)
        planner = PlannerAgent(make_llm([LLMAPIError(403, "model not available")]), context)

        with pytest.raises(ChatModelForbiddenError):
            await planner.execute()

    def test_unparseable_output(self, make_llm, browser, make_context):
        """Text that is not JSON is a schema validation error."""
        planner = PlannerAgent(make_llm(), make_context(browser))
        with pytest.raises(SchemaValidationError):
            planner.validate_output("I think we should click the button")

    def test_default_prompt(self, make_llm, browser, make_context):
        planner = PlannerAgent(make_llm(), make_context(browser))
        assert planner.system_prompt == PLANNER_SYSTEM_PROMPT
        assert planner.id.startswith("planner-")


class TestValidatorAgent:
    """Validator verdicts and their effect on the action results."""

    @pytest.mark.asyncio
    async def test_invalid_verdict_feeds_back(self, make_llm, browser, make_context, recorded_events):
        """A rejection replaces the action results with the reason."""
        context = make_context(browser)
        context.action_results = [ActionResult(extracted_content="old")]
        events = recorded_events(context.event_manager)
        llm = make_llm([{"is_valid": "false", "reason": "The price is missing"}])
        validator = ValidatorAgent(llm, context, "Find the price")

        output = await validator.execute()

        assert output.result.is_valid is False
        assert context.action_results == [ActionResult(
            extracted_content="The answer is not yet correct. The price is missing.",
            include_in_memory=True,
        )]
        assert events[-1].state == ExecutionState.STEP_FAIL

    @pytest.mark.asyncio
    async def test_valid_verdict(self, make_llm, browser, make_context, recorded_events):
        """An accepted answer is reported and results are left alone."""
        context = make_context(browser)
        events = recorded_events(context.event_manager)
        llm = make_llm([{"is_valid": True, "answer": "$12.99"}])
        validator = ValidatorAgent(llm, context, "Find the price")

        output = await validator.execute()

        assert output.result.answer == "$12.99"
        assert context.action_results == []
        assert events[-1].state == ExecutionState.STEP_OK
        assert events[-1].data.details == "$12.99"

    @pytest.mark.asyncio
    async def test_messages_include_task_state_and_plan(self, make_llm, browser, make_context):
        """The validator sees the task, the page and the current plan."""
        context = make_context(browser)
        llm = make_llm([{"is_valid": True}])
        validator = ValidatorAgent(llm, context, "Find the price", system_prompt="You validate.")
        validator.set_plan("The price is $12.99")

        await validator.execute()

        system, user = llm.calls[0]
        assert system.text == "You validate."
        assert "Task to validate: Find the price" in user.text
        assert "Interactive elements from the current page" in user.text
        assert user.text.endswith("The current plan is: \nThe price is $12.99")

    @pytest.mark.asyncio
    async def test_screenshot_attached_with_vision(self, make_llm, browser, make_context):
        context = make_context(browser, use_vision=True)
        browser.screenshot = "QUJD"
        llm = make_llm([{"is_valid": True}])
        validator = ValidatorAgent(llm, context, "Check the page")

        await validator.execute()

        user = llm.calls[0][1]
        assert user.image_count == 1
        assert context.screenshot == "QUJD"

    @pytest.mark.asyncio
    async def test_failure_absorbed(self, make_llm, browser, make_context):
        context = make_context(browser)
        validator = ValidatorAgent(make_llm([ValueError("rate limited")]), context, "task")

        output = await validator.execute()

        assert output.error == "Validation failed: rate limited"
