"""
Unit tests for actions: normalization of the model's action field, the
registry and its output schema, and the built-in actions.
"""

import pytest
from pydantic import BaseModel, ValidationError

from browser_pilot.actions import (
    Action,
    ActionCall,
    ActionRegistry,
    ActionResult,
    action,
    build_default_actions,
    normalize_actions,
)
from browser_pilot.actions.builtin import MAX_EXTRACT_CHARS
from browser_pilot.errors import ActionParseError, URLNotAllowedError


class TestNormalizeActions:
    """Every accepted shape of the action field yields the same calls."""

    EXPECTED = [
        ActionCall(name="click_element", args={"index": 3}),
        ActionCall(name="done", args={"text": "ok"}),
    ]

    def test_list(self):
        """A list of single-key objects is taken as-is."""
        raw = [{"click_element": {"index": 3}}, {"done": {"text": "ok"}}]
        assert normalize_actions(raw) == self.EXPECTED

    def test_json_string(self):
        """The JSON text of the list gives the same calls."""
        raw = '[{"click_element": {"index": 3}}, {"done": {"text": "ok"}}]'
        assert normalize_actions(raw) == self.EXPECTED

    def test_repairable_string(self):
        """A fenced list with a trailing comma and no closing bracket is repaired."""
        raw = '```json\n[{"click_element": {"index": 3}}, {"done": {"text": "ok"}},'
        assert normalize_actions(raw) == self.EXPECTED

    def test_bare_object(self):
        """A single action object becomes a one-element list."""
        assert normalize_actions({"click_element": {"index": 3}}) == self.EXPECTED[:1]

    def test_none_entries_dropped(self):
        """None list entries are ignored."""
        raw = [None, {"click_element": {"index": 3}}, None, {"done": {"text": "ok"}}]
        assert normalize_actions(raw) == self.EXPECTED

    def test_missing_actions(self):
        """No action field means no calls."""
        assert normalize_actions(None) == []
        assert normalize_actions([]) == []

    def test_null_arguments(self):
        """An action with null arguments gets empty arguments."""
        assert normalize_actions([{"go_back": None}]) == [ActionCall(name="go_back", args={})]

    def test_unparseable_string(self):
        """Text that is not JSON even after repair is rejected."""
        with pytest.raises(ActionParseError, match="Invalid action output format"):
            normalize_actions("click the first link please")

    def test_string_of_string(self):
        """JSON text holding a plain string is rejected."""
        with pytest.raises(ActionParseError, match="Invalid action output format"):
            normalize_actions('"click_element"')

    def test_unsupported_type(self):
        """Numbers and other scalars are rejected with their type."""
        with pytest.raises(ActionParseError, match="Unsupported action format: int"):
            normalize_actions(42)

    def test_non_object_item(self):
        """List items must be objects."""
        with pytest.raises(ActionParseError, match="position 1: expected an object, got str"):
            normalize_actions([{"go_back": {}}, "done"])

    def test_empty_object_item(self):
        with pytest.raises(ActionParseError, match="empty action object"):
            normalize_actions([{}])

    def test_non_object_arguments(self):
        with pytest.raises(ActionParseError, match="Invalid arguments for action click_element"):
            normalize_actions([{"click_element": 3}])


class IndexParams(BaseModel):
    index: int


class TestAction:
    """The Action value type and decorator."""

    @pytest.fixture
    def tap(self):
        @action("tap", "Tap an element", IndexParams)
        async def tap(params: IndexParams) -> ActionResult:
            return ActionResult(extracted_content=f"tapped {params.index}")

        return tap

    def test_decorator_builds_action(self, tap):
        """The decorator returns an Action with the given metadata."""
        assert isinstance(tap, Action)
        assert tap.name == "tap"
        assert tap.has_index

    def test_get_index_arg(self, tap):
        """The index is read the same way the handler will receive it."""
        assert tap.get_index_arg({"index": 4}) == 4
        assert tap.get_index_arg({"index": "4"}) == 4
        assert tap.get_index_arg({"index": "four"}) is None
        assert tap.get_index_arg({}) is None
        assert tap.get_index_arg(None) is None

    def test_indexless_action(self):
        """Actions without an index parameter never report one."""
        @action("noop", "Do nothing")
        async def noop(params) -> ActionResult:
            return ActionResult()

        assert not noop.has_index
        assert noop.get_index_arg({"index": 1}) is None

    @pytest.mark.asyncio
    async def test_call_validates_args(self, tap):
        """Arguments are validated against the parameter model."""
        result = await tap.call({"index": "7"})
        assert result.extracted_content == "tapped 7"

        with pytest.raises(ValidationError):
            await tap.call({"idx": 1})

    def test_descriptions(self, tap):
        """Prompt and tool descriptions expose the parameters."""
        assert tap.prompt_description().startswith("tap: Tap an element, args: ")
        assert "index" in tap.prompt_description()
        schema = tap.tool_schema()
        assert schema["name"] == "tap"
        assert schema["input_schema"]["required"] == ["index"]


class TestActionRegistry:
    """Registry lookups, freezing and output schema."""

    @pytest.fixture
    def registry(self, browser):
        return ActionRegistry(build_default_actions(browser))

    def test_default_actions_registered(self, registry):
        """All built-in actions are available by name."""
        for name in (
            "done", "search_google", "go_to_url", "go_back", "click_element",
            "input_text", "switch_tab", "open_tab", "scroll_down", "scroll_up",
            "send_keys", "extract_content", "wait",
        ):
            assert name in registry
        assert registry.get_action("missing") is None

    def test_register_replaces(self, registry):
        """Registering an existing name replaces the action."""
        count = len(registry)

        @action("done", "Custom done")
        async def custom_done(params) -> ActionResult:
            return ActionResult(is_done=True)

        registry.register_action(custom_done)

        assert len(registry) == count
        assert registry.get_action("done").description == "Custom done"

    def test_frozen_registry_rejects_changes(self, registry):
        """A frozen registry cannot gain or lose actions."""
        registry.freeze()

        with pytest.raises(RuntimeError, match="frozen"):
            registry.register_action(registry.get_action("done"))
        with pytest.raises(RuntimeError, match="frozen"):
            registry.unregister_action("done")

    def test_output_model_accepts_valid_output(self, registry):
        """The output model accepts reasoning plus single-action items."""
        model = registry.setup_model_output_schema()

        parsed = model.model_validate({
            "current_state": {"evaluation_previous_goal": "", "memory": "", "next_goal": "click"},
            "action": [{"click_element": {"index": 1}}, {"go_back": {}}],
        })

        assert len(parsed.action) == 2

    def test_output_model_requires_exactly_one_action(self, registry):
        """Items with zero, two or unknown actions are rejected."""
        model = registry.setup_model_output_schema()
        brain = {"evaluation_previous_goal": "", "memory": "", "next_goal": ""}

        for bad_item in (
            {},
            {"click_element": {"index": 1}, "go_back": {}},
            {"fly": {}},
        ):
            with pytest.raises(ValidationError):
                model.model_validate({"current_state": brain, "action": [bad_item]})

    def test_output_schema_cached_until_change(self, registry):
        """The schema model is rebuilt only after the action set changes."""
        first = registry.setup_model_output_schema()
        assert registry.setup_model_output_schema() is first

        registry.unregister_action("wait")
        rebuilt = registry.setup_model_output_schema()

        assert rebuilt is not first
        assert "wait" not in registry.model_output_json_schema()["$defs"]["ActionModel"]["properties"]


class TestBuiltinActions:
    """Built-in actions drive the browser context."""

    @pytest.fixture
    def actions(self, make_browser):
        browser = make_browser(
            elements=[["form", "input"], ["form", "button"]],
            page_text="x" * (MAX_EXTRACT_CHARS + 100),
            denied_urls=["blocked.example"],
        )
        return browser, ActionRegistry(build_default_actions(browser))

    @pytest.mark.asyncio
    async def test_done(self, actions):
        _, registry = actions
        result = await registry.get_action("done").call({"text": "All set"})
        assert result.is_done
        assert result.extracted_content == "All set"

    @pytest.mark.asyncio
    async def test_search_google(self, actions):
        """Searching navigates to a Google results URL."""
        browser, registry = actions
        await registry.get_action("search_google").call({"query": "python asyncio"})
        assert browser.calls == [
            ("navigate_to", "https://www.google.com/search?q=python+asyncio&udm=14")
        ]

    @pytest.mark.asyncio
    async def test_input_and_click(self, actions):
        browser, registry = actions
        await registry.get_action("input_text").call({"index": 0, "text": "hi"})
        result = await registry.get_action("click_element").call({"index": 1})

        assert browser.calls == [("input_text", 0, "hi"), ("click_element", 1)]
        assert result.extracted_content == "Clicked element with index 1"
        assert result.include_in_memory

    @pytest.mark.asyncio
    async def test_scroll(self, actions):
        browser, registry = actions
        await registry.get_action("scroll_down").call({})
        await registry.get_action("scroll_up").call({"amount": 300})
        assert browser.calls == [("scroll", None, True), ("scroll", 300, False)]

    @pytest.mark.asyncio
    async def test_extract_content_truncated(self, actions):
        """Long page text is cut to the extraction limit."""
        _, registry = actions
        result = await registry.get_action("extract_content").call({"goal": "everything"})
        assert len(result.extracted_content) < MAX_EXTRACT_CHARS + 100

    @pytest.mark.asyncio
    async def test_go_to_denied_url(self, actions):
        """Navigation respects the browser's URL policy."""
        browser, registry = actions
        with pytest.raises(URLNotAllowedError):
            await registry.get_action("go_to_url").call({"url": "https://blocked.example/x"})
        assert browser.calls == []

    @pytest.mark.asyncio
    async def test_wait_bounds(self, actions):
        """Wait durations outside 0..60 seconds are rejected."""
        _, registry = actions
        with pytest.raises(ValidationError):
            await registry.get_action("wait").call({"seconds": 120})
