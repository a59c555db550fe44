"""
Shared fixtures: in-memory fakes for the chat model and the browser.

The fakes are exposed through factory fixtures so tests never need a real
browser or API key.
"""

import inspect
from typing import Any, Callable, Optional

import pytest

from browser_pilot.actions.base import ActionResult
from browser_pilot.agents.context import AgentOptions, TaskContext
from browser_pilot.browser.context import BrowserContext
from browser_pilot.browser.views import BrowserState, DOMElementNode, TabInfo, build_selector_map
from browser_pilot.events import EventManager
from browser_pilot.llm.provider import LLMConfig, LLMProvider, ProviderType, ToolCall


class FakeChatModel(LLMProvider):
    """
    Scripted chat model.

    Each call consumes the next scripted response. A response may be a value
    (returned), an exception (raised) or a callable taking the messages
    (called, and awaited if it returns an awaitable).
    """

    def __init__(
        self,
        responses: Optional[list[Any]] = None,
        tool_responses: Optional[list[Any]] = None,
        function_calling: bool = False,
        provider_type: ProviderType = ProviderType.ANTHROPIC,
    ):
        super().__init__(LLMConfig(api_key="test-key", provider_type=provider_type))
        self.responses = list(responses or [])
        self.tool_responses = list(tool_responses or [])
        self.function_calling = function_calling
        self.calls: list[list] = []
        self.closed = False

    @property
    def supports_function_calling(self) -> bool:
        return self.function_calling

    async def initialize(self) -> None:
        pass

    async def _next(self, queue: list, messages: list) -> Any:
        self.calls.append(list(messages))
        if not queue:
            raise AssertionError("FakeChatModel ran out of scripted responses")
        response = queue.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(messages)
            if inspect.isawaitable(response):
                response = await response
        return response

    async def invoke(self, messages, output_schema=None, options=None):
        return await self._next(self.responses, messages)

    async def invoke_with_tools(self, messages, tools, options=None) -> list[ToolCall]:
        return await self._next(self.tool_responses, messages)

    async def close(self) -> None:
        self.closed = True


class FakeBrowserContext(BrowserContext):
    """
    Page made of interactive elements, each described by its tag path.

    ``on_click`` maps an element index to a callback run when it is clicked,
    which can add or remove elements to simulate DOM changes.
    """

    def __init__(
        self,
        elements: Optional[list[list[str]]] = None,
        url: str = "https://example.com/",
        page_text: str = "",
        allowed_urls: Optional[list[str]] = None,
        denied_urls: Optional[list[str]] = None,
    ):
        super().__init__(allowed_urls, denied_urls)
        self.elements = [list(path) for path in elements or [["div", "a"]]]
        self.url = url
        self.title = "Example"
        self.page_text = page_text
        self.screenshot: Optional[str] = None
        self.on_click: dict[int, Callable[["FakeBrowserContext"], None]] = {}
        self.calls: list[tuple] = []
        self.state_calls = 0

    def _build_tree(self) -> DOMElementNode:
        root = DOMElementNode(tag_name="body", xpath="/html/body")
        for index, path in enumerate(self.elements):
            parent = root
            for tag in path[:-1]:
                parent = parent.add_child(DOMElementNode(tag_name=tag))
            parent.add_child(
                DOMElementNode(
                    tag_name=path[-1],
                    text=f"element {index}",
                    is_interactive=True,
                    highlight_index=index,
                )
            )
        return root

    async def get_state(self, use_vision: bool = False) -> BrowserState:
        self.state_calls += 1
        tree = self._build_tree()
        return BrowserState(
            element_tree=tree,
            selector_map=build_selector_map(tree),
            url=self.url,
            title=self.title,
            tabs=[TabInfo(page_id=0, url=self.url, title=self.title)],
            screenshot=self.screenshot if use_vision else None,
        )

    async def remove_highlight(self) -> None:
        pass

    async def navigate_to(self, url: str) -> None:
        self.check_url(url)
        self.calls.append(("navigate_to", url))
        self.url = url

    async def go_back(self) -> None:
        self.calls.append(("go_back",))

    async def click_element(self, index: int) -> None:
        if index >= len(self.elements):
            raise ValueError(f"Element with index {index} does not exist")
        self.calls.append(("click_element", index))
        callback = self.on_click.get(index)
        if callback:
            callback(self)

    async def input_text(self, index: int, text: str) -> None:
        self.calls.append(("input_text", index, text))

    async def scroll(self, amount: Optional[int] = None, down: bool = True) -> None:
        self.calls.append(("scroll", amount, down))

    async def send_keys(self, keys: str) -> None:
        self.calls.append(("send_keys", keys))

    async def switch_tab(self, page_id: int) -> None:
        self.calls.append(("switch_tab", page_id))

    async def open_tab(self, url: str) -> None:
        self.check_url(url)
        self.calls.append(("open_tab", url))

    async def get_page_text(self) -> str:
        self.calls.append(("get_page_text",))
        return self.page_text

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def make_llm():
    """Factory for scripted chat models."""
    return FakeChatModel


@pytest.fixture
def make_browser():
    """Factory for fake browser contexts."""
    return FakeBrowserContext


@pytest.fixture
def browser():
    return FakeBrowserContext()


@pytest.fixture
def make_context():
    """Factory for a TaskContext with test-friendly timings."""

    def _make(browser_context: BrowserContext, **overrides) -> TaskContext:
        options = {
            "action_settle_delay": 0,
            "pause_poll_interval": 0.01,
            **overrides,
        }
        context = TaskContext(
            task_id="test-task",
            browser_context=browser_context,
            options=AgentOptions(**options),
            event_manager=EventManager(),
        )
        context.message_manager.init_task_messages("You are a navigator.", "Test task")
        return context

    return _make


@pytest.fixture
def recorded_events():
    """Attach to an EventManager and collect everything it emits."""

    def _attach(event_manager: EventManager) -> list:
        events = []
        event_manager.subscribe(events.append)
        return events

    return _attach


def navigator_output(*actions: dict, next_goal: str = "continue") -> dict:
    return {
        "current_state": {
            "evaluation_previous_goal": "Unknown",
            "memory": "",
            "next_goal": next_goal,
        },
        "action": list(actions),
    }


@pytest.fixture
def nav_output():
    """Build a navigator model answer from action dicts."""
    return navigator_output


@pytest.fixture
def done_result():
    return ActionResult(is_done=True, extracted_content="finished", include_in_memory=True)
