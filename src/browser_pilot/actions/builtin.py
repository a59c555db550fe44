"""
Built-in Actions

The default navigator action set, bound to one BrowserContext.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import quote_plus

from pydantic import BaseModel, Field

from ..browser.context import BrowserContext
from .base import Action, ActionResult, NoParams, action

logger = logging.getLogger(__name__)

# Characters of page text returned by extract_content
MAX_EXTRACT_CHARS = 8000


class DoneParams(BaseModel):
    text: str = Field(description="Final answer or summary of what was done")
    success: bool = True


class SearchGoogleParams(BaseModel):
    query: str


class GoToUrlParams(BaseModel):
    url: str


class ClickElementParams(BaseModel):
    index: int = Field(description="Highlight index of the element")
    intent: Optional[str] = Field(default=None, description="Why this element is clicked")


class InputTextParams(BaseModel):
    index: int = Field(description="Highlight index of the input element")
    text: str


class SwitchTabParams(BaseModel):
    page_id: int


class OpenTabParams(BaseModel):
    url: str


class ScrollParams(BaseModel):
    amount: Optional[int] = Field(
        default=None, description="Pixels to scroll; one page when omitted"
    )


class SendKeysParams(BaseModel):
    keys: str = Field(description='Key or combination, e.g. "Enter" or "Control+A"')


class ExtractContentParams(BaseModel):
    goal: str = Field(description="What information to extract from the page")


class WaitParams(BaseModel):
    seconds: float = Field(default=3, ge=0, le=60)


def build_default_actions(browser: BrowserContext) -> list[Action]:
    """Create the built-in actions operating on ``browser``."""

    @action("done", "Complete the task and report the final answer", DoneParams)
    async def done(params: DoneParams) -> ActionResult:
        return ActionResult(
            is_done=True, extracted_content=params.text, include_in_memory=True
        )

    @action(
        "search_google",
        "Search the query in Google in the current tab",
        SearchGoogleParams,
    )
    async def search_google(params: SearchGoogleParams) -> ActionResult:
        await browser.navigate_to(
            f"https://www.google.com/search?q={quote_plus(params.query)}&udm=14"
        )
        msg = f'Searched for "{params.query}" in Google'
        logger.info(msg)
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("go_to_url", "Navigate to URL in the current tab", GoToUrlParams)
    async def go_to_url(params: GoToUrlParams) -> ActionResult:
        await browser.navigate_to(params.url)
        msg = f"Navigated to {params.url}"
        logger.info(msg)
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("go_back", "Go back to the previous page")
    async def go_back(params: NoParams) -> ActionResult:
        await browser.go_back()
        return ActionResult(extracted_content="Navigated back", include_in_memory=True)

    @action("click_element", "Click element by index", ClickElementParams)
    async def click_element(params: ClickElementParams) -> ActionResult:
        await browser.click_element(params.index)
        msg = f"Clicked element with index {params.index}"
        logger.info(msg)
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("input_text", "Input text into an interactive element", InputTextParams)
    async def input_text(params: InputTextParams) -> ActionResult:
        await browser.input_text(params.index, params.text)
        msg = f"Input {params.text} into index {params.index}"
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("switch_tab", "Switch to the tab with the given id", SwitchTabParams)
    async def switch_tab(params: SwitchTabParams) -> ActionResult:
        await browser.switch_tab(params.page_id)
        msg = f"Switched to tab {params.page_id}"
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("open_tab", "Open URL in a new tab", OpenTabParams)
    async def open_tab(params: OpenTabParams) -> ActionResult:
        await browser.open_tab(params.url)
        msg = f"Opened {params.url} in new tab"
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("scroll_down", "Scroll down the page by pixel amount, or one page", ScrollParams)
    async def scroll_down(params: ScrollParams) -> ActionResult:
        await browser.scroll(params.amount, down=True)
        amount = f"{params.amount} pixels" if params.amount is not None else "one page"
        return ActionResult(extracted_content=f"Scrolled down the page by {amount}", include_in_memory=True)

    @action("scroll_up", "Scroll up the page by pixel amount, or one page", ScrollParams)
    async def scroll_up(params: ScrollParams) -> ActionResult:
        await browser.scroll(params.amount, down=False)
        amount = f"{params.amount} pixels" if params.amount is not None else "one page"
        return ActionResult(extracted_content=f"Scrolled up the page by {amount}", include_in_memory=True)

    @action("send_keys", "Send special keys or shortcuts to the page", SendKeysParams)
    async def send_keys(params: SendKeysParams) -> ActionResult:
        await browser.send_keys(params.keys)
        return ActionResult(extracted_content=f"Sent keys: {params.keys}", include_in_memory=True)

    @action(
        "extract_content",
        "Extract the page text to gather information for a goal",
        ExtractContentParams,
    )
    async def extract_content(params: ExtractContentParams) -> ActionResult:
        text = (await browser.get_page_text()).strip()
        if len(text) > MAX_EXTRACT_CHARS:
            text = text[:MAX_EXTRACT_CHARS] + "..."
        msg = f"Extracted page content for goal '{params.goal}':\n{text}"
        return ActionResult(extracted_content=msg, include_in_memory=True)

    @action("wait", "Wait for a number of seconds", WaitParams)
    async def wait(params: WaitParams) -> ActionResult:
        await asyncio.sleep(params.seconds)
        return ActionResult(
            extracted_content=f"Waited for {params.seconds} seconds", include_in_memory=True
        )

    return [
        done,
        search_google,
        go_to_url,
        go_back,
        click_element,
        input_text,
        switch_tab,
        open_tab,
        scroll_down,
        scroll_up,
        send_keys,
        extract_content,
        wait,
    ]
