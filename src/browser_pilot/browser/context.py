"""
Browser Context

The page surface the agents act on. ``BrowserContext`` is the interface the
navigator and the built-in actions use; ``PlaywrightBrowserContext`` drives a
real page through a ``BrowserController``.

Elements are addressed by highlight index. Each ``get_state`` call re-tags the
interactive elements with ``data-pilot-index`` attributes so actions can find
them again.
"""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

from playwright.async_api import Page

from ..errors import URLNotAllowedError
from .controller import BrowserController
from .views import BrowserState, DOMElementNode, TabInfo, build_selector_map

logger = logging.getLogger(__name__)

INDEX_ATTRIBUTE = "data-pilot-index"
HIGHLIGHT_CONTAINER_ID = "browser-pilot-highlight-container"

# Always reachable regardless of the allow list
INTERNAL_URL_PREFIXES = ("about:blank", "chrome://newtab", "data:")

_BUILD_DOM_TREE_JS = """(args) => {
    const { highlight, indexAttribute, containerId } = args;
    const INTERACTIVE_TAGS = new Set([
        'a', 'button', 'input', 'select', 'textarea', 'summary', 'details', 'option'
    ]);
    const INTERACTIVE_ROLES = new Set([
        'button', 'link', 'checkbox', 'radio', 'tab', 'menuitem', 'option',
        'switch', 'textbox', 'combobox', 'searchbox'
    ]);
    const ATTRIBUTES = [
        'title', 'type', 'name', 'role', 'aria-label', 'placeholder', 'value', 'alt', 'href'
    ];

    document.querySelectorAll('[' + indexAttribute + ']').forEach(
        (el) => el.removeAttribute(indexAttribute)
    );
    const oldContainer = document.getElementById(containerId);
    if (oldContainer) oldContainer.remove();

    let container = null;
    if (highlight) {
        container = document.createElement('div');
        container.id = containerId;
        container.style.position = 'fixed';
        container.style.pointerEvents = 'none';
        container.style.top = '0';
        container.style.left = '0';
        container.style.zIndex = '2147483647';
        document.body.appendChild(container);
    }

    function isVisible(el) {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        return rect.width > 0 && rect.height > 0
            && style.visibility !== 'hidden' && style.display !== 'none';
    }

    function isInteractive(el) {
        const tag = el.tagName.toLowerCase();
        if (INTERACTIVE_TAGS.has(tag)) return !el.disabled;
        const role = el.getAttribute('role');
        if (role && INTERACTIVE_ROLES.has(role)) return true;
        if (el.hasAttribute('onclick')) return true;
        const editable = el.getAttribute('contenteditable');
        return editable === '' || editable === 'true';
    }

    function drawHighlight(el, index) {
        const rect = el.getBoundingClientRect();
        const box = document.createElement('div');
        box.style.position = 'fixed';
        box.style.border = '2px solid #ff6b00';
        box.style.top = rect.top + 'px';
        box.style.left = rect.left + 'px';
        box.style.width = rect.width + 'px';
        box.style.height = rect.height + 'px';
        const label = document.createElement('div');
        label.textContent = String(index);
        label.style.position = 'absolute';
        label.style.top = '-16px';
        label.style.background = '#ff6b00';
        label.style.color = 'white';
        label.style.fontSize = '11px';
        label.style.padding = '0 3px';
        box.appendChild(label);
        container.appendChild(box);
    }

    let nextIndex = 0;

    function walk(el, xpath) {
        const tag = el.tagName.toLowerCase();
        if (tag === 'script' || tag === 'style' || el.id === containerId) return null;

        const interactive = isInteractive(el) && isVisible(el);
        const node = {
            tag_name: tag,
            xpath: xpath,
            attributes: {},
            text: '',
            is_interactive: interactive,
            highlight_index: null,
            children: [],
        };

        if (interactive) {
            node.highlight_index = nextIndex++;
            el.setAttribute(indexAttribute, String(node.highlight_index));
            for (const name of ATTRIBUTES) {
                const value = el.getAttribute(name);
                if (value) node.attributes[name] = value.slice(0, 100);
            }
            node.text = (el.innerText || el.value || '').trim().replace(/\\s+/g, ' ').slice(0, 100);
            if (highlight) drawHighlight(el, node.highlight_index);
        }

        const counts = {};
        for (const child of el.children) {
            const childTag = child.tagName.toLowerCase();
            counts[childTag] = (counts[childTag] || 0) + 1;
            const childNode = walk(child, xpath + '/' + childTag + '[' + counts[childTag] + ']');
            if (childNode) node.children.push(childNode);
        }

        if (!interactive && node.children.length === 0) return null;
        return node;
    }

    const root = walk(document.body, '/html/body') || {
        tag_name: 'body', xpath: '/html/body', attributes: {}, text: '',
        is_interactive: false, highlight_index: null, children: [],
    };
    return {
        tree: root,
        pixels_above: Math.round(window.scrollY),
        pixels_below: Math.max(
            0, Math.round(document.documentElement.scrollHeight - window.scrollY - window.innerHeight)
        ),
    };
}"""


def _url_matches(url: str, pattern: str) -> bool:
    pattern = pattern.strip().lower()
    url = url.lower()
    if "://" in pattern:
        return url.startswith(pattern)
    host = urlparse(url).hostname or ""
    return host == pattern or host.endswith("." + pattern)


def is_url_allowed(url: str, allowed_urls: list[str], denied_urls: list[str]) -> bool:
    """
    Apply the allow/deny policy to a URL.

    Deny entries win over allow entries. An empty allow list allows every URL
    that is not denied. Entries are hostnames (subdomains included) or URL
    prefixes containing a scheme.
    """
    if url.startswith(INTERNAL_URL_PREFIXES):
        return True
    if any(_url_matches(url, pattern) for pattern in denied_urls):
        return False
    if not allowed_urls:
        return True
    return any(_url_matches(url, pattern) for pattern in allowed_urls)


class BrowserContext(ABC):
    """Page operations the agents and actions rely on."""

    def __init__(
        self,
        allowed_urls: Optional[list[str]] = None,
        denied_urls: Optional[list[str]] = None,
    ):
        self.allowed_urls = list(allowed_urls or [])
        self.denied_urls = list(denied_urls or [])

    def is_url_allowed(self, url: str) -> bool:
        return is_url_allowed(url, self.allowed_urls, self.denied_urls)

    def check_url(self, url: str) -> None:
        """Raise URLNotAllowedError if the policy forbids ``url``."""
        if not self.is_url_allowed(url):
            raise URLNotAllowedError(f"URL not allowed: {url}")

    @abstractmethod
    async def get_state(self, use_vision: bool = False) -> BrowserState:
        """Capture the page, highlighting interactive elements."""

    @abstractmethod
    async def remove_highlight(self) -> None:
        pass

    @abstractmethod
    async def navigate_to(self, url: str) -> None:
        pass

    @abstractmethod
    async def go_back(self) -> None:
        pass

    @abstractmethod
    async def click_element(self, index: int) -> None:
        pass

    @abstractmethod
    async def input_text(self, index: int, text: str) -> None:
        pass

    @abstractmethod
    async def scroll(self, amount: Optional[int] = None, down: bool = True) -> None:
        """Scroll by ``amount`` pixels, or one page when None."""

    @abstractmethod
    async def send_keys(self, keys: str) -> None:
        pass

    @abstractmethod
    async def switch_tab(self, page_id: int) -> None:
        pass

    @abstractmethod
    async def open_tab(self, url: str) -> None:
        pass

    @abstractmethod
    async def get_page_text(self) -> str:
        pass


class PlaywrightBrowserContext(BrowserContext):
    """
    BrowserContext backed by a Playwright page.

    Usage:
        >>> async with create_browser() as controller:
        ...     context = PlaywrightBrowserContext(controller)
        ...     state = await context.get_state()
    """

    def __init__(
        self,
        controller: BrowserController,
        allowed_urls: Optional[list[str]] = None,
        denied_urls: Optional[list[str]] = None,
    ):
        super().__init__(allowed_urls, denied_urls)
        self.controller = controller
        self._active_page: Optional[Page] = None
        self._cached_state: Optional[BrowserState] = None

    @property
    def pages(self) -> list[Page]:
        return list(self.controller.pages)

    async def get_current_page(self) -> Page:
        if self._active_page is None or self._active_page.is_closed():
            page = self.controller.current_page
            if page is None:
                page = await self.controller.new_page()
            self._active_page = page
        return self._active_page

    async def _check_current_url(self, page: Page) -> None:
        """Back out of a page the policy forbids (e.g. reached through a click)."""
        if not self.is_url_allowed(page.url):
            url = page.url
            await page.go_back()
            raise URLNotAllowedError(f"URL not allowed: {url}")

    async def get_tabs_info(self) -> list[TabInfo]:
        tabs = []
        for page_id, page in enumerate(self.pages):
            tabs.append(TabInfo(page_id=page_id, url=page.url, title=await page.title()))
        return tabs

    async def get_state(self, use_vision: bool = False) -> BrowserState:
        page = await self.get_current_page()
        await page.wait_for_load_state("domcontentloaded")

        result = await page.evaluate(
            _BUILD_DOM_TREE_JS,
            {
                "highlight": True,
                "indexAttribute": INDEX_ATTRIBUTE,
                "containerId": HIGHLIGHT_CONTAINER_ID,
            },
        )
        tree = DOMElementNode.from_dict(result["tree"])

        screenshot = None
        if use_vision:
            data = await page.screenshot(type="jpeg", quality=70)
            screenshot = base64.b64encode(data).decode("ascii")

        state = BrowserState(
            element_tree=tree,
            selector_map=build_selector_map(tree),
            url=page.url,
            title=await page.title(),
            tabs=await self.get_tabs_info(),
            screenshot=screenshot,
            pixels_above=result.get("pixels_above", 0),
            pixels_below=result.get("pixels_below", 0),
        )
        self._cached_state = state
        logger.debug("Captured state of %s: %d elements", page.url, len(state.selector_map))
        return state

    async def remove_highlight(self) -> None:
        page = await self.get_current_page()
        await page.evaluate(
            "(id) => { const el = document.getElementById(id); if (el) el.remove(); }",
            HIGHLIGHT_CONTAINER_ID,
        )

    async def _locate(self, page: Page, index: int):
        if self._cached_state is not None and index not in self._cached_state.selector_map:
            raise ValueError(
                f"Element with index {index} does not exist - retry or use alternative actions"
            )
        locator = page.locator(f'[{INDEX_ATTRIBUTE}="{index}"]')
        if await locator.count() == 0:
            raise ValueError(f"Element with index {index} is no longer on the page")
        return locator.first

    async def navigate_to(self, url: str) -> None:
        self.check_url(url)
        page = await self.get_current_page()
        await page.goto(url, wait_until="domcontentloaded")

    async def go_back(self) -> None:
        page = await self.get_current_page()
        await page.go_back(wait_until="domcontentloaded")

    async def click_element(self, index: int) -> None:
        page = await self.get_current_page()
        element = await self._locate(page, index)
        pages_before = len(self.pages)
        await element.click()

        # A click that opened a new tab moves the agent to it
        if len(self.pages) > pages_before:
            self._active_page = self.pages[-1]
            await self._active_page.wait_for_load_state("domcontentloaded")
        await self._check_current_url(await self.get_current_page())

    async def input_text(self, index: int, text: str) -> None:
        page = await self.get_current_page()
        element = await self._locate(page, index)
        await element.fill(text)

    async def scroll(self, amount: Optional[int] = None, down: bool = True) -> None:
        page = await self.get_current_page()
        sign = 1 if down else -1
        if amount is None:
            await page.evaluate("(sign) => window.scrollBy(0, sign * window.innerHeight)", sign)
        else:
            await page.evaluate("(dy) => window.scrollBy(0, dy)", sign * amount)

    async def send_keys(self, keys: str) -> None:
        page = await self.get_current_page()
        await page.keyboard.press(keys)

    async def switch_tab(self, page_id: int) -> None:
        pages = self.pages
        if page_id < 0 or page_id >= len(pages):
            raise ValueError(f"No tab with id {page_id}")
        page = pages[page_id]
        self.check_url(page.url)
        await page.bring_to_front()
        self._active_page = page

    async def open_tab(self, url: str) -> None:
        self.check_url(url)
        page = await self.controller.new_page()
        await page.goto(url, wait_until="domcontentloaded")
        self._active_page = page

    async def get_page_text(self) -> str:
        page = await self.get_current_page()
        return await page.inner_text("body")
