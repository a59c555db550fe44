"""
Browser Automation Module

Playwright browser management and the page surface used by the agents.
"""

from ..errors import URLNotAllowedError
from .context import BrowserContext, PlaywrightBrowserContext, is_url_allowed
from .controller import BrowserConfig, BrowserController, create_browser
from .views import (
    BrowserState,
    DOMElementNode,
    TabInfo,
    build_selector_map,
    calc_branch_path_hash_set,
)

__all__ = [
    "BrowserConfig",
    "BrowserContext",
    "BrowserController",
    "BrowserState",
    "DOMElementNode",
    "PlaywrightBrowserContext",
    "TabInfo",
    "URLNotAllowedError",
    "build_selector_map",
    "calc_branch_path_hash_set",
    "create_browser",
    "is_url_allowed",
]
