#!/usr/bin/env python
"""
Simple Navigation Example

Runs one natural-language task through the planner, navigator and
validator, restricted to a single site, and prints each agent event.

Usage:
    python examples/simple_navigation.py

Requirements:
    - ANTHROPIC_API_KEY (or OPENAI_API_BASE + OPENAI_API_KEY) set
    - Browser pilot installed: pip install -e .
    - Playwright browsers installed: playwright install chromium
"""

import asyncio

from browser_pilot.agents import Executor
from browser_pilot.browser import BrowserConfig, PlaywrightBrowserContext, create_browser
from browser_pilot.config import AgentSettings, configure_logging
from browser_pilot.llm import create_provider_from_env
from browser_pilot.tui import EventRenderer


async def main():
    """Run simple navigation task."""
    configure_logging()

    settings = AgentSettings.from_env()
    settings.max_steps = 10
    settings.allowed_urls = ["example.com", "iana.org"]

    task = "Go to https://example.com, follow the 'More information' link and tell me the page title"

    async with create_browser(BrowserConfig(headless=False)) as controller:
        browser = PlaywrightBrowserContext(
            controller, settings.allowed_urls, settings.denied_urls
        )
        executor = Executor(
            task,
            None,
            browser,
            navigator_llm=create_provider_from_env("navigator"),
            settings=settings,
        )
        EventRenderer(verbose=True).attach(executor.event_manager)

        try:
            result = await executor.execute()
        finally:
            await executor.cleanup()

    print(f"\nSuccess: {result.success}")
    print(f"Answer: {result.answer or result.error}")


if __name__ == "__main__":
    asyncio.run(main())
