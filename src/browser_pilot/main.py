"""
Browser Pilot CLI Entry Point

Runs a natural-language task in a Playwright browser with the
planner / navigator / validator agents.

Usage:
    python -m browser_pilot.main "Your task description"
    python -m browser_pilot.main "Your task" --verbose --headless
    python -m browser_pilot.main            # interactive session
"""

import argparse
import asyncio
import logging
import sys
import uuid
from typing import Optional

from dotenv import load_dotenv

from .agents import Executor, TaskResult
from .browser import BrowserConfig, PlaywrightBrowserContext, create_browser
from .config import AgentSettings, configure_logging
from .llm import create_provider_from_env
from .tui import EventRenderer, get_console

load_dotenv()

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Browser automation agent with planner, navigator and validator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m browser_pilot.main "Find the top headline on news.ycombinator.com"
    python -m browser_pilot.main "Fill the contact form" --start-url https://example.com
    python -m browser_pilot.main "Check the weather" --headless --verbose
        """,
    )

    parser.add_argument(
        "task",
        nargs="?",
        help="Natural language task description",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show every agent event, including individual actions",
    )

    parser.add_argument(
        "--start-url", "-u",
        type=str,
        default=None,
        help="Initial URL to navigate to before running task",
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode (for CI/CD)",
    )

    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Maximum planner/navigator/validator cycles (default: MAX_STEPS or 100)",
    )

    parser.add_argument(
        "--vision",
        action="store_true",
        help="Send page screenshots to the navigator and validator",
    )

    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode with debug output",
    )

    return parser.parse_args(argv)


def _build_settings(args: argparse.Namespace) -> AgentSettings:
    settings = AgentSettings.from_env()
    if args.max_steps is not None:
        settings.max_steps = args.max_steps
    if args.vision:
        settings.use_vision = True
    return settings


def _print_result(result: TaskResult) -> None:
    console = get_console()
    if result.success:
        console.print(f"[bold green]Done[/bold green] in {result.steps} step(s)")
    elif result.cancelled:
        console.print("[yellow]Task cancelled[/yellow]")
    else:
        console.print(f"[bold red]Failed[/bold red] after {result.steps} step(s)")


async def run_task(
    task: str,
    start_url: Optional[str] = None,
    headless: bool = False,
    verbose: bool = False,
    settings: Optional[AgentSettings] = None,
) -> bool:
    """
    Run a single browser automation task.

    Returns:
        True if task completed successfully, False otherwise
    """
    console = get_console()
    settings = settings or AgentSettings.from_env()

    browser_config = BrowserConfig.from_env()
    browser_config.headless = headless or browser_config.headless

    executor: Optional[Executor] = None
    try:
        async with create_browser(browser_config) as controller:
            browser = PlaywrightBrowserContext(
                controller, settings.allowed_urls, settings.denied_urls
            )
            if start_url:
                console.print(f"[dim]Navigating to {start_url}...[/dim]")
                await browser.navigate_to(start_url)

            executor = Executor(
                task,
                uuid.uuid4().hex,
                browser,
                navigator_llm=create_provider_from_env("navigator"),
                planner_llm=create_provider_from_env("planner"),
                validator_llm=create_provider_from_env("validator"),
                settings=settings,
            )
            EventRenderer(console, verbose=verbose).attach(executor.event_manager)

            console.print(f"[bold]Task:[/bold] {task}\n")
            try:
                result = await executor.execute()
            except asyncio.CancelledError:
                executor.stop()
                raise

            _print_result(result)
            return result.success
    except KeyboardInterrupt:
        console.print("\n[yellow]Task interrupted by user[/yellow]")
        return False
    except Exception as e:
        logger.debug("Task error", exc_info=True)
        console.print(f"[bold red]Error:[/bold red] {e}")
        return False
    finally:
        if executor is not None:
            await executor.cleanup()


async def run_interactive_session(
    start_url: Optional[str] = None,
    headless: bool = False,
    verbose: bool = False,
    settings: Optional[AgentSettings] = None,
) -> None:
    """
    Run a multi-turn session.

    The first input starts a task; later inputs continue it as follow-up
    tasks with the conversation memory preserved.
    """
    console = get_console()
    settings = settings or AgentSettings.from_env()

    console.print("[bold]Browser Pilot[/bold] (Multi-turn Session)")
    console.print("Enter tasks to automate. Context is preserved between commands.")
    console.print("Commands: 'quit' to exit, 'new' to start a fresh conversation\n")

    browser_config = BrowserConfig.from_env()
    browser_config.headless = headless or browser_config.headless

    executor: Optional[Executor] = None
    try:
        async with create_browser(browser_config) as controller:
            browser = PlaywrightBrowserContext(
                controller, settings.allowed_urls, settings.denied_urls
            )
            if start_url:
                await browser.navigate_to(start_url)
                console.print(f"[dim]Ready at {start_url}[/dim]\n")

            while True:
                task = console.console.input("[bold green]>[/bold green] ").strip()
                if not task:
                    continue
                if task.lower() in ("quit", "exit", "q"):
                    break
                if task.lower() == "new":
                    if executor is not None:
                        await executor.cleanup()
                    executor = None
                    console.print("[dim]Starting new conversation...[/dim]\n")
                    continue

                if executor is None:
                    executor = Executor(
                        task,
                        uuid.uuid4().hex,
                        browser,
                        navigator_llm=create_provider_from_env("navigator"),
                        planner_llm=create_provider_from_env("planner"),
                        validator_llm=create_provider_from_env("validator"),
                        settings=settings,
                    )
                    EventRenderer(console, verbose=verbose).attach(executor.event_manager)
                else:
                    executor.add_follow_up_task(task)

                console.print()
                _print_result(await executor.execute())
                console.print()

    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Goodbye![/dim]")
    finally:
        if executor is not None:
            await executor.cleanup()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.dev else None,
        verbose=args.dev,
    )
    settings = _build_settings(args)

    if not args.task:
        asyncio.run(run_interactive_session(
            start_url=args.start_url,
            headless=args.headless,
            verbose=args.verbose,
            settings=settings,
        ))
        return 0

    success = asyncio.run(run_task(
        task=args.task,
        start_url=args.start_url,
        headless=args.headless,
        verbose=args.verbose,
        settings=settings,
    ))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
