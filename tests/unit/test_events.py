"""Unit tests for event fan-out and the task context control flags."""

import asyncio
import inspect

import pytest

from browser_pilot.agents import CancellationToken
from browser_pilot.chat import ChatMessage, Message
from browser_pilot.errors import RequestCancelledError
from browser_pilot.events import Actors, AgentEvent, EventData, EventManager, ExecutionState


def make_event(state=ExecutionState.STEP_OK, details="ok") -> AgentEvent:
    return AgentEvent(
        actor=Actors.NAVIGATOR,
        state=state,
        data=EventData(task_id="t", step=0, max_steps=10, details=details),
    )


class TestEventManager:
    """Subscribers receive events; failing subscribers are isolated."""

    def test_all_subscribers_notified(self):
        manager = EventManager()
        first, second = [], []
        manager.subscribe(first.append)
        manager.subscribe(second.append)

        manager.emit(make_event())

        assert len(first) == len(second) == 1

    def test_state_filter(self):
        manager = EventManager()
        failures = []
        manager.subscribe(failures.append, state=ExecutionState.STEP_FAIL)

        manager.emit(make_event(ExecutionState.STEP_OK))
        manager.emit(make_event(ExecutionState.STEP_FAIL))

        assert [e.state for e in failures] == [ExecutionState.STEP_FAIL]

    def test_failing_subscriber_isolated(self):
        """An exception in one subscriber does not reach the emitter or other subscribers."""
        manager = EventManager()
        received = []

        def broken(event):
            raise RuntimeError("renderer crashed")

        manager.subscribe(broken)
        manager.subscribe(received.append)

        manager.emit(make_event())

        assert len(received) == 1

    def test_unsubscribe_and_clear(self):
        manager = EventManager()
        received = []
        manager.subscribe(received.append)
        manager.unsubscribe(received.append)
        manager.emit(make_event())
        assert received == []

        manager.subscribe(received.append)
        manager.clear_subscribers()
        manager.emit(make_event())
        assert received == []


class TestCancellationToken:
    """Cancellation of in-flight awaits."""

    @pytest.mark.asyncio
    async def test_result_passed_through(self):
        token = CancellationToken()

        async def answer():
            return 42

        assert await token.run(answer()) == 42

    @pytest.mark.asyncio
    async def test_cancel_interrupts_await(self):
        """Cancelling the token aborts a pending call."""
        token = CancellationToken()
        finished = []

        async def slow():
            await asyncio.sleep(5)
            finished.append(True)

        asyncio.get_running_loop().call_later(0.01, token.cancel)

        with pytest.raises(RequestCancelledError, match="Request cancelled"):
            await token.run(slow())
        assert finished == []

    @pytest.mark.asyncio
    async def test_already_cancelled(self):
        """A call made after cancellation is closed without being scheduled."""
        token = CancellationToken()
        token.cancel()

        coro = asyncio.sleep(0)
        with pytest.raises(RequestCancelledError):
            await token.run(coro)
        assert inspect.getcoroutinestate(coro) == inspect.CORO_CLOSED

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        token = CancellationToken()

        async def failing():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await token.run(failing())

    @pytest.mark.asyncio
    async def test_stop_cancels_context_token(self, browser, make_context):
        """Stopping a task fires its token and halts the agents."""
        context = make_context(browser)

        context.stop()

        assert context.should_halt
        assert context.cancellation.cancelled
        coro = asyncio.sleep(0)
        with pytest.raises(RequestCancelledError):
            await context.run(coro)
        assert inspect.getcoroutinestate(coro) == inspect.CORO_CLOSED

    def test_pause_and_resume(self, browser, make_context):
        context = make_context(browser)
        context.pause()
        assert context.should_halt
        context.resume()
        assert not context.should_halt


class TestChatMessage:
    def test_from_message_flattens_content(self):
        """Image parts are dropped when a message is stored in the transcript."""
        message = Message(
            actor=Actors.NAVIGATOR,
            content=[
                {"type": "text", "text": "Clicked "},
                {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAAA"}},
                {"type": "text", "text": "login"},
            ],
        )

        chat = ChatMessage.from_message(message)

        assert chat.content == "Clicked login"
        assert chat.actor == Actors.NAVIGATOR
        assert chat.timestamp == message.timestamp
        assert chat.id
