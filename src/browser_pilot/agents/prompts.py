"""
Agent Prompts

System prompts for the three roles and the builders for the per-step
browser-state message.
"""

from typing import Optional, Union

from ..actions.base import ActionResult
from ..browser.views import BrowserState
from ..llm.provider import Message, user_message

PLANNER_SYSTEM_PROMPT = """You are the Planner agent for a browser automation system.

## Role
You look at the task, the conversation so far and the latest browser state,
and decide what should happen next. A separate Navigator executes your plan
on the page.

## Responsibilities
1. Decide whether the task needs a web browser at all (web_task).
   Answer questions you can answer directly without browsing.
2. Observe where the task stands and what blocks progress.
3. Break the remaining work into 2-3 concrete next steps.
4. Set done to true only when the task is fully complete.

## Output
Respond with JSON only:
{
  "observation": "brief analysis of the current state",
  "challenges": "potential obstacles",
  "done": true or false,
  "next_steps": "2-3 high-level next steps, or the final answer when done",
  "reasoning": "why these steps",
  "web_task": true or false
}
"""

NAVIGATOR_SYSTEM_PROMPT = """You are the Navigator agent for a browser automation system.

## Role
You carry out the plan by interacting with the current page. Interactive
elements are listed as [index]<tag attributes>text</tag>; refer to them by index.

## Rules
- Respond with JSON only, matching:
  {{"current_state": {{"evaluation_previous_goal": "Success|Failed|Unknown - short reason",
                       "memory": "what has been done and what to remember",
                       "next_goal": "what the next actions achieve"}},
    "action": [{{"action_name": {{"param": "value"}}}}, ...]}}
- Each action item holds exactly one action. Actions run in order.
- Use at most {max_actions} actions per response.
- If the page changes after an action, the remaining actions are skipped and
  you see the new state next step.
- Use done as the last action once the task is complete, with the final answer in text.
- Only use indexes that appear in the element list.

## Available actions
{action_descriptions}
"""

VALIDATOR_SYSTEM_PROMPT = """You are the Validator agent for a browser automation system.

## Role
You decide whether the task has been accomplished, based on the task, the
plan and the current browser state.

## Rules
- If the task is not complete, or the page does not show what is needed,
  answer is_valid false and explain why in reason.
- If the task is complete, answer is_valid true and put the final answer
  for the user in answer, as plain text.
- For questions answered from general knowledge without browsing, accept
  a correct plan output as valid.

## Output
Respond with JSON only:
{"is_valid": true or false, "reason": "why", "answer": "final answer when valid, else empty"}
"""


def navigator_system_prompt(action_descriptions: str, max_actions: int) -> str:
    return NAVIGATOR_SYSTEM_PROMPT.format(
        action_descriptions=action_descriptions, max_actions=max_actions
    )


def describe_browser_state(state: BrowserState) -> str:
    elements = state.element_tree.clickable_elements_to_string()
    if elements:
        before = (
            f"... {state.pixels_above} pixels above - scroll up to see more ...\n"
            if state.pixels_above > 0
            else "[Start of page]\n"
        )
        after = (
            f"\n... {state.pixels_below} pixels below - scroll down to see more ..."
            if state.pixels_below > 0
            else "\n[End of page]"
        )
        elements = before + elements + after
    else:
        elements = "empty page"

    current_tab = next((tab for tab in state.tabs if tab.url == state.url), None)
    other_tabs = [
        f"- {{id: {tab.page_id}, url: {tab.url}, title: {tab.title}}}"
        for tab in state.tabs
        if tab is not current_tab
    ]
    tab_id = current_tab.page_id if current_tab else 0
    other = "\n".join(other_tabs) or "- none"

    return (
        f"Current tab: {{id: {tab_id}, url: {state.url}, title: {state.title}}}\n"
        f"Other available tabs:\n{other}\n"
        f"Interactive elements from the current page:\n{elements}"
    )


def build_state_message(
    state: BrowserState,
    action_results: Optional[list[ActionResult]] = None,
    step: Optional[int] = None,
    max_steps: Optional[int] = None,
    use_vision: bool = False,
) -> Message:
    """
    Build the transient "current browser state" user message.

    Results still carrying content or an error are listed after the state.
    With vision on and a screenshot available, the message is text + image.
    """
    text = "[Task history memory ends]\n[Current state starts here]\n"
    text += describe_browser_state(state)

    if step is not None and max_steps is not None:
        text += f"\nCurrent step: {step + 1}/{max_steps}"

    results = [r for r in action_results or [] if r.extracted_content or r.error]
    for i, result in enumerate(results, start=1):
        if result.extracted_content:
            text += f"\nAction result {i}/{len(results)}: {result.extracted_content}"
        if result.error:
            last_line = result.error.splitlines()[-1]
            text += f"\nAction error {i}/{len(results)}: ...{last_line}"

    return user_message(_with_screenshot(text, state.screenshot if use_vision else None))


def build_validator_content(
    task: str,
    state: BrowserState,
    plan: Optional[str] = None,
    use_vision: bool = False,
) -> Union[str, list[dict]]:
    """User content for the validator: task, browser state and current plan."""
    text = f"Task to validate: {task}\n\n{describe_browser_state(state)}"
    if plan:
        text += f"\n\nThe current plan is: \n{plan}"
    return _with_screenshot(text, state.screenshot if use_vision else None)


def _with_screenshot(text: str, screenshot: Optional[str]) -> Union[str, list[dict]]:
    if not screenshot:
        return text
    return [
        {"type": "text", "text": text},
        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{screenshot}"}},
    ]
