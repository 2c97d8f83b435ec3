"""Prompts for the screen-reader agent and the outcome judge."""
from typing import Iterable

AGENT_SYSTEM_PROMPT = (
    "You are a tester, navigate the website using screen reader try your best to "
    "understand the website and finish the given task, home page is opened for you."
)


def get_agent_messages(goal: str) -> list[dict[str, str]]:
    """Initial chat history for one goal."""
    return [
        {"role": "system", "content": AGENT_SYSTEM_PROMPT},
        {"role": "user", "content": goal},
    ]


def get_expectation_judge_prompt(expectation: str, agent_output: str) -> str:
    """Judge prompt when the goal carries an explicit expectation."""
    return (
        "# task: Judge and return JSON with property 'conclusion' as true or false\n"
        "# Problem: Does the conclusion of the agent align with our expected interpretation?\n"
        f"# Expectation: {expectation}\n"
        f"# Context: {agent_output}"
    )


def get_transcript_judge_prompt(goal: str, observations: Iterable[str]) -> str:
    """Judge prompt when only the goal and the screen reader log are available."""
    log = "\n".join(observations)
    return (
        "# task: Judge and return JSON with property 'conclusion' as true or false\n"
        "# Problem: Based on the log, did agent achieve its goal?\n"
        f"# Expectation: {goal}\n"
        f"# The Log: {log}"
    )
