from __future__ import annotations

import re

from .models import SplitResult

USER_VIEW_MARKER = "USER_VIEW:"

# Human view runs from the marker line to the next blank line (or the end)
_USER_VIEW_RE = re.compile(r"\n\nUSER_VIEW:[^\S\n]*\n?(.*?)(?:\n\n|\Z)", re.DOTALL)
_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)


def split_tool_result(result: str) -> SplitResult:
    """Separate what the model sees from what a person may see.

    Tools append ``\\n\\nUSER_VIEW:\\n<text>`` to restate their output without
    internal IDs. Everything before the marker is the machine view; the block
    after it, up to the next blank line, is the human view.
    """
    match = _USER_VIEW_RE.search(result)
    if not match:
        return SplitResult(machine_view=result.strip(), human_view=None)

    return SplitResult(
        machine_view=result[:match.start()].strip(),
        human_view=match.group(1).strip(),
    )


def strip_thinking(text: str) -> str:
    """Drop ``<think>...</think>`` blocks reasoning models leave in the reply."""
    return _THINK_RE.sub("", text).strip()


def format_tool_result_message(machine_view: str) -> str:
    return f"Tool result: {machine_view}"
