"""Detects a tool call written in the model's reply.

Wire format taught through the system prompt::

    TOOL_CALL: list_collection
    PARAMS: actors

Only the first ``TOOL_CALL:`` in a reply is considered. The tool name must be
a bare ASCII identifier, possibly on a later line than the keyword, that ends
its line (or is followed by whitespace and ``PARAMS:`` on the same line).
``PARAMS:`` may come any distance later, but not after a second ``TOOL_CALL:``.
Anything else is a final answer.
"""

from __future__ import annotations

import logging
import re

from .models import ToolInvocationRequest

logger = logging.getLogger("familiar.agent.parser")

TOOL_CALL_KEYWORD = "TOOL_CALL:"
PARAMS_KEYWORD = "PARAMS:"

_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_]+")
_INLINE_SPACE = " \t"


def _line_end(text: str, pos: int) -> int:
    end = text.find("\n", pos)
    return len(text) if end == -1 else end


def parse_tool_call(reply: str) -> ToolInvocationRequest | None:
    """Return the tool call requested by ``reply`` or None for a final answer."""
    if not reply:
        return None

    start = reply.find(TOOL_CALL_KEYWORD)
    if start == -1:
        return None

    pos = start + len(TOOL_CALL_KEYWORD)
    while pos < len(reply) and reply[pos].isspace():
        pos += 1

    name_match = _IDENTIFIER_RE.match(reply, pos)
    if not name_match:
        logger.debug("TOOL_CALL: without a tool name, treating reply as final answer")
        return None
    tool_name = name_match.group(0)
    pos = name_match.end()

    # The name must be the whole token: "list collection" or "liste_é" are malformed
    rest_of_line = reply[pos:_line_end(reply, pos)]
    if rest_of_line.strip():
        inline = rest_of_line[0] in _INLINE_SPACE and rest_of_line.lstrip(_INLINE_SPACE).startswith(PARAMS_KEYWORD)
        if not inline:
            logger.debug(f"Malformed tool name after TOOL_CALL: {reply[start:start + 80]!r}")
            return None

    params_at = reply.find(PARAMS_KEYWORD, pos)
    if params_at == -1:
        return None

    next_call = reply.find(TOOL_CALL_KEYWORD, pos)
    if next_call != -1 and next_call < params_at:
        return None

    params_start = params_at + len(PARAMS_KEYWORD)
    raw_params = reply[params_start:_line_end(reply, params_start)].strip()
    return ToolInvocationRequest(tool_name=tool_name, raw_params=raw_params)
