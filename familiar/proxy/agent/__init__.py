"""Agent package.

Public API:
    from familiar.proxy.agent import AgentLoop, ToolDispatcher
    from familiar.proxy.agent import parse_tool_call, split_tool_result

Internal layout:
    models.py      Message, AgentState, ToolInvocationRequest, SplitResult, AgentResult
    parser.py      parse_tool_call() (TOOL_CALL:/PARAMS: detection)
    formatters.py  split_tool_result(), strip_thinking()
    tool_defs.py   ToolName, ToolSpec, build_registry() (closed tool set)
    validators.py  split_params(), check_params()
    executors.py   WorldTools (tool bodies), ToolDispatcher
    loop.py        AgentLoop (round-trip state machine)
"""

from .executors import ToolDispatcher, WorldTools
from .formatters import split_tool_result, strip_thinking
from .loop import AgentLoop
from .models import AgentResult, AgentState, Message, SplitResult, ToolInvocationRequest
from .parser import parse_tool_call

__all__ = [
    "AgentLoop",
    "AgentResult",
    "AgentState",
    "Message",
    "SplitResult",
    "ToolDispatcher",
    "ToolInvocationRequest",
    "WorldTools",
    "parse_tool_call",
    "split_tool_result",
    "strip_thinking",
]
