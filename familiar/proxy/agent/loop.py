from __future__ import annotations

import logging
import time
from typing import Callable

from ..config import LoopOptions
from ..llm import ChatRequest, ChatTransport, reply_content
from ..system import build_system_prompt
from .executors import ToolDispatcher
from .formatters import format_tool_result_message, split_tool_result, strip_thinking
from .models import AgentResult, AgentState, ToolExecution
from .parser import parse_tool_call
from .tool_defs import describe_tools

logger = logging.getLogger("familiar.agent")

NO_REPLY_PLACEHOLDER = "Nothing came through the veil."
SILENT_PLACEHOLDER = "The familiar is silent."
DISTURBANCE_MESSAGE = "The familiar encountered a magical disturbance."
CONFUSED_MESSAGE = "I got a bit confused trying to use my tools. Let me try a simpler approach."


class AgentLoop:
    """Drives one question through model round-trips and tool calls.

    Every call to ``run``/``converse`` builds its own AgentState, so one loop
    instance can serve many conversations; the only shared piece is the
    dispatcher's read-only registry.
    """

    def __init__(
        self,
        transport: ChatTransport,
        dispatcher: ToolDispatcher,
        options: LoopOptions,
        finalize: Callable[[str], str] = strip_thinking,
    ) -> None:
        self.transport = transport
        self.dispatcher = dispatcher
        self.options = options
        self.finalize = finalize
        self.tool_catalogue = describe_tools()

    async def run(
        self,
        user_prompt: str,
        system_prompt: str,
        tools_enabled: bool | None = None,
        max_iterations: int | None = None,
    ) -> str:
        result = await self.converse(user_prompt, system_prompt, tools_enabled, max_iterations)
        return result.answer

    async def converse(
        self,
        user_prompt: str,
        system_prompt: str,
        tools_enabled: bool | None = None,
        max_iterations: int | None = None,
    ) -> AgentResult:
        if tools_enabled is None:
            tools_enabled = self.options.tools_enabled
        if max_iterations is None:
            max_iterations = self.options.max_iterations

        state = AgentState(max_iterations=max_iterations)
        start_time = time.time()
        try:
            if not tools_enabled:
                result = await self._answer_directly(state, user_prompt, system_prompt)
            else:
                result = await self._answer_with_tools(state, user_prompt, system_prompt)
        except Exception as e:
            logger.exception("Fatal error in agent loop")
            return AgentResult(
                answer=DISTURBANCE_MESSAGE,
                outcome="failed",
                state=state,
                error=str(e),
            )

        logger.info(
            f"Conversation {result.outcome} after {state.iteration} round-trip(s), "
            f"{len(state.tool_history)} tool call(s), {time.time() - start_time:.1f}s"
        )
        return result

    async def _answer_directly(
        self, state: AgentState, user_prompt: str, system_prompt: str
    ) -> AgentResult:
        state.add_message("system", system_prompt)
        state.add_message("user", user_prompt)
        state.increment_iteration()

        content = reply_content(await self._round_trip(state)) or SILENT_PLACEHOLDER
        return AgentResult(answer=self.finalize(content), outcome="direct", state=state)

    async def _answer_with_tools(
        self, state: AgentState, user_prompt: str, system_prompt: str
    ) -> AgentResult:
        full_prompt = build_system_prompt(system_prompt, self.tool_catalogue)
        state.add_message("system", full_prompt)
        state.add_message("user", user_prompt)

        logger.debug("=== CONVERSATION START ===")
        logger.debug(f"System Prompt: {full_prompt}")
        logger.debug(f"User Request: {user_prompt}")

        while state.can_continue():
            state.increment_iteration()
            logger.debug(
                f"=== ITERATION {state.iteration} === sending {len(state.conversation)} messages: "
                + ", ".join(f"{m.role}({len(m.content)})" for m in state.conversation)
            )

            content = reply_content(await self._round_trip(state)) or NO_REPLY_PLACEHOLDER
            logger.debug(f"Raw LLM Response: {content}")

            request = parse_tool_call(content)
            if request is None:
                logger.debug("Final response (no tool call detected)")
                return AgentResult(answer=self.finalize(content), outcome="done", state=state)

            logger.info(f"Tool Call Detected: {request.tool_name}({request.raw_params!r})")
            state.add_message("assistant", content)

            started = time.time()
            tool_result = await self.dispatcher.execute(request.tool_name, request.raw_params)
            split = split_tool_result(tool_result)
            state.tool_history.append(ToolExecution(
                tool_name=request.tool_name,
                raw_params=request.raw_params,
                machine_view=split.machine_view,
                human_view=split.human_view,
                duration=time.time() - started,
            ))

            preview = split.machine_view[:200] + "..." if len(split.machine_view) > 200 else split.machine_view
            logger.debug(f"Tool Result ({len(split.machine_view)} chars): {preview}")
            if split.human_view:
                logger.debug(f"User-friendly tool result: {split.human_view}")

            state.add_message("user", format_tool_result_message(split.machine_view))

        logger.warning(f"Max iterations ({state.max_iterations}) reached without final response")
        return AgentResult(answer=CONFUSED_MESSAGE, outcome="exhausted", state=state)

    async def _round_trip(self, state: AgentState) -> dict:
        request = ChatRequest(
            model=self.options.model,
            messages=state.to_wire(),
            temperature=self.options.temperature,
            max_tokens=self.options.max_tokens,
        )
        return await self.transport.send(request)
