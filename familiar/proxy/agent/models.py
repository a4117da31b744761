from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Union

DEFAULT_MAX_ITERATIONS = 5

Role = Literal["system", "user", "assistant"]

# A tool receives the already split, trimmed parameter fields.
ToolFunction = Callable[[list[str]], Union[str, Awaitable[str]]]


@dataclass(frozen=True)
class Message:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ToolInvocationRequest:
    tool_name: str
    raw_params: str


@dataclass(frozen=True)
class SplitResult:
    machine_view: str
    human_view: str | None = None


@dataclass
class ToolExecution:
    tool_name: str
    raw_params: str
    machine_view: str = ""
    human_view: str | None = None
    duration: float = 0.0


@dataclass
class AgentState:
    """Conversation and iteration counter owned by exactly one run."""

    conversation: list[Message] = field(default_factory=list)
    tool_history: list[ToolExecution] = field(default_factory=list)
    iteration: int = 0
    max_iterations: int = DEFAULT_MAX_ITERATIONS

    def add_message(self, role: Role, content: str) -> None:
        self.conversation.append(Message(role=role, content=content))

    def can_continue(self) -> bool:
        return self.iteration < self.max_iterations

    def increment_iteration(self) -> None:
        self.iteration += 1

    def to_wire(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.conversation]


@dataclass
class AgentResult:
    """What one run produced. ``outcome`` is done, direct, exhausted or failed."""

    answer: str
    outcome: str
    state: AgentState
    error: str | None = None

    def summary(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "iterations": self.state.iteration,
            "tool_calls": [t.tool_name for t in self.state.tool_history],
        }
