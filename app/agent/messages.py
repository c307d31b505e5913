"""
Conversation data model: messages, tool calls, and stream events.

Messages are frozen; the conversation only ever grows by appending new ones.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from app.core.errors import MissingToolResultError

logger = logging.getLogger(__name__)

# "system" only appears in prompts built for a model call, never in AgentState.
Role = Literal["system", "user", "assistant", "tool"]

VERDICT_TOOL_NAME = "grade_relevance"


@dataclass(frozen=True)
class ToolCall:
    """A tool request issued by an assistant turn."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


@dataclass(frozen=True)
class Message:
    """One turn in the conversation."""

    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: Iterable[ToolCall] = ()) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool_result(cls, content: str, tool_call_id: str, name: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name)

    @classmethod
    def verdict(cls, binary_score: str, call_id: str = "") -> "Message":
        call = ToolCall(id=call_id, name=VERDICT_TOOL_NAME, arguments={"binary_score": binary_score})
        return cls(role="assistant", tool_calls=(call,))

    @property
    def is_verdict(self) -> bool:
        return (
            self.role == "assistant"
            and len(self.tool_calls) == 1
            and self.tool_calls[0].name == VERDICT_TOOL_NAME
        )

    @property
    def binary_score(self) -> str | None:
        if not self.is_verdict:
            return None
        return self.tool_calls[0].arguments.get("binary_score")

    def to_openai(self) -> dict[str, Any]:
        """Chat-completions wire format."""
        out: dict[str, Any] = {"role": self.role, "content": self.content or ""}
        if self.tool_calls:
            out["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        if self.role == "tool":
            out["tool_call_id"] = self.tool_call_id or ""
        return out


@dataclass(frozen=True)
class StreamEvent:
    """
    One unit of orchestrator output, tagged by the node that produced it.

    partial=True marks a token delta from a streaming model call; the node's
    completed update follows later with partial=False.
    """

    node: str
    messages: tuple[Message, ...] = ()
    partial: bool = False


def filter_verdicts(messages: Iterable[Message]) -> list[Message]:
    """Drop relevance verdicts; they are routing signals, not context for the model."""
    return [m for m in messages if not m.is_verdict]


def original_question(messages: list[Message]) -> str:
    if not messages:
        raise ValueError("conversation is empty")
    return messages[0].content


def last_tool_result(messages: list[Message]) -> Message:
    """Nearest tool-result message, scanning backwards."""
    for m in reversed(messages):
        if m.role == "tool":
            return m
    logger.error("[messages:last_tool_result] no tool result in %d messages", len(messages))
    raise MissingToolResultError("no tool result precedes this step")


def has_tool_result(messages: Iterable[Message]) -> bool:
    return any(m.role == "tool" for m in messages)
