"""
Paragraph buffering for the agent's event stream.

feed() and finish() are pure: they take the buffer state and return the new
state plus the effects (notices, complete paragraphs) to render. Nothing here
raises on odd events; unrecognized shapes count as empty.
"""

from dataclasses import dataclass
from typing import Any, Union

ANSWER_NODES = frozenset({"agent", "generate"})
TOOLS_NODE = "tools"
PARAGRAPH_BREAK = "\n\n"


@dataclass(frozen=True)
class Notice:
    """One-line tool activity message, printed apart from answer text."""

    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


Effect = Union[Notice, Paragraph]


@dataclass(frozen=True)
class RenderBuffer:
    text: str = ""
    # nodes whose content already arrived as partial deltas since their last completed update
    streamed: frozenset = frozenset()


def _messages(event: Any) -> tuple:
    messages = getattr(event, "messages", None)
    if isinstance(messages, (list, tuple)):
        return tuple(messages)
    return ()


def _tool_names(items: Any) -> list[str]:
    names = []
    for item in items or ():
        name = getattr(item, "name", None)
        if isinstance(name, str) and name:
            names.append(name)
    return names


def _tool_notice(node: str, messages: tuple, partial: bool) -> str | None:
    if partial:
        return None
    for m in messages:
        if getattr(m, "is_verdict", False) is True:
            continue
        calls = getattr(m, "tool_calls", None)
        if isinstance(calls, (list, tuple)) and calls:
            names = _tool_names(calls) or ["tools"]
            return f"Using {', '.join(names)} to find information"
    if node == TOOLS_NODE and messages:
        names = _tool_names(messages) or ["tool"]
        return f"Received results from {', '.join(dict.fromkeys(names))}"
    return None


def _answer_content(messages: tuple) -> str:
    parts = []
    for m in messages:
        if getattr(m, "role", None) != "assistant" or getattr(m, "is_verdict", False) is True:
            continue
        content = getattr(m, "content", None)
        if isinstance(content, str):
            parts.append(content)
    return "".join(parts)


def _closes_turn(node: str, messages: tuple, partial: bool) -> bool:
    if partial or node not in ANSWER_NODES:
        return False
    return any(getattr(m, "role", None) == "assistant" for m in messages)


def _split(text: str) -> tuple[list[str], str]:
    *complete, rest = text.split(PARAGRAPH_BREAK)
    return [p for p in complete if p.strip()], rest


def feed(buffer: RenderBuffer, event: Any) -> tuple[RenderBuffer, list[Effect]]:
    """Consume one stream event."""
    node = getattr(event, "node", None)
    if not isinstance(node, str):
        return buffer, []
    messages = _messages(event)
    partial = getattr(event, "partial", False) is True

    effects: list[Effect] = []
    notice = _tool_notice(node, messages, partial)
    if notice:
        effects.append(Notice(notice))

    content = ""
    streamed = buffer.streamed
    if node in ANSWER_NODES:
        content = _answer_content(messages)
        if partial:
            streamed = streamed | {node}
        elif node in streamed:
            # completed update repeats what the deltas already delivered
            content = ""
            streamed = streamed - {node}

    text = buffer.text + content
    if _closes_turn(node, messages, partial):
        # a node's completed reply ends its text; the next node starts a new paragraph
        effects.extend(finish(RenderBuffer(text=text)))
        text = ""
    elif PARAGRAPH_BREAK in text:
        complete, text = _split(text)
        effects.extend(Paragraph(p) for p in complete)
    return RenderBuffer(text=text, streamed=streamed), effects


def finish(buffer: RenderBuffer) -> list[Effect]:
    """Flush whatever is left once the stream has ended."""
    if not buffer.text.strip():
        return []
    return [Paragraph(p) for p in buffer.text.split(PARAGRAPH_BREAK) if p.strip()]
