"""Paragraph text helpers: wrapping, heading detection, inline emphasis."""

import re

from rich.markup import escape

_HEADING_RE = re.compile(r"^[A-Z\s]+$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*|__(.+?)__")
_ITALIC_RE = re.compile(r"\*(.+?)\*|(?<!\w)_(.+?)_(?!\w)")
_CODE_RE = re.compile(r"`(.+?)`")


def wrap_text(text: str, width: int) -> str:
    """
    Greedy word wrap, line by line. Existing line breaks are kept; a word longer
    than width gets a line of its own.
    """
    if width < 1:
        raise ValueError("width must be at least 1")
    lines: list[str] = []
    for source_line in text.split("\n"):
        current = ""
        for word in source_line.split():
            if not current:
                current = word
            elif len(current) + 1 + len(word) <= width:
                current += " " + word
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return "\n".join(lines)


def is_heading(paragraph: str) -> bool:
    """All caps (letters and spaces only) or ends with a colon."""
    p = paragraph.strip()
    if not p:
        return False
    return p.endswith(":") or bool(_HEADING_RE.match(p))


def apply_markdown(text: str) -> str:
    """
    Turn **bold**/__bold__, *italic*/_italic_ and `code` into rich markup.
    Anything that already looks like rich markup is escaped first.
    """
    out = escape(text)
    out = _BOLD_RE.sub(lambda m: f"[bold]{m.group(1) or m.group(2)}[/bold]", out)
    out = _ITALIC_RE.sub(lambda m: f"[italic]{m.group(1) or m.group(2)}[/italic]", out)
    out = _CODE_RE.sub(lambda m: f"[yellow]{m.group(1)}[/yellow]", out)
    return out
