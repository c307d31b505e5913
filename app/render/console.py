"""
Terminal output for the agent stream.

Colors and styles live behind the Formatter port; RichFormatter is the real
terminal, tests pass a recorder.
"""

import logging
from typing import Any, AsyncIterable, Protocol

from rich.console import Console

from app.core.config import TEXT_WIDTH
from app.render.stream import Effect, Notice, Paragraph, RenderBuffer, feed, finish
from app.render.text import apply_markdown, is_heading, wrap_text

logger = logging.getLogger(__name__)

HEADER_TEXT = "\n╔══════════════════ RESULT ══════════════════╗"
FOOTER_TEXT = "╚═══════════════════════════════════════════╝"


class Formatter(Protocol):
    def header(self) -> None: ...

    def footer(self) -> None: ...

    def notice(self, text: str) -> None: ...

    def heading(self, text: str) -> None: ...

    def body(self, text: str) -> None: ...

    def blank(self) -> None: ...

    def debug(self, text: str) -> None: ...


class RichFormatter:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def header(self) -> None:
        self.console.print(HEADER_TEXT, style="bold magenta", markup=False, soft_wrap=True)

    def footer(self) -> None:
        self.console.print(FOOTER_TEXT, style="bold magenta", markup=False, soft_wrap=True)

    def notice(self, text: str) -> None:
        self.console.print(f"[System: {text}]", style="dim", markup=False, soft_wrap=True)

    def heading(self, text: str) -> None:
        self.console.print(text, style="bold cyan", markup=False, soft_wrap=True)

    def body(self, text: str) -> None:
        # already wrapped to the column width; soft_wrap stops rich re-wrapping
        self.console.print(apply_markdown(text), soft_wrap=True)

    def blank(self) -> None:
        self.console.print()

    def debug(self, text: str) -> None:
        self.console.print(f"Chunk structure: {text}", style="dim", markup=False, soft_wrap=True)


def print_paragraph(paragraph: str, formatter: Formatter, width: int = TEXT_WIDTH) -> None:
    p = paragraph.strip()
    if not p:
        return
    if is_heading(p):
        formatter.heading(p)
    else:
        formatter.body(wrap_text(p, width))
    formatter.blank()


def _apply(effects: list[Effect], formatter: Formatter, width: int) -> None:
    for effect in effects:
        if isinstance(effect, Notice):
            formatter.notice(effect.text)
        elif isinstance(effect, Paragraph):
            print_paragraph(effect.text, formatter, width)


async def render(
    events: AsyncIterable[Any],
    *,
    column_width: int = TEXT_WIDTH,
    debug_mode: bool = False,
    formatter: Formatter | None = None,
) -> None:
    """Print the event stream as it arrives: notices at once, paragraphs when complete."""
    if column_width < 1:
        raise ValueError("column_width must be at least 1")
    fmt = formatter or RichFormatter()
    fmt.header()
    buffer = RenderBuffer()
    count = 0
    async for event in events:
        count += 1
        if debug_mode:
            fmt.debug(repr(event))
        buffer, effects = feed(buffer, event)
        _apply(effects, fmt, column_width)
    _apply(finish(buffer), fmt, column_width)
    fmt.footer()
    logger.info("[render] END events=%d", count)
