"""
Stream renderer: paragraph buffering, tool notices, wrapping, headings, and the
async render loop against a recording formatter.
"""

import asyncio

import pytest

from app.agent.graph import Agent
from app.agent.messages import Message, StreamEvent
from app.render.console import render
from app.render.stream import Notice, Paragraph, RenderBuffer, feed, finish
from app.render.text import apply_markdown, is_heading, wrap_text
from tests.fakes import FakeChatModel, tool_call_message


def delta(text: str, node: str = "generate") -> StreamEvent:
    return StreamEvent(node=node, messages=(Message.assistant(text),), partial=True)


def run_feed(events) -> tuple[RenderBuffer, list]:
    buffer = RenderBuffer()
    effects = []
    for event in events:
        buffer, new = feed(buffer, event)
        effects.extend(new)
    return buffer, effects


class RecordingFormatter:
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def header(self) -> None:
        self.lines.append(("header", ""))

    def footer(self) -> None:
        self.lines.append(("footer", ""))

    def notice(self, text: str) -> None:
        self.lines.append(("notice", text))

    def heading(self, text: str) -> None:
        self.lines.append(("heading", text))

    def body(self, text: str) -> None:
        self.lines.append(("body", text))

    def blank(self) -> None:
        self.lines.append(("blank", ""))

    def debug(self, text: str) -> None:
        self.lines.append(("debug", text))


class TestFeed:
    def test_complete_paragraph_emitted_and_tail_kept(self) -> None:
        buffer, effects = run_feed([delta("Hello "), delta("world.\n\n"), delta("Second para.")])
        assert effects == [Paragraph("Hello world.")]
        assert buffer.text == "Second para."
        assert finish(buffer) == [Paragraph("Second para.")]

    def test_several_paragraphs_in_one_chunk(self) -> None:
        buffer, effects = run_feed([delta("One.\n\nTwo.\n\nThr")])
        assert effects == [Paragraph("One."), Paragraph("Two.")]
        assert buffer.text == "Thr"

    def test_blank_paragraphs_skipped(self) -> None:
        _, effects = run_feed([delta("One.\n\n\n\n  \n\nTwo.\n\n")])
        assert effects == [Paragraph("One."), Paragraph("Two.")]

    def test_completed_update_after_deltas_not_duplicated(self) -> None:
        events = [
            delta("Answer "),
            delta("text."),
            StreamEvent(node="generate", messages=(Message.assistant("Answer text."),)),
        ]
        buffer, effects = run_feed(events)
        assert effects == [Paragraph("Answer text.")]
        assert buffer.text == ""
        assert buffer.streamed == frozenset()

    def test_completed_update_without_deltas_is_used(self) -> None:
        buffer, effects = run_feed([StreamEvent(node="agent", messages=(Message.assistant("Hi there."),))])
        assert effects == [Paragraph("Hi there.")]
        assert buffer.text == ""

    def test_tool_request_emits_notice(self) -> None:
        event = StreamEvent(node="agent", messages=(tool_call_message(("search_documents", {"query": "q"})),))
        _, effects = run_feed([event])
        assert effects == [Notice("Using search_documents to find information")]

    def test_tool_results_emit_notice_but_no_text(self) -> None:
        event = StreamEvent(node="tools", messages=(Message.tool_result("raw rulebook text", "c0", "clock"),))
        buffer, effects = run_feed([event])
        assert effects == [Notice("Received results from clock")]
        assert buffer.text == ""

    def test_notice_comes_before_paragraphs_of_same_event(self) -> None:
        msg = tool_call_message(("web_search", {"query": "q"}), content="Let me check.\n\n")
        _, effects = run_feed([StreamEvent(node="agent", messages=(msg,))])
        assert effects == [Notice("Using web_search to find information"), Paragraph("Let me check.")]

    def test_rewrite_and_verdict_are_not_rendered(self) -> None:
        events = [
            StreamEvent(node="rewrite", messages=(Message.user("chain shirt ac"),)),
            StreamEvent(node="grade", messages=(Message.verdict("yes"),)),
        ]
        buffer, effects = run_feed(events)
        assert effects == []
        assert buffer.text == ""

    @pytest.mark.parametrize("event", [
        None,
        "text",
        {"agent": {"messages": []}},
        StreamEvent(node="generate", messages=None),
        StreamEvent(node="generate", messages=(object(), None, 42)),
        StreamEvent(node=None, messages=(Message.assistant("x"),)),
    ])
    def test_malformed_events_are_ignored(self, event) -> None:
        buffer, effects = feed(RenderBuffer(text="kept"), event)
        assert effects == []
        assert buffer.text == "kept"

    def test_finish_on_empty_buffer(self) -> None:
        assert finish(RenderBuffer()) == []
        assert finish(RenderBuffer(text="  \n ")) == []


class TestText:
    def test_heading_detection(self) -> None:
        assert is_heading("ARMOR CLASS:")
        assert is_heading("ARMOR CLASS")
        assert is_heading("Equipment:")
        assert not is_heading("Armor class is 13.")
        assert not is_heading("AC 13")
        assert not is_heading("   ")

    def test_wrap_respects_width(self) -> None:
        paragraph = (
            "A chain shirt is medium armor that grants an Armor Class of 13 plus your Dexterity "
            "modifier to a maximum of 2, and it does not impose disadvantage on Stealth checks."
        )
        for width in (1, 5, 10, 17, 40, 80, 400):
            for line in wrap_text(paragraph, width).split("\n"):
                assert len(line) <= width or " " not in line

    def test_wrap_long_word_stands_alone(self) -> None:
        assert wrap_text("a supercalifragilistic b", 5) == "a\nsupercalifragilistic\nb"

    def test_wrap_keeps_existing_line_breaks(self) -> None:
        assert wrap_text("- one\n- two", 80) == "- one\n- two"

    def test_wrap_rejects_zero_width(self) -> None:
        with pytest.raises(ValueError):
            wrap_text("x", 0)

    def test_markdown_emphasis(self) -> None:
        assert apply_markdown("**bold** and __strong__") == "[bold]bold[/bold] and [bold]strong[/bold]"
        assert apply_markdown("*it* and _em_") == "[italic]it[/italic] and [italic]em[/italic]"
        assert apply_markdown("use `1d20`") == "use [yellow]1d20[/yellow]"

    def test_markdown_leaves_snake_case_alone(self) -> None:
        assert apply_markdown("call search_documents_now") == "call search_documents_now"

    def test_markdown_escapes_rich_tags(self) -> None:
        assert apply_markdown("[red]not a tag[/red]") == "\\[red]not a tag\\[/red]"


class TestRender:
    def test_paragraph_rendered_before_stream_ends_and_tail_after(self) -> None:
        fmt = RecordingFormatter()
        seen_before_last: list = []

        async def events():
            yield delta("Hello ")
            yield delta("world.\n\n")
            seen_before_last.extend(fmt.lines)
            yield delta("Second para.")

        asyncio.run(render(events(), column_width=80, formatter=fmt))
        assert ("body", "Hello world.") in seen_before_last
        assert ("body", "Second para.") not in seen_before_last
        assert fmt.lines == [
            ("header", ""),
            ("body", "Hello world."),
            ("blank", ""),
            ("body", "Second para."),
            ("blank", ""),
            ("footer", ""),
        ]

    def test_heading_paragraph_not_wrapped(self) -> None:
        fmt = RecordingFormatter()

        async def events():
            yield delta("ARMOR CLASS:\n\nThe chain shirt grants AC 13.")

        asyncio.run(render(events(), column_width=10, formatter=fmt))
        assert ("heading", "ARMOR CLASS:") in fmt.lines
        assert ("body", "The chain\nshirt\ngrants AC\n13.") in fmt.lines

    def test_preamble_and_answer_stay_separate(self) -> None:
        fmt = RecordingFormatter()

        async def events():
            yield delta("Checking the rulebook.", node="agent")
            yield StreamEvent(
                node="agent",
                messages=(tool_call_message(("search_documents", {"query": "q"}), content="Checking the rulebook."),),
            )
            yield delta("Final answer.")
            yield StreamEvent(node="generate", messages=(Message.assistant("Final answer."),))

        asyncio.run(render(events(), formatter=fmt))
        assert fmt.lines == [
            ("header", ""),
            ("notice", "Using search_documents to find information"),
            ("body", "Checking the rulebook."),
            ("blank", ""),
            ("body", "Final answer."),
            ("blank", ""),
            ("footer", ""),
        ]

    def test_draft_after_rejection_not_fused_with_generated_answer(self, registry) -> None:
        model = FakeChatModel(
            decisions=[
                tool_call_message(("search_documents", {"query": "shirt"})),
                Message.assistant("I think it is AC 13."),
            ],
            verdicts=["no"],
        )
        fmt = RecordingFormatter()
        agent = Agent(model, registry)
        asyncio.run(render(agent.stream_ask("What is the AC of a chain shirt?"), formatter=fmt))
        bodies = [text for kind, text in fmt.lines if kind == "body"]
        assert bodies == [
            "I think it is AC 13.",
            "A chain shirt gives **AC 13** plus your Dexterity modifier (max 2).",
            "It is medium armor.",
        ]

    def test_debug_mode_prints_raw_events(self) -> None:
        fmt = RecordingFormatter()

        async def events():
            yield delta("x")

        asyncio.run(render(events(), debug_mode=True, formatter=fmt))
        assert any(k == "debug" for k, _ in fmt.lines)

    def test_invalid_width_rejected(self) -> None:
        async def events():
            yield delta("x")

        with pytest.raises(ValueError):
            asyncio.run(render(events(), column_width=0, formatter=RecordingFormatter()))
