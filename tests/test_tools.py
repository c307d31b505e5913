"""
Tool registry and capabilities. Retrieval and web search are patched so no
network or Milvus is needed.
"""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest

from app.agent.messages import Message
from app.agent.tools import Clock, DocumentRetriever, ToolRegistry, WebSearch, default_registry
from app.core.errors import EmptyQueryError, ToolExecutionError, UnknownToolError
from tests.fakes import FIXED_NOW, tool_call_message


class TestRegistry:
    def test_default_registry_names(self) -> None:
        assert default_registry().names == ["web_search", "clock", "search_documents"]

    def test_definitions_use_function_calling_format(self) -> None:
        defs = default_registry().definitions()
        assert all(d["type"] == "function" for d in defs)
        search = next(d for d in defs if d["function"]["name"] == "search_documents")
        assert search["function"]["parameters"]["required"] == ["query"]

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ValueError):
            ToolRegistry([Clock(), Clock()])

    def test_unknown_tool(self, registry) -> None:
        with pytest.raises(UnknownToolError) as exc:
            registry.resolve("teleport")
        assert exc.value.name == "teleport"

    def test_run_tool_calls_in_order_with_correlation(self, registry) -> None:
        request = tool_call_message(
            ("search_documents", {"query": "chain shirt"}),
            ("clock", {}),
            ("search_documents", {"query": "plate"}),
        )
        results = asyncio.run(registry.run_tool_calls(request))
        assert [m.role for m in results] == ["tool", "tool", "tool"]
        assert [(m.name, m.tool_call_id) for m in results] == [
            ("search_documents", "call_0"),
            ("clock", "call_1"),
            ("search_documents", "call_2"),
        ]

    def test_run_tool_calls_without_calls(self, registry) -> None:
        assert asyncio.run(registry.run_tool_calls(Message.assistant("done"))) == []


class TestCapabilities:
    def test_clock_descriptor(self) -> None:
        out = json.loads(asyncio.run(Clock(now=lambda: FIXED_NOW).run({})))
        assert out == {
            "date": "2024-05-17",
            "time": "14:30:05",
            "datetime": "2024-05-17T14:30:05+00:00",
            "unix_timestamp": int(FIXED_NOW.timestamp()),
            "day_of_week": "Friday",
            "month": "May",
            "year": 2024,
        }

    def test_retriever_joins_page_contents(self) -> None:
        calls = []

        def fake(query, top_k):
            calls.append((query, top_k))
            return [{"text": "first"}, {"text": "second"}, {"text": None}]

        out = asyncio.run(DocumentRetriever(retrieve=fake, top_k=3).run({"query": "  mage armor "}))
        assert out == "first\n\nsecond\n\n"
        assert calls == [("mage armor", 3)]

    def test_retriever_requires_query(self) -> None:
        with pytest.raises(EmptyQueryError):
            asyncio.run(DocumentRetriever(retrieve=lambda q, k: []).run({"query": "  "}))

    def test_web_search_formats_results(self) -> None:
        ddgs = MagicMock()
        ddgs.__enter__.return_value.text.return_value = [
            {"title": "Chain Shirt", "body": "AC 13 + Dex", "href": "https://example.org/chain"},
        ]
        with patch("app.agent.tools.DDGS", return_value=ddgs):
            out = asyncio.run(WebSearch().run({"query": "chain shirt 5e"}))
        assert out == "1. Chain Shirt\nAC 13 + Dex\nURL: https://example.org/chain"

    def test_web_search_no_results(self) -> None:
        ddgs = MagicMock()
        ddgs.__enter__.return_value.text.return_value = []
        with patch("app.agent.tools.DDGS", return_value=ddgs):
            assert asyncio.run(WebSearch().run({"query": "x"})) == "No results found."

    def test_web_search_failure_is_a_capability_error(self) -> None:
        with patch("app.agent.tools.DDGS", side_effect=RuntimeError("rate limited")):
            with pytest.raises(ToolExecutionError) as exc:
                asyncio.run(WebSearch().run({"query": "x"}))
        assert exc.value.tool == "web_search"

    def test_web_search_requires_query(self) -> None:
        with pytest.raises(EmptyQueryError):
            asyncio.run(WebSearch().run({}))
