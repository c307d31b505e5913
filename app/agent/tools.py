"""
Agent tools: capability definitions, the registry, and the invoker used by the TOOLS node.

Tools: search_documents (rulebook index), web_search (DuckDuckGo via ddgs), clock.
Tool names coming back from the model are resolved to capabilities only in
ToolRegistry.resolve; an unknown name is a configuration error.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Callable, Iterable

from ddgs import DDGS

from app.agent.messages import Message
from app.core.config import SEARCH_TOP_K, WEB_SEARCH_MAX_RESULTS
from app.core.errors import EmptyQueryError, ToolExecutionError, UnknownToolError
from app.services.retrieval_service import retrieve_context

logger = logging.getLogger(__name__)

_QUERY_PARAMETERS = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": "Search query (keywords or natural language question)",
        }
    },
    "required": ["query"],
}


class Capability:
    """A named tool: structured arguments in, text out."""

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = {"type": "object", "properties": {}}

    def definition(self) -> dict[str, Any]:
        """OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        raise NotImplementedError

    def _query(self, arguments: dict[str, Any]) -> str:
        query = str((arguments or {}).get("query") or "").strip()
        if not query:
            raise EmptyQueryError(self.name)
        return query


class DocumentRetriever(Capability):
    name = "search_documents"
    description = (
        "Searches through the loaded rulebooks to find relevant information. Use this when you "
        "need to answer questions about rules, spells, monsters, items or other topics in the knowledge base."
    )
    parameters = _QUERY_PARAMETERS

    def __init__(
        self,
        retrieve: Callable[[str, int], list[dict]] = retrieve_context,
        top_k: int = SEARCH_TOP_K,
    ) -> None:
        self.retrieve = retrieve
        self.top_k = top_k

    async def run(self, arguments: dict[str, Any]) -> str:
        query = self._query(arguments)
        chunks = await asyncio.to_thread(self.retrieve, query, self.top_k)
        return "\n\n".join((c.get("text") or "") for c in chunks)


class WebSearch(Capability):
    name = "web_search"
    description = (
        "Search the web for current or external information. Use when the answer is not in "
        "the rulebooks or the user asks about recent releases or errata."
    )
    parameters = _QUERY_PARAMETERS

    def __init__(self, max_results: int = WEB_SEARCH_MAX_RESULTS) -> None:
        self.max_results = max_results

    def _search(self, query: str) -> list[dict]:
        with DDGS() as ddgs:
            return list(ddgs.text(query, max_results=self.max_results))

    async def run(self, arguments: dict[str, Any]) -> str:
        query = self._query(arguments)
        try:
            results = await asyncio.to_thread(self._search, query)
        except Exception as e:
            raise ToolExecutionError(self.name, str(e)) from e
        if not results:
            return "No results found."
        lines = []
        for i, r in enumerate(results[: self.max_results], 1):
            title = (r.get("title") or "").strip()
            body = (r.get("body") or "").strip()
            href = (r.get("href") or "").strip()
            lines.append(f"{i}. {title}\n{body}\nURL: {href}")
        return "\n\n".join(lines)


class Clock(Capability):
    name = "clock"
    description = (
        "Get the current date and time. Use this when you need to know the current date or time."
    )

    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self.now = now or (lambda: datetime.now().astimezone())

    async def run(self, arguments: dict[str, Any]) -> str:
        now = self.now()
        return json.dumps({
            "date": now.strftime("%Y-%m-%d"),
            "time": now.strftime("%H:%M:%S"),
            "datetime": now.isoformat(),
            "unix_timestamp": int(now.timestamp()),
            "day_of_week": now.strftime("%A"),
            "month": now.strftime("%B"),
            "year": now.year,
        })


class ToolRegistry:
    """Fixed set of capabilities, built once at startup."""

    def __init__(self, capabilities: Iterable[Capability]) -> None:
        self._by_name: dict[str, Capability] = {}
        for cap in capabilities:
            if cap.name in self._by_name:
                raise ValueError(f"Duplicate tool name: {cap.name!r}")
            self._by_name[cap.name] = cap

    @property
    def names(self) -> list[str]:
        return list(self._by_name)

    def definitions(self) -> list[dict[str, Any]]:
        return [cap.definition() for cap in self._by_name.values()]

    def resolve(self, name: str) -> Capability:
        cap = self._by_name.get(name)
        if cap is None:
            logger.error("[tools] unknown tool name=%r registered=%s", name, self.names)
            raise UnknownToolError(name)
        return cap

    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        cap = self.resolve(name)
        logger.info("[tools] invoke name=%r arguments=%r", name, arguments)
        result = await cap.run(arguments or {})
        logger.info("[tools] invoke name=%r OUT result_len=%d", name, len(result))
        return result

    async def run_tool_calls(self, message: Message) -> list[Message]:
        """One tool-result message per tool call, in call order."""
        results = []
        for tc in message.tool_calls:
            content = await self.invoke(tc.name, tc.arguments)
            results.append(Message.tool_result(content, tool_call_id=tc.id, name=tc.name))
        return results


def default_registry() -> ToolRegistry:
    return ToolRegistry([WebSearch(), Clock(), DocumentRetriever()])
