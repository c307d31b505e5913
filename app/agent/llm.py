"""
Agent LLM: OpenAI chat completions (plain, tool-calling, forced-schema, streaming).

The graph only talks to ChatModel; tests swap in a scripted stand-in with the
same two methods.
"""

import json
import logging
from typing import Any, AsyncIterator

from openai import AsyncOpenAI

from app.agent.messages import Message, ToolCall
from app.core.config import LLM_API_TIMEOUT, OPENAI_API_KEY, OPENAI_LLM_MODEL
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("[llm] tool arguments are not valid JSON: %r", raw[:200])
        return {}
    return args if isinstance(args, dict) else {}


class ChatModel:
    """Thin async wrapper around the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        key = api_key if api_key is not None else OPENAI_API_KEY
        if client is None and not key:
            raise ServiceUnavailableError("OPENAI_API_KEY must be set in .env")
        self.model = model or OPENAI_LLM_MODEL
        self.client = client or AsyncOpenAI(api_key=key, timeout=LLM_API_TIMEOUT)

    def _request(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        temperature: float | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_openai() for m in messages],
        }
        if tools:
            kwargs["tools"] = tools
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs

    async def complete(
        self,
        messages: list[Message],
        *,
        tools: list[dict[str, Any]] | None = None,
        forced_output_schema: dict[str, Any] | None = None,
        temperature: float | None = None,
    ) -> Message:
        """
        One non-streaming call. With forced_output_schema (an OpenAI function
        definition) the model must answer through exactly that function.
        """
        kwargs = self._request(messages, tools, temperature)
        if forced_output_schema is not None:
            name = forced_output_schema["function"]["name"]
            kwargs["tools"] = [forced_output_schema]
            kwargs["tool_choice"] = {"type": "function", "function": {"name": name}}
        logger.info("[llm:complete] IN  messages=%d tools=%d forced=%s",
                    len(messages), len(kwargs.get("tools") or []), forced_output_schema is not None)
        response = await self.client.chat.completions.create(**kwargs)
        msg = response.choices[0].message if response.choices else None
        if msg is None:
            raise ServiceUnavailableError("LLM returned no choices")
        tool_calls = [
            ToolCall(id=tc.id or "", name=tc.function.name or "", arguments=_parse_arguments(tc.function.arguments))
            for tc in (msg.tool_calls or [])
            if getattr(tc, "function", None)
        ]
        content = (msg.content or "").strip()
        logger.info("[llm:complete] OUT content_len=%d tool_calls=%s", len(content), [t.name for t in tool_calls])
        return Message.assistant(content, tool_calls)

    async def stream(
        self,
        messages: list[Message],
        *,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[tuple]:
        """
        Stream a reply. Yields:
        - ('content_delta', str) for each content token;
        - ('message', Message) once at the end, with tool-call deltas accumulated by index.
        """
        kwargs = self._request(messages, tools, temperature)
        kwargs["stream"] = True
        logger.info("[llm:stream] IN  messages=%d tools=%d", len(messages), len(tools or []))
        stream = await self.client.chat.completions.create(**kwargs)
        content_parts: list[str] = []
        tool_calls_accum: dict[int, dict[str, Any]] = {}
        async for chunk in stream:
            if not chunk.choices:
                continue
            d = chunk.choices[0].delta
            if getattr(d, "content", None):
                content_parts.append(d.content)
                yield ("content_delta", d.content)
            for tc in getattr(d, "tool_calls", None) or []:
                idx = getattr(tc, "index", 0)
                acc = tool_calls_accum.setdefault(idx, {"id": "", "name": "", "arguments": ""})
                if getattr(tc, "id", None):
                    acc["id"] = tc.id
                fn = getattr(tc, "function", None)
                if fn is not None:
                    if getattr(fn, "name", None):
                        acc["name"] = fn.name
                    if getattr(fn, "arguments", None):
                        acc["arguments"] += fn.arguments
        tool_calls = [
            ToolCall(id=t["id"], name=t["name"], arguments=_parse_arguments(t["arguments"]))
            for t in (tool_calls_accum[i] for i in sorted(tool_calls_accum))
        ]
        full_content = "".join(content_parts)
        logger.info("[llm:stream] OUT content_len=%d tool_calls=%s", len(full_content), [t.name for t in tool_calls])
        yield ("message", Message.assistant(full_content, tool_calls))
