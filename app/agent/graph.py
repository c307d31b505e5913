"""
LangGraph agent: rewrite → decide → (tools → grade, loop or generate) → END.

Every edge goes through next_node, a pure function of (node, state); LangGraph
only drives it. The DECIDE → TOOLS → GRADE loop is bounded by max_cycles.
"""

import asyncio
import logging
import operator
from enum import Enum
from typing import Annotated, Any, AsyncIterator, TypedDict

from langgraph.graph import END, StateGraph
from langgraph.types import StreamWriter

from app.agent.llm import ChatModel
from app.agent.messages import (
    Message,
    StreamEvent,
    filter_verdicts,
    has_tool_result,
    last_tool_result,
    original_question,
)
from app.agent.prompts import (
    GRADE_PROMPT,
    GRADE_SCHEMA,
    REWRITE_PROMPT,
    SYSTEM_PROMPT,
    format_answer_prompt,
    load_answer_template,
)
from app.agent.tools import ToolRegistry, default_registry
from app.core.config import MAX_TOOL_CYCLES
from app.core.errors import MalformedVerdictError, ServiceUnavailableError

logger = logging.getLogger(__name__)


class Node(str, Enum):
    REWRITE = "rewrite"
    DECIDE = "agent"
    TOOLS = "tools"
    GRADE = "grade"
    GENERATE = "generate"
    END = END


# Possible successors of each node; next_node picks one.
TRANSITIONS: dict[Node, tuple[Node, ...]] = {
    Node.REWRITE: (Node.DECIDE,),
    Node.DECIDE: (Node.TOOLS, Node.GENERATE, Node.END),
    Node.TOOLS: (Node.GRADE,),
    Node.GRADE: (Node.GENERATE, Node.DECIDE),
    Node.GENERATE: (Node.END,),
}


class AgentState(TypedDict):
    messages: Annotated[list[Message], operator.add]  # append-only
    cycles: int  # completed TOOLS passes


def next_node(node: Node, state: AgentState, max_cycles: int = MAX_TOOL_CYCLES) -> Node:
    """Transition function of the agent state machine."""
    messages = state.get("messages") or []
    last = messages[-1] if messages else None

    if node is Node.REWRITE:
        return Node.DECIDE
    if node is Node.DECIDE:
        if last is not None and last.tool_calls:
            return Node.TOOLS
        # No tool calls: the model answered directly. Only generate when there is retrieved text to ground on.
        return Node.GENERATE if has_tool_result(messages) else Node.END
    if node is Node.TOOLS:
        return Node.GRADE
    if node is Node.GRADE:
        verdict = last.binary_score if last is not None else None
        if verdict == "yes":
            return Node.GENERATE
        cycles = state.get("cycles") or 0
        if cycles < max_cycles:
            return Node.DECIDE
        logger.warning("[graph:next_node] cycle limit reached cycles=%d max=%d, generating from last result",
                       cycles, max_cycles)
        return Node.GENERATE
    if node is Node.GENERATE:
        return Node.END
    raise ValueError(f"No transitions out of {node!r}")


def parse_verdict(reply: Message) -> str:
    """Read 'yes'/'no' from the grader's forced tool call."""
    if len(reply.tool_calls) != 1 or reply.tool_calls[0].name != GRADE_SCHEMA["function"]["name"]:
        raise MalformedVerdictError(
            f"expected one {GRADE_SCHEMA['function']['name']} call, got {[t.name for t in reply.tool_calls]}"
        )
    score = str(reply.tool_calls[0].arguments.get("binary_score", "")).strip().lower()
    if score not in ("yes", "no"):
        raise MalformedVerdictError(f"binary_score must be 'yes' or 'no', got {score!r}")
    return score


async def _stream_reply(
    model: ChatModel,
    messages: list[Message],
    writer: StreamWriter,
    node: Node,
    **kwargs: Any,
) -> Message:
    reply = None
    async for item in model.stream(messages, **kwargs):
        if item[0] == "content_delta":
            writer({"node": node.value, "delta": item[1]})
        elif item[0] == "message":
            reply = item[1]
    if reply is None:
        raise ServiceUnavailableError("LLM stream ended without a message")
    return reply


def build_graph(model: ChatModel, registry: ToolRegistry, max_cycles: int = MAX_TOOL_CYCLES):
    """
    Build and compile the agent graph.
    rewrite → agent → (tools → grade → agent | generate) | generate | END.
    """

    async def _rewrite(state: AgentState) -> dict:
        """Reformulate the question for retrieval; appended, the original stays first."""
        question = original_question(state["messages"])
        logger.info("[graph:rewrite] IN  question=%r", question)
        reply = await model.complete([Message.user(REWRITE_PROMPT.format(question=question))], temperature=0)
        rewritten = reply.content.strip() or question
        logger.info("[graph:rewrite] OUT rewritten=%r", rewritten)
        return {"messages": [Message.user(rewritten)]}

    async def _decide(state: AgentState, writer: StreamWriter) -> dict:
        history = filter_verdicts(state["messages"])
        logger.info("[graph:agent] IN  history=%d (of %d)", len(history), len(state["messages"]))
        reply = await _stream_reply(
            model,
            [Message.system(SYSTEM_PROMPT), *history],
            writer,
            Node.DECIDE,
            tools=registry.definitions(),
        )
        logger.info("[graph:agent] OUT tool_calls=%s content_len=%d",
                    [t.name for t in reply.tool_calls], len(reply.content))
        return {"messages": [reply]}

    async def _tools(state: AgentState) -> dict:
        request = state["messages"][-1]
        cycles = (state.get("cycles") or 0) + 1
        logger.info("[graph:tools] IN  cycle=%d calls=%s", cycles, [t.name for t in request.tool_calls])
        results = await registry.run_tool_calls(request)
        logger.info("[graph:tools] OUT results=%d lens=%s", len(results), [len(r.content) for r in results])
        return {"messages": results, "cycles": cycles}

    async def _grade(state: AgentState) -> dict:
        messages = state["messages"]
        question = original_question(messages)
        context = last_tool_result(messages).content
        logger.info("[graph:grade] IN  question=%r context_len=%d", question, len(context))
        logger.debug("[graph:grade] context_sample=%r", context[:400])
        reply = await model.complete(
            [Message.user(GRADE_PROMPT.format(question=question, context=context))],
            forced_output_schema=GRADE_SCHEMA,
            temperature=0,
        )
        score = parse_verdict(reply)
        logger.info("[graph:grade] OUT binary_score=%s", score)
        return {"messages": [Message.verdict(score, reply.tool_calls[0].id)]}

    async def _generate(state: AgentState, writer: StreamWriter) -> dict:
        messages = state["messages"]
        question = original_question(messages)
        context = last_tool_result(messages).content
        template = await asyncio.to_thread(load_answer_template)
        prompt = format_answer_prompt(question, context, template)
        logger.info("[graph:generate] IN  question=%r context_len=%d prompt_len=%d",
                    question, len(context), len(prompt))
        reply = await _stream_reply(model, [Message.user(prompt)], writer, Node.GENERATE, temperature=0)
        logger.info("[graph:generate] OUT answer_len=%d", len(reply.content))
        return {"messages": [Message.assistant(reply.content)]}

    def _router(node: Node):
        def route(state: AgentState) -> str:
            target = next_node(node, state, max_cycles)
            logger.info("[graph:route] %s -> %s", node.value, target.value)
            return target.value
        return route

    graph = StateGraph(AgentState)
    graph.add_node(Node.REWRITE.value, _rewrite)
    graph.add_node(Node.DECIDE.value, _decide)
    graph.add_node(Node.TOOLS.value, _tools)
    graph.add_node(Node.GRADE.value, _grade)
    graph.add_node(Node.GENERATE.value, _generate)

    graph.set_entry_point(Node.REWRITE.value)
    for node, targets in TRANSITIONS.items():
        graph.add_conditional_edges(node.value, _router(node), [t.value for t in targets])

    return graph.compile()


def _initial_state(question: str) -> AgentState:
    if not question or not str(question).strip():
        raise ValueError("question is required")
    return {"messages": [Message.user(str(question).strip())], "cycles": 0}


def final_answer(messages: list[Message]) -> str:
    for m in reversed(messages):
        if m.role == "assistant" and not m.is_verdict and not m.tool_calls:
            return m.content
    return ""


class Agent:
    """Entry points for one question: ask (blocking) and stream_ask (incremental)."""

    def __init__(
        self,
        model: ChatModel,
        registry: ToolRegistry | None = None,
        max_cycles: int = MAX_TOOL_CYCLES,
    ) -> None:
        if max_cycles < 1:
            raise ValueError("max_cycles must be at least 1")
        self.registry = registry or default_registry()
        self.max_cycles = max_cycles
        self.graph = build_graph(model, self.registry, max_cycles)

    @property
    def _config(self) -> dict:
        # rewrite + (agent, tools, grade) per cycle + final agent + generate
        return {"recursion_limit": 3 * self.max_cycles + 5}

    async def ask(self, question: str) -> str:
        initial = _initial_state(question)
        logger.info("[agent:ask] START question=%r", initial["messages"][0].content)
        final = await self.graph.ainvoke(initial, config=self._config)
        answer = final_answer(final["messages"])
        logger.info("[agent:ask] END cycles=%d messages=%d answer_len=%d",
                    final.get("cycles") or 0, len(final["messages"]), len(answer))
        return answer

    async def stream_ask(self, question: str) -> AsyncIterator[StreamEvent]:
        """
        Run the graph and yield one StreamEvent per node update, plus partial
        events for each token the agent/generate nodes stream.
        """
        initial = _initial_state(question)
        logger.info("[agent:stream_ask] START question=%r", initial["messages"][0].content)
        async for mode, chunk in self.graph.astream(
            initial, config=self._config, stream_mode=["updates", "custom"]
        ):
            if mode == "custom":
                yield StreamEvent(
                    node=chunk["node"],
                    messages=(Message.assistant(chunk["delta"]),),
                    partial=True,
                )
                continue
            for node_name, update in chunk.items():
                yield StreamEvent(node=node_name, messages=tuple((update or {}).get("messages") or ()))
        logger.info("[agent:stream_ask] END")


def build_agent() -> Agent:
    """Agent wired to OpenAI and the default tool registry (reads config)."""
    return Agent(ChatModel(), default_registry())
