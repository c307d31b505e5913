"""
API routes: blocking and SSE query endpoints over the agent.
"""

import json
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from app.agent.graph import Agent, build_agent, final_answer
from app.core.errors import ServiceUnavailableError
from app.render.stream import Notice, RenderBuffer, feed
from app.schemas.query import QueryRequest, QueryResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@lru_cache(maxsize=1)
def get_agent() -> Agent:
    """One compiled graph per process; every request still gets its own state."""
    try:
        return build_agent()
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message) from e


# --- System ---

@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Query ---

@router.post(
    "/query",
    response_model=QueryResponse,
    tags=["query"],
    summary="Ask the agent (blocking)",
    description="Send a question; receive the final answer. 400 on invalid input, 503 when a dependency is unavailable, 500 on agent failure.",
)
async def post_query(body: QueryRequest, agent: Agent = Depends(get_agent)) -> QueryResponse:
    logger.info("[api:post_query] IN  question=%r", body.question)
    try:
        answer = await agent.ask(body.question)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except Exception as e:
        logger.exception("Agent failed")
        raise HTTPException(status_code=500, detail=str(e)) from e
    logger.info("[api:post_query] OUT answer_len=%d", len(answer))
    return QueryResponse(answer=answer)


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def _sse_generator(agent: Agent, question: str):
    """Server-Sent Events: delta (answer tokens), tool (activity notices), done, error."""
    buffer = RenderBuffer()
    answer = ""
    used_tools = False
    try:
        async for event in agent.stream_ask(question):
            buffer, effects = feed(buffer, event)
            for effect in effects:
                if isinstance(effect, Notice):
                    yield _sse("tool", {"message": effect.text})
            if event.partial:
                if event.node == "generate":
                    yield _sse("delta", {"content": "".join(m.content for m in event.messages)})
                continue
            used_tools = used_tools or event.node == "tools"
            reply = final_answer(list(event.messages))
            if reply and event.node == "agent" and not used_tools:
                # direct answer: the run ends here without a generate step
                yield _sse("delta", {"content": reply})
            answer = reply or answer
        yield _sse("done", {"answer": answer})
    except Exception as e:
        logger.exception("SSE stream failed")
        yield _sse("error", {"message": str(e)})


@router.post(
    "/query/stream",
    tags=["query"],
    summary="Ask the agent (SSE stream)",
    description="Stream the answer via Server-Sent Events. Events: delta (generated tokens, or the whole reply when the agent answers without tools), tool, done, error.",
)
def post_query_stream(body: QueryRequest, agent: Agent = Depends(get_agent)) -> StreamingResponse:
    logger.info("[api:post_query_stream] IN  question=%r", body.question)
    return StreamingResponse(
        _sse_generator(agent, body.question),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
