"""Schemas for the query endpoints."""

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Request body for POST /query and POST /query/stream."""

    question: str = Field(..., min_length=1, description="Rules question for the agent.")


class QueryResponse(BaseModel):
    """Response for POST /query."""

    answer: str = Field(..., description="Final answer from the agent.")
