"""
Fixtures: a tool registry with canned capabilities so the agent graph runs
without Milvus or the network.
"""

import pytest

from app.agent.tools import Clock, DocumentRetriever, ToolRegistry
from tests.fakes import CHAIN_SHIRT_TEXT, FIXED_NOW


@pytest.fixture
def retrieved_queries() -> list[str]:
    return []


@pytest.fixture
def registry(retrieved_queries) -> ToolRegistry:
    def fake_retrieve(query: str, top_k: int) -> list[dict]:
        retrieved_queries.append(query)
        return [{"text": CHAIN_SHIRT_TEXT}, {"text": "Medium armor table."}]

    return ToolRegistry([DocumentRetriever(retrieve=fake_retrieve), Clock(now=lambda: FIXED_NOW)])
