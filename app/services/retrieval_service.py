"""
Retrieval: nearest rulebook chunks for a query, used by the search_documents tool.
"""

import logging

from app.core.config import COLLECTION_NAME, SEARCH_TOP_K
from app.services.vector_store import CHUNK_FIELDS, embed_texts, get_milvus_client

logger = logging.getLogger(__name__)


def _hit_to_chunk(hit: dict) -> dict:
    # MilvusClient.search nests output fields under "entity"
    entity = hit.get("entity") or hit
    return {
        "id": entity.get("id", hit.get("id")),
        "text": entity.get("text", ""),
        "score": float(hit.get("distance", hit.get("score", 0.0))),
        "metadata": {
            "source": entity.get("source", ""),
            "page": entity.get("page", 0),
            "chunk_id": entity.get("chunk_id", 0),
        },
    }


def retrieve_context(query: str, top_k: int = SEARCH_TOP_K) -> list[dict]:
    """Top-k chunks by cosine similarity, best first. Blank queries return []."""
    query = (query or "").strip()
    logger.info("[retrieval:retrieve_context] IN  query=%r top_k=%d", query, top_k)
    if not query:
        return []

    vectors = embed_texts([query])
    results = get_milvus_client().search(
        collection_name=COLLECTION_NAME,
        data=vectors,
        limit=top_k,
        output_fields=CHUNK_FIELDS,
    )
    chunks = [_hit_to_chunk(h) for h in (results[0] if results else [])]
    logger.info("[retrieval:retrieve_context] OUT chunks=%d pages=%s",
                len(chunks), [(c["metadata"]["source"], c["metadata"]["page"]) for c in chunks])
    return chunks
