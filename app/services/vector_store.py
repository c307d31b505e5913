"""
Rulebook index: sentence embeddings from the Hugging Face Inference API and
the Milvus collection that stores chunk vectors with their page metadata.
"""

import logging
from typing import Any

import httpx

from app.core.config import (
    COLLECTION_NAME,
    EMBED_API_TIMEOUT,
    EMBED_BATCH_SIZE,
    HF_API_KEY,
    HF_EMBED_MODEL,
    MILVUS_TOKEN,
    MILVUS_URI,
    VECTOR_DIM,
)
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

# tried in order; the router endpoint answers 403 for tokens without inference scope
EMBED_ENDPOINTS = (
    f"https://router.huggingface.co/hf-inference/models/{HF_EMBED_MODEL}/pipeline/feature-extraction",
    f"https://api-inference.huggingface.co/models/{HF_EMBED_MODEL}",
)

CHUNK_FIELDS = ["id", "text", "source", "page", "chunk_id"]


def _unit(vec: list[float]) -> list[float]:
    length = sum(x * x for x in vec) ** 0.5 or 1.0
    return [x / length for x in vec]


def _as_vectors(payload: Any) -> list[list[float]]:
    """Feature-extraction output is a list of vectors, or a single vector for one input."""
    if not isinstance(payload, list):
        payload = [payload]
    if payload and isinstance(payload[0], list):
        return payload
    return [payload]


def _post_batch(client: httpx.Client, batch: list[str], token: str) -> list[list[float]]:
    body = {"inputs": batch, "options": {"wait_for_model": True}}
    headers = {"Authorization": f"Bearer {token}"}
    failure = "no embedding endpoint reachable"
    for url in EMBED_ENDPOINTS:
        try:
            response = client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("[vector_store:embed] %s unreachable: %s", url, e)
            failure = str(e)
            continue
        if response.status_code == 200:
            return _as_vectors(response.json())
        if response.status_code == 401:
            raise ServiceUnavailableError("HF_API_KEY was rejected by the Hugging Face API")
        if response.status_code == 503:
            raise ServiceUnavailableError(f"Embedding model {HF_EMBED_MODEL} is still loading, retry later")
        failure = f"HTTP {response.status_code}: {response.text[:200]}"
        if response.status_code != 403:
            break
    raise ServiceUnavailableError(f"Embedding request failed ({failure})")


def embed_texts(texts: list[str], batch_size: int | None = None) -> list[list[float]]:
    """Unit-length embeddings (VECTOR_DIM floats each), one per text, in input order."""
    if not texts:
        return []
    if not HF_API_KEY:
        raise ServiceUnavailableError("HF_API_KEY must be set in .env")
    size = batch_size or EMBED_BATCH_SIZE
    vectors: list[list[float]] = []
    with httpx.Client(timeout=EMBED_API_TIMEOUT) as client:
        for start in range(0, len(texts), size):
            vectors.extend(_unit(v) for v in _post_batch(client, texts[start : start + size], HF_API_KEY))
    logger.info("[vector_store:embed] texts=%d batches=%d", len(texts), -(-len(texts) // size))
    return vectors


def get_milvus_client() -> Any:
    """Milvus client with the rulebook collection present (created empty on first use)."""
    if not (MILVUS_URI and MILVUS_TOKEN):
        raise ServiceUnavailableError("MILVUS_URI and MILVUS_TOKEN must be set in .env")

    from pymilvus import MilvusClient

    client = MilvusClient(uri=MILVUS_URI, token=MILVUS_TOKEN)
    if not client.has_collection(COLLECTION_NAME):
        client.create_collection(
            collection_name=COLLECTION_NAME,
            dimension=VECTOR_DIM,
            primary_field_name="id",
            vector_field_name="vector",
            metric_type="COSINE",
            auto_id=True,
        )
        logger.info("[vector_store] created collection %s dim=%d", COLLECTION_NAME, VECTOR_DIM)
    return client


def chunk_row(chunk: dict, vector: list[float]) -> dict:
    """Milvus row for one chunk produced by ingestion_service.build_chunks."""
    meta = chunk.get("metadata") or {}
    return {
        "vector": vector,
        "text": chunk["text"],
        "source": meta.get("source", ""),
        "page": meta.get("page", 0),
        "chunk_id": meta.get("chunk_id", 0),
    }


def store_chunks(chunks: list[dict]) -> None:
    if not chunks:
        return
    vectors = embed_texts([c["text"] for c in chunks])
    client = get_milvus_client()
    client.insert(collection_name=COLLECTION_NAME, data=[chunk_row(c, v) for c, v in zip(chunks, vectors)])
    client.flush(collection_name=COLLECTION_NAME)
    logger.info("[vector_store:store_chunks] stored=%d", len(chunks))


def clear_knowledge_base() -> None:
    """Drop the collection; the next get_milvus_client() recreates it empty."""
    client = get_milvus_client()
    if client.has_collection(COLLECTION_NAME):
        client.drop_collection(collection_name=COLLECTION_NAME)
        logger.info("[vector_store] dropped collection %s", COLLECTION_NAME)
