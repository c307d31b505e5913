"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "WARNING").strip().upper() or "WARNING"

# PDF import (scripts/rag_import.py)
PDF_DIR_NAME: str = os.getenv("PDF_DIR", "data/files").strip() or "data/files"
CHUNK_SIZE: int = 1000
CHUNK_OVERLAP: int = 200

# Milvus Cloud (from env)
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip()
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()

# Hugging Face (embeddings)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"

# Vector collection: all-MiniLM-L6-v2 = 384 dims
VECTOR_DIM: int = 384
COLLECTION_NAME: str = (
    os.getenv("COLLECTION_NAME", "dungeonforge_collection").strip() or "dungeonforge_collection"
)
SEARCH_TOP_K: int = 4
EMBED_BATCH_SIZE: int = 32

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0
PROMPT_FETCH_TIMEOUT: float = 10.0

# Tools
WEB_SEARCH_MAX_RESULTS: int = 5

# Agent graph: ceiling on DECIDE -> TOOLS -> GRADE passes
MAX_TOOL_CYCLES: int = int(os.getenv("MAX_TOOL_CYCLES", "3"))

# Optional remote answer prompt; built-in template is used when unset or unreachable.
ANSWER_PROMPT_URL: str = os.getenv("ANSWER_PROMPT_URL", "").strip()

# OpenAI (agent LLM)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Terminal rendering
TEXT_WIDTH: int = 100
LOOKUP_TEXT_WIDTH: int = 400
