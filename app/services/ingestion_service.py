"""
Rulebook ingestion: load PDFs, chunk them, and store the chunks in the vector index.

Responsibility: Orchestrate reading PDFs page by page, cleaning and chunking the
text, and persistence. Used by scripts/rag_import.py and `forge ingest`.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from app.core.config import CHUNK_OVERLAP, CHUNK_SIZE
from app.ingest.loader import find_pdfs, load_pdf
from app.services.text_processing import chunk_text, clean_text
from app.services.vector_store import clear_knowledge_base, store_chunks

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    """Outcome of one import run."""

    files_found: int = 0
    chunks_stored: int = 0
    failed: list[str] = field(default_factory=list)


def build_chunks(
    pages: list[str],
    source: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> list[dict]:
    """Chunk every page of one document; chunk_id runs across the whole document."""
    chunks: list[dict] = []
    for page_number, page_text in enumerate(pages, 1):
        for piece in chunk_text(clean_text(page_text), chunk_size=chunk_size, overlap=overlap):
            chunks.append({
                "text": piece,
                "metadata": {"source": source, "page": page_number, "chunk_id": len(chunks)},
            })
    return chunks


def ingest_directory(
    directory: Path,
    reset: bool = False,
    store: Callable[[list[dict]], None] = store_chunks,
) -> IngestReport:
    """
    Import every PDF in directory. A file that fails to load or store is logged
    and skipped; the rest of the run continues.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    report = IngestReport()
    files = find_pdfs(directory)
    report.files_found = len(files)
    if not files:
        logger.info("[ingest] no PDF files in %s", directory)
        return report

    if reset:
        clear_knowledge_base()

    logger.info("[ingest] found %d PDF files in %s", len(files), directory)
    for path in files:
        try:
            pages = load_pdf(path)
            chunks = build_chunks(pages, path.name)
            store(chunks)
        except Exception:
            logger.exception("[ingest] failed to process %s", path.name)
            report.failed.append(path.name)
            continue
        logger.info("[ingest] %s pages=%d chunks=%d", path.name, len(pages), len(chunks))
        report.chunks_stored += len(chunks)
    return report
