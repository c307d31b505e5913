#!/usr/bin/env python3
"""
Import rulebook PDFs into the Milvus knowledge base.

Reads every PDF in the directory (default data/files/), splits pages into
1000-character chunks with 200 characters of overlap, embeds them and stores
them in the collection. Use --reset to drop the collection first.

Run from project root:

    python scripts/rag_import.py
    python scripts/rag_import.py --directory path/to/pdfs --reset
"""

import argparse
import logging
import sys
from pathlib import Path

# Project root on path so "app" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.core.config import PDF_DIR_NAME
from app.services.ingestion_service import ingest_directory


def main() -> int:
    parser = argparse.ArgumentParser(description="Import rulebook PDFs into the knowledge base.")
    parser.add_argument(
        "--directory",
        default=str(_ROOT / PDF_DIR_NAME),
        help="Folder containing the PDF files to import.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop the collection before importing.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    print("Starting RAG import process...")
    try:
        report = ingest_directory(Path(args.directory), reset=args.reset)
    except FileNotFoundError as e:
        print(e, file=sys.stderr)
        return 1

    if not report.files_found:
        print("No PDF files found in the directory")
        return 0
    print(f"Processed {report.files_found} PDF files, stored {report.chunks_stored} chunks.")
    for name in report.failed:
        print(f"  failed: {name}")
    print("RAG import process completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
