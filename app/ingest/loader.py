# Minimal PDF loader. No embeddings, no vector DB, no chunking.
# Single place for "PDF file → page texts".

import io
from pathlib import Path

from pypdf import PdfReader


def read_pdf_pages(raw: bytes) -> list[str]:
    """Text of each page, in order. Pages without extractable text come back as ''."""
    reader = PdfReader(io.BytesIO(raw))
    return [page.extract_text() or "" for page in reader.pages]


def load_pdf(path: Path) -> list[str]:
    return read_pdf_pages(Path(path).read_bytes())


def find_pdfs(directory: Path) -> list[Path]:
    """PDF files directly inside directory, sorted by name."""
    return sorted(
        p for p in Path(directory).iterdir()
        if p.is_file() and p.suffix.lower() == ".pdf"
    )
