"""
Text processing for rulebook ingestion: cleaning and chunking.
"""

import re
import unicodedata

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def clean_text(text: str) -> str:
    """
    Normalize extracted PDF text: NFKC, strip each line, drop consecutive
    duplicate lines (repeated page headers), collapse runs of blank lines to one.
    """
    if not text or not text.strip():
        return ""
    text = unicodedata.normalize("NFKC", text)
    result: list[str] = []
    previous = None
    for line in (raw.strip() for raw in text.splitlines()):
        if line == previous:
            continue
        previous = line
        if line == "" and (not result or result[-1] == ""):
            continue
        result.append(line)
    return "\n".join(result).strip()


def _tail(units: list[str], overlap: int) -> list[str]:
    """Trailing units of a finished chunk that fit in the overlap budget."""
    kept: list[str] = []
    size = 0
    for unit in reversed(units):
        if size + len(unit) + 1 > overlap:
            break
        kept.append(unit)
        size += len(unit) + 1
    kept.reverse()
    return kept


def _units(text: str, chunk_size: int) -> list[str]:
    """Sentences; a sentence longer than chunk_size is broken into words."""
    units: list[str] = []
    for sentence in (s.strip() for s in _SENTENCE_SPLIT.split(text)):
        if not sentence:
            continue
        if len(sentence) > chunk_size:
            units.extend(sentence.split())
        else:
            units.append(sentence)
    return units


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> list[str]:
    """
    Split text into chunks of at most chunk_size characters (a single word
    longer than that is kept whole), cutting at sentence boundaries where
    possible. Each chunk starts with up to `overlap` characters of whole
    sentences/words from the end of the previous one.
    """
    if not text or not text.strip():
        return []
    text = text.strip()
    if len(text) <= chunk_size:
        return [text]

    chunks: list[str] = []
    current: list[str] = []
    for unit in _units(text, chunk_size):
        candidate = " ".join([*current, unit])
        if current and len(candidate) > chunk_size:
            chunks.append(" ".join(current))
            current = _tail(current, overlap)
            # overlap must leave room for the unit that did not fit
            while current and len(" ".join([*current, unit])) > chunk_size:
                current.pop(0)
        current.append(unit)
    if current:
        chunks.append(" ".join(current))
    return chunks
