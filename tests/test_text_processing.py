"""
Unit tests for rulebook text processing: clean_text and chunk_text.
"""

import pytest

from app.services.text_processing import chunk_text, clean_text


class TestCleanText:
    """Tests for clean_text()."""

    @pytest.mark.parametrize("raw", ["", "   ", "\n\n", None])
    def test_blank_input(self, raw) -> None:
        assert clean_text(raw) == ""

    def test_repeated_page_header_collapsed(self) -> None:
        raw = "PLAYER'S HANDBOOK\nPLAYER'S HANDBOOK\n  Chain Shirt  \nAC 13"
        assert clean_text(raw) == "PLAYER'S HANDBOOK\nChain Shirt\nAC 13"

    def test_runs_of_blank_lines_become_one(self) -> None:
        assert clean_text("Armor\n\n\n\n  \nWeapons") == "Armor\n\nWeapons"

    def test_nfkc_folds_compatibility_characters(self) -> None:
        # fullwidth digits and the fi ligature
        assert clean_text("１３ ﬁghter") == "13 fighter"


class TestChunkText:
    """Tests for chunk_text()."""

    def test_empty_returns_empty_list(self) -> None:
        assert chunk_text("") == []
        assert chunk_text(" \n ") == []

    def test_text_within_chunk_size_is_one_chunk(self) -> None:
        assert chunk_text("  Mage Armor. Abjuration, 1st level.  ", chunk_size=100) == [
            "Mage Armor. Abjuration, 1st level."
        ]

    def test_sentence_boundaries_and_overlap(self) -> None:
        text = "First sentence. Second sentence. Third sentence. Fourth. Fifth."
        assert chunk_text(text, chunk_size=40, overlap=20) == [
            "First sentence. Second sentence.",
            "Second sentence. Third sentence. Fourth.",
            "Fourth. Fifth.",
        ]

    def test_chunks_never_exceed_size(self) -> None:
        text = " ".join(f"Rule {i} applies to creatures of size {i % 6}." for i in range(60))
        chunks = chunk_text(text, chunk_size=120, overlap=30)
        assert len(chunks) > 1
        assert all(0 < len(c) <= 120 for c in chunks)
        assert chunks[0].startswith("Rule 0 ")
        assert chunks[-1].endswith("Rule 59 applies to creatures of size 5.")

    def test_overlong_word_kept_whole(self) -> None:
        long_word = "x" * 50
        assert chunk_text(f"a {long_word} b", chunk_size=20, overlap=5) == ["a", long_word, "b"]
