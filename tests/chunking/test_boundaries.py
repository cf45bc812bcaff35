"""Tests for token estimation and the recursive splitter."""

import pytest

from ragchunker.pipeline.steps.chunk.boundaries import (
    collapse_whitespace,
    count_tokens,
    is_boilerplate_header,
    split_document,
    split_sections,
    split_text_recursive,
    starts_with_section_heading,
)

SAMPLE_TEXTS = [
    "Plain text without any separators at all",
    "First paragraph.\n\nSecond paragraph is here.\n\nThird.",
    "Line one\nLine two\nLine three\n\nNew paragraph! Does it work? Yes. Indeed.",
    "Trailing separators\n\n\n\n",
    "\n\nLeading separators then text",
    "Überschrift mit Umlauten. Ärger? Öl! " * 20,
    "| Code | Rate |\n| --- | --- |\n| V1 | 20% |\n| V2 | 5% |",
]


class TestCountTokens:
    def test_empty_and_none(self):
        assert count_tokens("") == 0
        assert count_tokens(None) == 0

    def test_ceil_of_quarter_length(self):
        assert count_tokens("a") == 1
        assert count_tokens("abcd") == 1
        assert count_tokens("abcde") == 2
        assert count_tokens("x" * 400) == 100
        assert count_tokens("x" * 401) == 101

    def test_whitespace_counts(self):
        assert count_tokens("    ") == 1
        assert count_tokens("\n\n\n\n\n") == 2


class TestSplitTextRecursive:
    """Coverage and budget guarantees of the recursive splitter."""

    def test_empty_text(self):
        assert split_text_recursive("", 10) == []

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            split_text_recursive("some text", 0)

    def test_text_within_budget_is_one_span(self):
        text = "Short text.\n\nStill short."
        assert split_text_recursive(text, 512) == [text]

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    @pytest.mark.parametrize("budget", [1, 3, 8, 25, 512])
    def test_concatenation_reproduces_input(self, text, budget):
        spans = split_text_recursive(text, budget)
        assert "".join(spans) == text
        assert all(spans)

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    @pytest.mark.parametrize("budget", [1, 3, 8, 25])
    def test_spans_respect_budget(self, text, budget):
        for span in split_text_recursive(text, budget):
            assert count_tokens(span) <= budget

    def test_prefers_paragraph_boundaries(self):
        text = "A" * 40 + "\n\n" + "B" * 40
        assert split_text_recursive(text, 15) == ["A" * 40 + "\n\n", "B" * 40]

    def test_falls_back_to_sentences(self):
        text = "First sentence here. Second sentence here. Third one."
        assert split_text_recursive(text, 6) == [
            "First sentence here. ",
            "Second sentence here. ",
            "Third one.",
        ]

    def test_greedy_packing(self):
        text = "aa bb cc dd ee ff"
        spans = split_text_recursive(text, 2)
        assert spans == ["aa bb ", "cc dd ", "ee ff"]

    def test_finest_level_packs_characters(self):
        # four characters still estimate to a single token
        assert split_text_recursive("abcdefghij", 1) == ["abcd", "efgh", "ij"]

    def test_oversized_word_split_into_characters_only_where_needed(self):
        text = "tiny " + "x" * 30 + " end"
        spans = split_text_recursive(text, 4)
        assert "".join(spans) == text
        assert spans[0] == "tiny "
        assert spans[-1].endswith("end")


class TestSections:
    """Section-aware local strategy."""

    def test_heading_and_boilerplate_paragraphs_open_sections(self):
        text = (
            "Overview\nShort intro.\n\n"
            "Follow these steps\n1. Do X\n2. Do Y\n\n"
            "Related topics\nSee also here."
        )
        assert split_sections(text) == [
            "Overview\nShort intro.\n\n",
            "Follow these steps\n1. Do X\n2. Do Y\n\n",
            "Related topics\nSee also here.",
        ]

    def test_boilerplate_section_closes_after_its_paragraph(self):
        body = "The VAT code CRS610 controls how tax is applied to customer invoices."
        text = "Intro paragraph about VAT setup in the system.\n\nSee also\n\n" + body
        assert split_sections(text) == [
            "Intro paragraph about VAT setup in the system.\n\n",
            "See also\n\n",
            body,
        ]

    def test_blank_paragraphs_stay_with_boilerplate(self):
        text = "Copyright 2024 Infor\n\n\n\nBody paragraph one.\n\nBody paragraph two."
        assert split_sections(text) == [
            "Copyright 2024 Infor\n\n\n\n",
            "Body paragraph one.\n\nBody paragraph two.",
        ]

    def test_plain_paragraphs_stay_together(self):
        text = "First paragraph.\n\nSecond paragraph.\n\nThird paragraph."
        assert split_sections(text) == [text]

    def test_leading_blank_paragraph_is_not_a_section(self):
        text = "\n\nExample\nSome example text."
        assert split_sections(text) == [text]

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_split_document_covers_input(self, text):
        assert "".join(split_document(text, 8)) == text

    def test_split_document_without_headings_matches_recursive(self):
        text = "Plain paragraph one.\n\nPlain paragraph two is longer than one.\n\nEnd."
        assert split_document(text, 6) == split_text_recursive(text, 6)

    def test_split_document_respects_budget_inside_sections(self):
        text = "Overview\n" + "word " * 100 + "\n\nExample\nShort."
        spans = split_document(text, 20)
        assert "".join(spans) == text
        assert all(count_tokens(s) <= 20 for s in spans)
        assert any(s.startswith("Example") for s in spans)


class TestHeuristics:
    def test_collapse_whitespace(self):
        assert collapse_whitespace("  a \n\n b\t c  ") == "a b c"

    def test_section_heading_detection(self):
        assert starts_with_section_heading("  Follow these steps\n1. Open CRS610")
        assert starts_with_section_heading("Example: VAT on imports")
        assert not starts_with_section_heading("An Overview appears later")

    def test_boilerplate_detection_is_case_insensitive(self):
        assert is_boilerplate_header("related TOPICS\nsomething")
        assert is_boilerplate_header("   \n Copyright 2024 Infor")
        assert is_boilerplate_header("Error 404: Page missing")
        assert is_boilerplate_header("HTTP 503 Service Unavailable")
        assert is_boilerplate_header("javascript:void(0)")
        assert not is_boilerplate_header("VAT settings. See also CRS610.")
