"""Contract tests for chunk_document and chunk assembly."""

import uuid

from ragchunker.core.config import Settings
from ragchunker.core.models import Document, NormalizedSegment, get_profile
from ragchunker.pipeline.steps.chunk.boundaries import count_tokens, split_document
from ragchunker.pipeline.steps.chunk.engine import assemble_chunks, chunk_document
from ragchunker.pipeline.steps.chunk.verify import verify_chunks


class TestTaxSetupScenario:
    """Local strategy end to end on a small three-section document."""

    def test_two_chunks_with_numbered_titles(self, tax_setup_document, official_profile):
        spans = split_document(tax_setup_document.text, 512)
        assert len(spans) == 3

        chunks = chunk_document(tax_setup_document, spans, official_profile)

        assert len(chunks) == 2
        assert [c.title for c in chunks] == ["[TS] Part 1/2", "[TS] Part 2/2"]
        assert chunks[0].content.text.startswith("Overview")
        assert chunks[1].content.text.startswith("Follow these steps")
        assert all("Related topics" not in c.content.text for c in chunks)

    def test_chunk_metadata(self, tax_setup_document, official_profile):
        chunks = chunk_document(
            tax_setup_document, split_document(tax_setup_document.text, 512), official_profile
        )
        for index, chunk in enumerate(chunks):
            assert chunk.bucket == "official"
            assert chunk.tags.confidence == "official"
            assert chunk.tags.client_scope == "global"
            assert chunk.tags.module == ["Finance"]
            assert chunk.source.version == "M3 Cloud"
            assert chunk.source.document_id == "docs/tax-setup.json"
            assert chunk.source.url == "https://docs.example.com/tax-setup"
            assert chunk.source.section == "Tax Setup"
            assert chunk.original_doc_title == "Tax Setup"
            assert chunk.chunk_type == "concept"
            assert chunk.chunk_index == index
            assert chunk.chunk_count == 2
            assert chunk.chunk_tokens == count_tokens(chunk.content.text)
            assert chunk.content.steps == []
            uuid.UUID(chunk.id)

    def test_manual_profile_labels(self, tax_setup_document, manual_profile):
        chunks = chunk_document(
            tax_setup_document, split_document(tax_setup_document.text, 512), manual_profile
        )
        assert len(chunks) == 2
        assert {c.bucket for c in chunks} == {"manual_ai"}
        assert {c.tags.confidence for c in chunks} == {"reviewed"}
        assert all(c.chunk_count is None for c in chunks)
        assert all("chunk_count" not in c.to_record() for c in chunks)


class TestChunkDocument:
    def test_text_after_midpage_boilerplate_survives(self, official_profile):
        body = (
            "The VAT code CRS610 controls how tax is applied to customer invoices. "
            "Set it before the first invoice run."
        )
        document = Document(
            title="VAT Setup",
            text="Intro paragraph about VAT setup in the system.\n\nSee also\n\n" + body,
        )
        chunks = chunk_document(
            document, split_document(document.text, 512), official_profile
        )
        combined = "".join(c.content.text for c in chunks)
        assert body in combined
        assert "See also" not in combined

    def test_repeated_section_titles_are_not_deduplicated(
        self, tax_setup_document, manual_profile
    ):
        segments = [
            {"text": "Example\nFirst worked example of a VAT posting.", "title": "Example"},
            {"text": "Example\nSecond worked example with a reverse charge.", "title": "Example"},
        ]
        chunks = chunk_document(tax_setup_document, segments, manual_profile)
        assert [c.title for c in chunks] == ["[TS] Example", "[TS] Example"]

        report = verify_chunks([c.to_record() for c in chunks])
        assert report["status"] == "FAIL"
        assert report["issues"]["duplicate_titles"]["examples"][0]["titles"] == ["[TS] Example"]

    def test_no_segments_no_chunks(self, tax_setup_document, official_profile):
        assert chunk_document(tax_setup_document, [], official_profile) == []

    def test_everything_filtered(self, tax_setup_document, official_profile):
        chunks = chunk_document(
            tax_setup_document, ["tiny", "Copyright 2024 Infor"], official_profile
        )
        assert chunks == []

    def test_ids_unique(self, official_profile, long_paragraph):
        document = Document(title="Ids", text=long_paragraph * 4)
        spans = split_document(document.text, 100)
        chunks = chunk_document(document, spans, official_profile)
        assert len(chunks) > 1
        assert len({c.id for c in chunks}) == len(chunks)

    def test_fidelity_rejects_hallucinated_segments(self, tax_setup_document, official_profile):
        segments = [
            {"text": "Overview\nShort intro.", "title": "Overview"},
            {"text": "An invented paragraph that is nowhere in the source.", "title": "Made up"},
        ]
        chunks = chunk_document(tax_setup_document, segments, official_profile)
        assert len(chunks) == 1
        assert chunks[0].title == "[TS] Overview"

    def test_fidelity_disabled_keeps_invented_text(self, tax_setup_document, manual_profile):
        segments = [
            {"text": "Overview\nShort intro.", "title": "Overview"},
            {"text": "Example\nAn invented paragraph, nowhere in the source.", "title": "Made up"},
        ]
        chunks = chunk_document(tax_setup_document, segments, manual_profile)
        assert [c.title for c in chunks] == ["[TS] Overview", "[TS] Made up"]

    def test_fidelity_toggle_override(self, tax_setup_document):
        profile = get_profile("manual_ai", fidelity_check=True)
        segments = [{"text": "Example\nAn invented paragraph, nowhere in the source."}]
        assert chunk_document(tax_setup_document, segments, profile) == []

    def test_oracle_metadata_flows_into_chunk(self, tax_setup_document, official_profile):
        segments = [
            {
                "text": "Follow these steps\n1. Do X\n2. Do Y",
                "title": "Procedure",
                "chunk_type": "procedure",
                "programs": ["CRS610"],
                "topics": ["VAT"],
            }
        ]
        (chunk,) = chunk_document(tax_setup_document, segments, official_profile)
        assert chunk.title == "[TS] Procedure"
        assert chunk.source.section == "Procedure"
        assert chunk.chunk_type == "procedure"
        assert chunk.tags.programs == ["CRS610"]
        assert chunk.tags.topics == ["VAT"]

    def test_untitled_document_defaults(self, official_profile):
        document = Document(text="Plain body text for an untitled document.")
        (chunk,) = chunk_document(document, [document.text], official_profile)
        assert chunk.original_doc_title == "Untitled Document"
        assert chunk.source.document_id == "unknown"
        assert chunk.source.section == "Untitled Section"
        assert chunk.title == "[UD] Part 1/1"


class TestAssembleChunks:
    def test_settings_labels(self, tax_setup_document, official_profile):
        settings = Settings(CHUNK_VERSION_LABEL="M3 CE 2025", CHUNK_MODULES=["Finance", "Sales"])
        (chunk,) = assemble_chunks(
            [NormalizedSegment(text="Body text here.", title="Tax Setup")],
            tax_setup_document,
            official_profile,
            settings,
        )
        assert chunk.source.version == "M3 CE 2025"
        assert chunk.tags.module == ["Finance", "Sales"]

    def test_record_shape(self, tax_setup_document, official_profile):
        (chunk,) = assemble_chunks(
            [NormalizedSegment(text="Body text here.", title="Tax Setup")],
            tax_setup_document,
            official_profile,
        )
        record = chunk.to_record()
        assert set(record) == {
            "id",
            "bucket",
            "chunk_type",
            "title",
            "original_doc_title",
            "source",
            "content",
            "tags",
            "chunk_index",
            "chunk_tokens",
            "chunk_count",
        }
        assert set(record["source"]) == {"document_id", "section", "version", "url"}
        assert set(record["tags"]) == {"module", "programs", "topics", "client_scope", "confidence"}
        assert record["content"] == {"text": "Body text here.", "steps": []}
