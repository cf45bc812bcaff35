"""Global test configuration for ragchunker tests."""

import pytest
import structlog

from ragchunker.core.models import PROFILES, Document

TAX_SETUP_TEXT = (
    "Overview\nShort intro.\n\n"
    "Follow these steps\n1. Do X\n2. Do Y\n\n"
    "Related topics\nSee also here."
)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep developer env vars from leaking into Settings."""
    for var in [
        "OPENROUTER_API_KEY",
        "CHUNK_MODE",
        "CHUNK_SIZE",
        "CHUNK_PROFILE",
        "LOG_FORMAT",
    ]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def tax_setup_document() -> Document:
    return Document(
        title="Tax Setup",
        text=TAX_SETUP_TEXT,
        file="docs/tax-setup.json",
        url="https://docs.example.com/tax-setup",
    )


@pytest.fixture
def official_profile():
    return PROFILES["official"]


@pytest.fixture
def manual_profile():
    return PROFILES["manual_ai"]


@pytest.fixture
def long_paragraph() -> str:
    """A single-line paragraph well above the merge floors (163 tokens)."""
    return "Sentence about VAT rules. " * 25


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop logging config bound to a CliRunner stream once the test ends."""
    yield
    structlog.reset_defaults()
