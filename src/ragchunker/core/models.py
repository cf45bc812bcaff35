from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNTITLED_SECTION = "Untitled Section"
UNTITLED_DOCUMENT = "Untitled Document"
DEFAULT_CHUNK_TYPE = "concept"
CHUNK_TYPES = ("concept", "procedure", "example", "reference")


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _coerce_str_list(value: Any) -> list[str]:
    """Oracle tags arrive as lists, bare strings, or garbage."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple, set)):
        items = [_coerce_str(v) for v in value if v is not None]
        return [v for v in items if v.strip()]
    return []


class Document(BaseModel):
    """One input document; unrecognized fields are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str = ""
    text: str = ""
    file: str = ""  # opaque document id
    url: str = ""

    @field_validator("title", "text", "file", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return _coerce_str(value)


class RawSegment(BaseModel):
    """Partially-structured segment as returned by the segmentation oracle."""

    model_config = ConfigDict(extra="ignore")

    text: str = ""
    title: str | None = None
    chunk_type: str | None = None
    programs: list[str] = []
    topics: list[str] = []

    @field_validator("text", mode="before")
    @classmethod
    def _text_to_str(cls, value: Any) -> str:
        return _coerce_str(value)

    @field_validator("title", "chunk_type", mode="before")
    @classmethod
    def _optional_str(cls, value: Any) -> str | None:
        if value is None:
            return None
        return _coerce_str(value)

    @field_validator("programs", "topics", mode="before")
    @classmethod
    def _tag_list(cls, value: Any) -> list[str]:
        return _coerce_str_list(value)


class NormalizedSegment(BaseModel):
    """Segment with every field populated; produced 1:1 from a raw segment."""

    model_config = ConfigDict(frozen=True)

    text: str
    title: str = UNTITLED_SECTION
    chunk_type: str = DEFAULT_CHUNK_TYPE
    programs: list[str] = []
    topics: list[str] = []


# Either a bare text span or a (partially) structured record
SegmentLike = Union[str, RawSegment, NormalizedSegment, dict]


class ChunkSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: str
    section: str  # original section title, before unique-ifying
    version: str
    url: str = ""


class ChunkContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    steps: list[str] = []


class ChunkTags(BaseModel):
    model_config = ConfigDict(frozen=True)

    module: list[str] = []
    programs: list[str] = []
    topics: list[str] = []
    client_scope: str = "global"
    confidence: str = "official"  # official|reviewed


class Chunk(BaseModel):
    """Final chunk record; immutable once assembled."""

    model_config = ConfigDict(frozen=True)

    id: str
    bucket: str
    chunk_type: str = DEFAULT_CHUNK_TYPE
    title: str
    original_doc_title: str
    source: ChunkSource
    content: ChunkContent
    tags: ChunkTags
    chunk_index: int = Field(ge=0)
    chunk_tokens: int = Field(ge=0)
    chunk_count: int | None = None

    def to_record(self) -> dict[str, Any]:
        """JSON-ready dict; chunk_count is omitted when not configured."""
        return self.model_dump(exclude_none=True)


class ChunkProfile(BaseModel):
    """Provenance labels and validation toggles for one pipeline flavour."""

    model_config = ConfigDict(frozen=True)

    name: str
    bucket: str
    confidence: str
    fidelity_check: bool = True
    include_chunk_count: bool = True


PROFILES: dict[str, ChunkProfile] = {
    "official": ChunkProfile(
        name="official",
        bucket="official",
        confidence="official",
        fidelity_check=True,
        include_chunk_count=True,
    ),
    "manual_ai": ChunkProfile(
        name="manual_ai",
        bucket="manual_ai",
        confidence="reviewed",
        fidelity_check=False,
        include_chunk_count=False,
    ),
}


def get_profile(name: str, **overrides: Any) -> ChunkProfile:
    """Look up a built-in profile, applying non-None overrides."""
    try:
        profile = PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown chunk profile: {name} (expected one of {', '.join(PROFILES)})"
        ) from None
    updates = {k: v for k, v in overrides.items() if v is not None}
    return profile.model_copy(update=updates) if updates else profile


class ChunkStats(BaseModel):
    total_files: int = 0
    total_original_tokens: int = 0
    total_chunks: int = 0
    total_chunk_tokens: int = 0
