"""OpenRouter chat-completions client used as the semantic segmentation oracle.

The oracle's output is untrusted: every failure mode (transport error, non-2xx
status, unparsable or empty payload) degrades to returning the whole input text
as a single segment.
"""

import json
from typing import Any, List, Optional, Union

import anyio
import httpx

from ..core.config import SETTINGS
from ..core.logging import log
from ..core.models import RawSegment
from ..pipeline.steps.chunk.boundaries import count_tokens

MIN_ORACLE_TOKENS = 50  # shorter documents are never sent
MAX_PROMPT_CHARS = 15000

SYSTEM_PROMPT = "You are a strict data structuring engine. Output valid JSON only."

INSTRUCTIONS = """
PROJECT CONTEXT:
You are a "Librarian AI" for an Infor M3 ERP Consultant Copilot.
Your job is to segment document text into structured knowledge chunks.

MANDATORY RULES:
1. CONTENT: Use EXACT original text. DO NOT rewrite.
2. BOUNDARIES: Split by logical sections (Overview, Procedure, Example).
3. INTEGRITY: Keep tables with their explanations. Keep examples with concepts.
4. METADATA: Discard "Related topics", "Copyright", "Legal info" and navigation text.

CLASSIFICATION RULES:
- chunk_type: "concept" (definitions), "procedure" (steps), "example" (scenarios), "reference" (tables/codes).
- programs: Extract M3 program codes (e.g., CRS610, MNS100) found in the text.
- topics: Extract key business topics (e.g., "VAT", "Authorization").

OUTPUT FORMAT (STRICT JSON):
{
  "chunks": [
    {
      "chunk_type": "concept",
      "title": "Section Title",
      "text": "EXACT original text substring...",
      "programs": ["CRS610"],
      "topics": ["Settings"]
    }
  ]
}
"""

SegmentResult = List[Union[str, RawSegment]]


def build_segmentation_prompt(text: str, title: str) -> str:
    """User prompt: fixed instructions, then the quoted, truncated source text."""
    source = text[:MAX_PROMPT_CHARS].replace('"', '\\"')
    return f'{INSTRUCTIONS}\nDocument Title: "{title}"\n\nText to Process:\n"{source}"\n'


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except ValueError:
        return None


def _between(text: str, opener: str, closer: str) -> Optional[str]:
    first = text.find(opener)
    last = text.rfind(closer)
    if first == -1 or last <= first:
        return None
    return text[first : last + 1]


def parse_segment_response(content: str) -> Optional[SegmentResult]:
    """
    Recover the chunks array from a conversational oracle reply.

    Tries the outermost {...} object with a "chunks" list first, then the
    outermost [...] array. String items become bare segments, objects become
    RawSegment records, anything else is dropped.

    Returns:
        The recovered segments, or None when no chunks array was found
    """
    cleaned = content.strip().replace("```json", "").replace("```", "")

    items: Optional[list] = None
    candidate = _between(cleaned, "{", "}")
    if candidate is not None:
        parsed = _loads(candidate)
        if isinstance(parsed, dict) and isinstance(parsed.get("chunks"), list):
            items = parsed["chunks"]

    if items is None:
        candidate = _between(cleaned, "[", "]")
        if candidate is not None:
            parsed = _loads(candidate)
            if isinstance(parsed, list):
                items = parsed

    if items is None:
        return None

    segments: SegmentResult = []
    for item in items:
        if isinstance(item, str):
            segments.append(item)
        elif isinstance(item, dict):
            segments.append(RawSegment.model_validate(item))
    return segments


def _message_content(data: Any) -> str:
    """Pull choices[0].message.content out of a chat-completions body."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


class OpenRouterSegmenter:
    """Asynchronous single-shot segmentation client (no retries)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        url: str | None = None,
        timeout: float | None = None,
        throttle_seconds: float | None = None,
        referer: str | None = None,
        app_title: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = (api_key or SETTINGS.OPENROUTER_API_KEY or "").strip()
        self.model = model or SETTINGS.OPENROUTER_MODEL
        self.url = url or SETTINGS.OPENROUTER_URL
        self.throttle_seconds = (
            SETTINGS.OPENROUTER_THROTTLE_SECONDS if throttle_seconds is None else throttle_seconds
        )
        self._headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": referer or SETTINGS.OPENROUTER_REFERER,
            "X-Title": app_title or SETTINGS.OPENROUTER_TITLE,
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else SETTINGS.OPENROUTER_TIMEOUT
        )

    async def __aenter__(self) -> "OpenRouterSegmenter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def build_payload(self, text: str, title: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_segmentation_prompt(text, title)},
            ],
        }

    def _fallback(self, text: str, reason: str, **details: Any) -> SegmentResult:
        log.warning("oracle.fallback", reason=reason, model=self.model, **details)
        return [text]

    async def segment(self, text: str, title: str = "") -> SegmentResult:
        """
        Segment text with the oracle.

        Args:
            text: Full document text
            title: Document title, passed to the oracle as context

        Returns:
            At least one raw segment; [text] on any failure or for short text
        """
        if count_tokens(text) < MIN_ORACLE_TOKENS:
            return [text]

        try:
            response = await self._client.post(
                self.url, json=self.build_payload(text, title), headers=self._headers
            )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as e:
            # Request building fails on a malformed URL or a non-ASCII key
            return self._fallback(text, "transport", error=str(e))

        if not response.is_success:
            return self._fallback(text, "status", status=response.status_code)

        if self.throttle_seconds > 0:
            await anyio.sleep(self.throttle_seconds)

        try:
            data = response.json()
        except ValueError:
            return self._fallback(text, "body_not_json")

        segments = parse_segment_response(_message_content(data))
        if not segments:
            return self._fallback(text, "no_chunks")

        log.info("oracle.segmented", model=self.model, segments=len(segments))
        return segments
