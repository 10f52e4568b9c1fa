"""LLM extraction of structured sales-call data from transcripts."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from callsift.core.errors import ExtractionError, ExtractionParseError
from callsift.core.settings import Settings
from callsift.pipelines.interfaces import LanguageModel
from callsift.pipelines.prompts import TRUNCATION_MARKER, render_extraction_instructions
from callsift.pipelines.schemas import ExtractionResult

logger = logging.getLogger(__name__)

_LEADING_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\s*```$")


@dataclass
class ExtractorConfig:
    internal_domain: str = "sherlock.xyz"
    min_transcript_chars: int = 50
    max_chars: int = 100_000
    max_tokens: int = 4096

    @classmethod
    def from_settings(cls, settings: Settings) -> ExtractorConfig:
        return cls(
            internal_domain=settings.internal_email_domain,
            min_transcript_chars=settings.min_transcript_chars,
            max_chars=settings.max_extraction_chars,
            max_tokens=settings.extraction_max_tokens,
        )


def strip_code_fences(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    stripped = text.strip()
    stripped = _LEADING_FENCE_RE.sub("", stripped)
    stripped = _TRAILING_FENCE_RE.sub("", stripped)
    return stripped.strip()


def parse_extraction_response(text: str) -> ExtractionResult:
    """Parse raw model output into a normalized result.

    Raises:
        ExtractionParseError: if the body is not a JSON object.
    """
    body = strip_code_fences(text)
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ExtractionParseError(f"Failed to parse extraction result: {e}", text) from e
    if not isinstance(data, dict):
        raise ExtractionParseError(
            f"Failed to parse extraction result: expected object, got {type(data).__name__}", text
        )
    return ExtractionResult.normalize(data)


class SalesCallExtractor:
    def __init__(self, config: ExtractorConfig, llm: LanguageModel) -> None:
        self.config = config
        self.llm = llm
        self.instructions = render_extraction_instructions(config.internal_domain)

    def is_extractable(self, transcript: str | None) -> bool:
        return bool(transcript) and len(transcript or "") >= self.config.min_transcript_chars

    def build_request(self, transcript: str, title: str, summary: str | None = None) -> str:
        """Instruction prefix followed by context and transcript, truncated from the end."""
        parts: list[str] = []
        if title:
            parts.append(f'Meeting title: "{title}"')
        if summary:
            parts.append(f'Meeting summary: "{summary}"')
        parts.append(f"\nTranscript:\n{transcript}")
        content = "\n".join(parts)
        if len(content) > self.config.max_chars:
            content = content[: self.config.max_chars] + TRUNCATION_MARKER
        return f"{self.instructions}\n\n{content}"

    async def extract(
        self,
        transcript: str,
        title: str,
        summary: str | None = None,
    ) -> ExtractionResult:
        prompt = self.build_request(transcript, title, summary)
        try:
            response = await self.llm.complete(prompt, max_tokens=self.config.max_tokens)
        except Exception as e:
            raise ExtractionError(f"Extraction model call failed: {e}") from e

        try:
            return parse_extraction_response(response or "")
        except ExtractionParseError:
            logger.error(
                "JSON parse error. Raw response (first 500 chars): %s", (response or "")[:500]
            )
            raise
