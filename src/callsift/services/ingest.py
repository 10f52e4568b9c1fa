"""Load exported provider transcripts into ``raw_meetings``."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from callsift.core.errors import IngestError
from callsift.core.logging import truncate
from callsift.db.repositories import RawMeetingRepository

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    inserted: int = 0
    updated: int = 0
    errors: int = 0

    @property
    def stored(self) -> int:
        return self.inserted + self.updated


def load_transcripts(path: Path) -> list[dict[str, Any]]:
    """Read a JSON export: either a list of transcripts or ``{"transcripts": [...]}``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise IngestError(f"Cannot read transcripts from {path}: {e}") from e
    if isinstance(data, dict):
        data = data.get("transcripts")
    if not isinstance(data, list):
        raise IngestError(f"{path} does not contain a list of transcripts")
    return [t for t in data if isinstance(t, dict)]


def flatten_sentences(sentences: Any) -> str:
    """Render provider sentences as ``Speaker: text`` lines."""
    if not isinstance(sentences, list):
        return ""
    lines = []
    for s in sentences:
        if isinstance(s, dict):
            lines.append(f"{s.get('speaker_name') or 'Unknown'}: {s.get('text') or ''}")
    return "\n".join(lines)


def parse_timestamp(value: Any) -> datetime | None:
    """Provider dates are Unix timestamps in milliseconds."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def to_stored_json(transcript: dict[str, Any]) -> dict[str, Any]:
    stored = {k: v for k, v in transcript.items() if k != "sentences"}
    sentences = transcript.get("sentences")
    stored["sentence_count"] = len(sentences) if isinstance(sentences, list) else 0
    if not stored.get("transcript_text"):
        stored["transcript_text"] = flatten_sentences(sentences)
    return stored


async def ingest_transcripts(session: AsyncSession, transcripts: list[dict[str, Any]]) -> IngestReport:
    """Upsert transcripts by external id; classification and processed state are left alone."""
    meetings = RawMeetingRepository(session)
    report = IngestReport()
    for transcript in transcripts:
        external_id = transcript.get("id")
        if not external_id:
            report.errors += 1
            logger.error("Skipping transcript without id: %s", truncate(transcript.get("title"), 80))
            continue
        duration = transcript.get("duration")
        try:
            async with session.begin_nested():
                _, created = await meetings.upsert(
                    external_id=str(external_id),
                    title=transcript.get("title"),
                    date=parse_timestamp(transcript.get("date")),
                    duration=float(duration) if isinstance(duration, (int, float)) else None,
                    raw_json=to_stored_json(transcript),
                )
        except Exception as e:
            report.errors += 1
            logger.error("Error storing %s (%s): %s", external_id, transcript.get("title"), truncate(e, 100))
            continue
        if created:
            report.inserted += 1
        else:
            report.updated += 1
    await session.commit()
    logger.info("Inserted %d, updated %d, errors %d", report.inserted, report.updated, report.errors)
    return report
