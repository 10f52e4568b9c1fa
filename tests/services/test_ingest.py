"""Tests for loading exported transcripts."""
from __future__ import annotations

import json

import pytest

from callsift.core.errors import IngestError
from callsift.db.repositories import RawMeetingRepository
from callsift.services.ingest import (
    flatten_sentences,
    ingest_transcripts,
    load_transcripts,
    parse_timestamp,
)

EXPORT = [
    {
        "id": "ff-1",
        "title": "Acme intro",
        "date": 1735732800000,
        "duration": 31.5,
        "participants": ["alice@sherlock.xyz", "bob@acme.io"],
        "sentences": [
            {"index": 0, "speaker_name": "Alice", "text": "Hi Bob"},
            {"index": 1, "speaker_name": None, "text": "Hello"},
        ],
    },
    {"title": "No id"},
]


def test_load_list_and_wrapped_exports(tmp_path):
    listed = tmp_path / "list.json"
    listed.write_text(json.dumps(EXPORT))
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"transcripts": EXPORT}))
    assert load_transcripts(listed) == EXPORT
    assert load_transcripts(wrapped) == EXPORT


def test_load_rejects_bad_files(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(IngestError):
        load_transcripts(bad)
    scalar = tmp_path / "scalar.json"
    scalar.write_text('{"transcripts": 3}')
    with pytest.raises(IngestError):
        load_transcripts(scalar)


def test_flatten_sentences():
    assert flatten_sentences(EXPORT[0]["sentences"]) == "Alice: Hi Bob\nUnknown: Hello"
    assert flatten_sentences(None) == ""


def test_parse_timestamp():
    assert parse_timestamp(1735732800000).year == 2025
    assert parse_timestamp("2025-01-01") is None
    assert parse_timestamp(True) is None


@pytest.mark.asyncio
async def test_ingest_upserts_without_touching_pipeline_state(session):
    report = await ingest_transcripts(session, EXPORT)
    assert (report.inserted, report.updated, report.errors) == (1, 0, 1)

    meetings = RawMeetingRepository(session)
    meeting = await meetings.get_by_external_id("ff-1")
    assert meeting.raw_json["transcript_text"] == "Alice: Hi Bob\nUnknown: Hello"
    assert meeting.raw_json["sentence_count"] == 2
    assert "sentences" not in meeting.raw_json
    assert meeting.duration == 31.5

    await meetings.set_classification(meeting.id, "sales_call")
    await meetings.mark_processed(meeting.id)
    await session.commit()

    again = await ingest_transcripts(session, [dict(EXPORT[0], title="Acme intro (renamed)")])
    assert again.updated == 1

    await session.refresh(meeting)
    assert meeting.title == "Acme intro (renamed)"
    assert meeting.classification == "sales_call"
    assert meeting.processed_at is not None
