"""Tests for payload parsing and extraction normalization."""
from __future__ import annotations

import math

import pytest

from callsift.pipelines.schemas import (
    CallOutcome,
    CallType,
    ExtractionResult,
    MeetingPayload,
    Offering,
    ResponseEffectiveness,
    clamp_quality_score,
)


def test_normalize_empty_object_uses_defaults():
    result = ExtractionResult.normalize({})
    assert result.call_type is CallType.DISCOVERY
    assert result.offering_pitched is Offering.NONE
    assert result.call_outcome is CallOutcome.NEUTRAL
    assert result.company_name == "Unknown"
    assert result.call_quality_score == 5
    assert result.deal_size is None
    assert result.quality_rationale == ""
    assert result.objections == [] and result.tech_stack == []


def test_unrecognised_enum_values_become_unknown():
    result = ExtractionResult.normalize(
        {"call_type": "demo", "offering_pitched": "bug bounty", "call_outcome": "great"}
    )
    assert result.call_type is CallType.UNKNOWN
    assert result.offering_pitched is Offering.UNKNOWN
    assert result.call_outcome is CallOutcome.UNKNOWN


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (15, 10),
        (-3, 1),
        (0, 1),
        (7, 7),
        (7.6, 8),
        ("8", 5),
        (True, 5),
        (None, 5),
        (math.nan, 5),
        (math.inf, 5),
    ],
)
def test_quality_score_clamping(raw, expected):
    assert clamp_quality_score(raw) == expected
    assert ExtractionResult.normalize({"call_quality_score": raw}).call_quality_score == expected


def test_malformed_lists_are_repaired():
    result = ExtractionResult.normalize(
        {
            "tech_stack": ["Solidity", None, 3, "  "],
            "prospect_questions": "What does it cost?",
            "objections": [{"type_key": "budget_timing", "quote": None}, "junk"],
            "team_members": None,
            "counter_responses": [{"objection_type_key": "budget_timing", "outcome": "meh"}],
        }
    )
    assert result.tech_stack == ["Solidity", "3"]
    assert result.prospect_questions == []
    assert len(result.objections) == 1
    assert result.objections[0].quote == ""
    assert result.team_members == []
    assert result.counter_responses[0].outcome is None


def test_counter_response_outcome():
    result = ExtractionResult.normalize(
        {"counter_responses": [{"objection_type_key": "x", "outcome": "Partially_Effective"}]}
    )
    assert result.counter_responses[0].outcome is ResponseEffectiveness.PARTIALLY_EFFECTIVE


def test_payload_emails_are_distinct_and_lowercase(meeting_factory):
    payload = MeetingPayload.model_validate(
        meeting_factory(
            participants=["Alice@Sherlock.xyz", "not an email", 42, "bob@acme.io"],
            organizer_email="BOB@acme.io",
        )
    )
    assert payload.participants == ["Alice@Sherlock.xyz", "not an email", "bob@acme.io"]
    assert payload.emails() == ["alice@sherlock.xyz", "bob@acme.io"]


def test_summary_fields():
    payload = MeetingPayload.model_validate(
        {"summary": {"keywords": ["audit", "pricing"], "short_summary": "Short"}}
    )
    assert payload.summary.keywords == "audit pricing"
    assert payload.summary_text() == "Short"

    payload = MeetingPayload.model_validate({"summary": {"overview": "Long", "short_summary": "Short"}})
    assert payload.summary_text() == "Long"


def test_missing_summary_is_tolerated():
    payload = MeetingPayload.model_validate({"summary": None, "meeting_attendees": None})
    assert payload.summary_text() is None
    assert payload.emails() == []
