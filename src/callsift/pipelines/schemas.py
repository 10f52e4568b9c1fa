"""Typed shapes for raw meeting payloads and normalized extraction results.

Model output is untrusted: every field of ``ExtractionResult`` is coerced in a
``mode="before"`` validator so that downstream writers can rely on well-formed
lists, strings and a bounded quality score.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """Coarse meeting classification persisted on ``raw_meetings.classification``."""

    SALES = "sales_call"
    PARTNER = "partner_call"
    INTERNAL = "internal"
    OTHER = "other"


class CallType(str, Enum):
    DISCOVERY = "discovery"
    PITCH = "pitch"
    FOLLOW_UP = "follow_up"
    CLOSING = "closing"
    CHECK_IN = "check_in"
    UNKNOWN = "unknown"


class Offering(str, Enum):
    AUDIT = "audit"
    RETAINER = "retainer"
    LIFECYCLE = "lifecycle"
    NONE = "none"
    UNKNOWN = "unknown"


class CallOutcome(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    FOLLOW_UP_SCHEDULED = "follow_up_scheduled"
    PROPOSAL_SENT = "proposal_sent"
    DECLINED = "declined"
    UNKNOWN = "unknown"


class ResponseEffectiveness(str, Enum):
    EFFECTIVE = "effective"
    PARTIALLY_EFFECTIVE = "partially_effective"
    INEFFECTIVE = "ineffective"


DEFAULT_COMPANY_NAME = "Unknown"
DEFAULT_QUALITY_SCORE = 5
MIN_QUALITY_SCORE = 1
MAX_QUALITY_SCORE = 10


def _text(value: Any) -> str:
    """Coerce a model-provided scalar to a stripped string ("" for null)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _enum_or(enum_cls: type[Enum], value: Any, default: Enum, unknown: Enum) -> Any:
    text = _text(value).lower()
    if not text:
        return default
    try:
        return enum_cls(text)
    except ValueError:
        return unknown


def clamp_quality_score(value: Any) -> int:
    """Clamp a model-provided score into [1, 10]; non-numbers become 5."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_QUALITY_SCORE
    if isinstance(value, float):
        if not math.isfinite(value):
            return DEFAULT_QUALITY_SCORE
        value = round(value)
    return int(min(MAX_QUALITY_SCORE, max(MIN_QUALITY_SCORE, value)))


# ─── Raw meeting payload ────────────────────────────────────


class Attendee(BaseModel):
    model_config = ConfigDict(extra="ignore")

    display_name: str | None = Field(default=None, alias="displayName")
    email: str | None = None
    name: str | None = None


class MeetingSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    meeting_type: str | None = None
    overview: str | None = None
    keywords: str | None = None
    short_summary: str | None = None
    topics_discussed: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _join_lists(cls, value: Any) -> Any:
        # Providers sometimes return keyword/topic fields as lists
        if isinstance(value, list):
            return " ".join(str(v) for v in value if v)
        return value


class MeetingPayload(BaseModel):
    """The subset of a provider transcript the pipeline reads."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    participants: list[str] = Field(default_factory=list)
    meeting_attendees: list[Attendee] = Field(default_factory=list)
    host_email: str | None = None
    organizer_email: str | None = None
    transcript_text: str | None = None
    transcript_url: str | None = None
    summary: MeetingSummary = Field(default_factory=MeetingSummary)

    @field_validator("participants", mode="before")
    @classmethod
    def _participant_strings(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [p for p in value if isinstance(p, str)]
        return value

    @field_validator("meeting_attendees", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("summary", mode="before")
    @classmethod
    def _none_to_summary(cls, value: Any) -> Any:
        return {} if value is None else value

    def emails(self) -> list[str]:
        """Distinct lower-cased participant emails in first-seen order."""
        found: list[str] = []
        candidates: list[str | None] = [self.host_email, self.organizer_email]
        candidates.extend(p for p in self.participants if p and "@" in p)
        candidates.extend(a.email for a in self.meeting_attendees)
        for email in candidates:
            if email:
                lowered = email.strip().lower()
                if lowered not in found:
                    found.append(lowered)
        return found

    def summary_text(self) -> str | None:
        return self.summary.overview or self.summary.short_summary or None


# ─── Extraction result ─────────────────────────────────────


class _Item(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _text(value)


class ProspectRef(_Item):
    name: str = ""
    role: str = ""


class TeamMemberRef(_Item):
    name: str = ""
    email: str = ""


class ObjectionRef(_Item):
    type_key: str = ""
    quote: str = ""
    context: str = ""


class KeyQuoteRef(_Item):
    speaker: str = ""
    quote_text: str = ""
    context: str = ""


class FollowUpRef(_Item):
    action_text: str = ""
    assigned_to: str = ""


class CounterResponseRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    objection_type_key: str = ""
    response_text: str = ""
    outcome: ResponseEffectiveness | None = None

    @field_validator("objection_type_key", "response_text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _text(value)

    @field_validator("outcome", mode="before")
    @classmethod
    def _coerce_outcome(cls, value: Any) -> Any:
        text = _text(value).lower()
        try:
            return ResponseEffectiveness(text)
        except ValueError:
            return None


def _objects(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class ExtractionResult(BaseModel):
    """Normalized structured description of one sales call."""

    model_config = ConfigDict(extra="ignore")

    call_type: CallType = CallType.DISCOVERY
    offering_pitched: Offering = Offering.NONE
    company_name: str = DEFAULT_COMPANY_NAME
    prospect_names: list[ProspectRef] = Field(default_factory=list)
    team_members: list[TeamMemberRef] = Field(default_factory=list)
    tech_stack: list[str] = Field(default_factory=list)
    call_outcome: CallOutcome = CallOutcome.NEUTRAL
    deal_size: str | None = None
    call_quality_score: int = DEFAULT_QUALITY_SCORE
    quality_rationale: str = ""
    objections: list[ObjectionRef] = Field(default_factory=list)
    prospect_questions: list[str] = Field(default_factory=list)
    key_quotes: list[KeyQuoteRef] = Field(default_factory=list)
    follow_up_actions: list[FollowUpRef] = Field(default_factory=list)
    counter_responses: list[CounterResponseRef] = Field(default_factory=list)

    @field_validator("call_type", mode="before")
    @classmethod
    def _call_type(cls, value: Any) -> Any:
        return _enum_or(CallType, value, CallType.DISCOVERY, CallType.UNKNOWN)

    @field_validator("offering_pitched", mode="before")
    @classmethod
    def _offering(cls, value: Any) -> Any:
        return _enum_or(Offering, value, Offering.NONE, Offering.UNKNOWN)

    @field_validator("call_outcome", mode="before")
    @classmethod
    def _outcome(cls, value: Any) -> Any:
        return _enum_or(CallOutcome, value, CallOutcome.NEUTRAL, CallOutcome.UNKNOWN)

    @field_validator("company_name", mode="before")
    @classmethod
    def _company(cls, value: Any) -> Any:
        return _text(value) or DEFAULT_COMPANY_NAME

    @field_validator("quality_rationale", mode="before")
    @classmethod
    def _rationale(cls, value: Any) -> Any:
        return _text(value)

    @field_validator("deal_size", mode="before")
    @classmethod
    def _deal_size(cls, value: Any) -> Any:
        return _text(value) or None

    @field_validator("call_quality_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> Any:
        return clamp_quality_score(value)

    @field_validator("tech_stack", "prospect_questions", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [text for text in (_text(v) for v in value) if text]

    @field_validator(
        "prospect_names",
        "team_members",
        "objections",
        "key_quotes",
        "follow_up_actions",
        "counter_responses",
        mode="before",
    )
    @classmethod
    def _object_lists(cls, value: Any) -> Any:
        return _objects(value)

    @classmethod
    def normalize(cls, raw: dict[str, Any]) -> ExtractionResult:
        """Build a result from parsed model JSON, filling absent fields with defaults."""
        return cls.model_validate(raw)
