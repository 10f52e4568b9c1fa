"""Two-tier meeting classifier: keyword rules first, language model fallback."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from callsift.core.errors import ClassificationError
from callsift.core.settings import Settings
from callsift.pipelines.interfaces import LanguageModel
from callsift.pipelines.prompts import CLASSIFICATION_PROMPT
from callsift.pipelines.schemas import Category, MeetingPayload

logger = logging.getLogger(__name__)

SALES_KEYWORDS: tuple[str, ...] = (
    "audit", "security audit", "smart contract", "retainer", "lifecycle",
    "pricing", "proposal", "scope", "timeline", "engagement",
    "quote", "budget", "deal", "contract", "sow", "statement of work",
    "penetration test", "code review", "security review",
    "sherlock", "coverage", "protocol", "defi",
)

PARTNER_KEYWORDS: tuple[str, ...] = (
    "partnership", "vendor", "integration", "conference", "event",
    "sponsor", "collaborate", "referral", "reseller",
)

INTERNAL_KEYWORDS: tuple[str, ...] = (
    "standup", "sprint", "retro", "retrospective", "1:1", "one on one",
    "team sync", "all hands", "weekly sync", "daily standup",
)

_NON_TOKEN_RE = re.compile(r"[^a-z_]")


@dataclass
class ClassifierConfig:
    internal_domain: str = "sherlock.xyz"
    sales_keywords: tuple[str, ...] = SALES_KEYWORDS
    partner_keywords: tuple[str, ...] = PARTNER_KEYWORDS
    internal_keywords: tuple[str, ...] = INTERNAL_KEYWORDS
    sales_meeting_types: tuple[str, ...] = ("sales", "discovery", "pitch")
    internal_meeting_types: tuple[str, ...] = ("internal", "standup", "team")
    excerpt_words: int = 500
    max_tokens: int = 50

    @classmethod
    def from_settings(cls, settings: Settings) -> ClassifierConfig:
        return cls(
            internal_domain=settings.internal_email_domain,
            max_tokens=settings.classification_max_tokens,
        )


@dataclass(slots=True)
class RuleScores:
    sales: int
    partner: int
    internal: int


def count_keyword_hits(text: str, keywords: tuple[str, ...]) -> int:
    """Number of distinct keywords present in ``text`` (not occurrences)."""
    lower = text.lower()
    return sum(1 for kw in keywords if kw in lower)


def parse_category(response: str) -> Category:
    """Map a free-form model answer to a category, ``other`` if unrecognised."""
    token = _NON_TOKEN_RE.sub("", response.strip().lower())
    try:
        return Category(token)
    except ValueError:
        return Category.OTHER


class MeetingClassifier:
    def __init__(self, config: ClassifierConfig, llm: LanguageModel) -> None:
        self.config = config
        self.llm = llm
        self.llm_calls = 0

    async def classify(self, raw: dict[str, Any] | MeetingPayload) -> Category:
        """Classify one meeting, calling the model at most once."""
        payload = raw if isinstance(raw, MeetingPayload) else MeetingPayload.model_validate(raw)
        category = self.classify_by_rules(payload)
        if category is not None:
            return category
        return await self.classify_by_llm(payload)

    def _is_internal(self, email: str) -> bool:
        return email.endswith(f"@{self.config.internal_domain.lower()}")

    def corpus(self, payload: MeetingPayload) -> str:
        summary = payload.summary
        parts = [
            payload.title,
            summary.meeting_type,
            summary.overview,
            summary.keywords,
            summary.short_summary,
            summary.topics_discussed,
        ]
        return " ".join(p for p in parts if p)

    def score(self, corpus: str) -> RuleScores:
        return RuleScores(
            sales=count_keyword_hits(corpus, self.config.sales_keywords),
            partner=count_keyword_hits(corpus, self.config.partner_keywords),
            internal=count_keyword_hits(corpus, self.config.internal_keywords),
        )

    def classify_by_rules(self, payload: MeetingPayload) -> Category | None:
        """Deterministic tier. Returns ``None`` when the signal is inconclusive."""
        emails = payload.emails()
        internal = [e for e in emails if self._is_internal(e)]
        external = [e for e in emails if not self._is_internal(e)]

        if internal and not external:
            return Category.INTERNAL

        corpus = self.corpus(payload)
        if not corpus.strip():
            return None

        scores = self.score(corpus)
        if scores.sales >= 3 and scores.sales > scores.partner and scores.sales > scores.internal:
            return Category.SALES
        if scores.partner >= 2 and scores.partner > scores.sales:
            return Category.PARTNER
        if scores.internal >= 2 and scores.internal > scores.sales:
            return Category.INTERNAL

        meeting_type = (payload.summary.meeting_type or "").lower()
        if any(s in meeting_type for s in self.config.sales_meeting_types):
            return Category.SALES
        if any(s in meeting_type for s in self.config.internal_meeting_types):
            return Category.INTERNAL

        # Low-confidence branch: one sales keyword plus any external participant
        # is enough to send the meeting to extraction.
        if scores.sales >= 1 and external:
            return Category.SALES

        return None

    def build_prompt(self, payload: MeetingPayload) -> str:
        words = (payload.transcript_text or "").split()
        excerpt = " ".join(words[: self.config.excerpt_words])
        context = ""
        if payload.title:
            context += f'Meeting title: "{payload.title}"\n'
        if payload.summary.overview:
            context += f'Overview: "{payload.summary.overview}"\n'
        return CLASSIFICATION_PROMPT.format(context=context, excerpt=excerpt)

    async def classify_by_llm(self, payload: MeetingPayload) -> Category:
        prompt = self.build_prompt(payload)
        self.llm_calls += 1
        try:
            response = await self.llm.complete(prompt, max_tokens=self.config.max_tokens)
        except Exception as e:
            raise ClassificationError(f"Classification model call failed: {e}", original_error=e) from e
        category = parse_category(response or "")
        logger.debug("Model classified %r as %s", payload.title, category.value)
        return category
