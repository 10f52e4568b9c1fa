"""Get-or-create resolution of free-text names into stable entity identities.

Resolved identities are memoised per natural key for the lifetime of the
resolver. Entries created inside a transaction stay provisional until
``commit()``; ``rollback_to()``/``rollback()`` forget them again so a rolled
back insert never leaks a dangling identifier into later records.
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from callsift.db.models import utcnow
from callsift.db.repositories import (
    CompanyRepository,
    ProspectContactRepository,
    TeamMemberRepository,
    VocabularyRepository,
)
from callsift.pipelines.schemas import DEFAULT_COMPANY_NAME

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^a-z.]")

CacheKey = tuple[str, str]


def placeholder_email(name: str, internal_domain: str) -> str:
    """Deterministic stand-in address for a team member without a usable email."""
    slug = _WHITESPACE_RE.sub(".", name.strip().lower())
    slug = _NON_SLUG_RE.sub("", slug)
    return f"{slug or 'unknown'}@{internal_domain}"


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class EntityResolver:
    def __init__(
        self,
        session: AsyncSession,
        internal_domain: str,
        *,
        use_cache: bool = True,
    ) -> None:
        self.internal_domain = internal_domain
        self.use_cache = use_cache
        self.companies = CompanyRepository(session)
        self.team_members = TeamMemberRepository(session)
        self.prospects = ProspectContactRepository(session)
        self.vocabulary = VocabularyRepository(session)
        self._cache: dict[CacheKey, uuid.UUID] = {}
        self._journal: list[CacheKey] = []
        self._vocabulary_cache: dict[CacheKey, uuid.UUID | None] = {}

    # ─── cache bookkeeping ──────────────────────────────────

    def _cached(self, key: CacheKey) -> uuid.UUID | None:
        return self._cache.get(key) if self.use_cache else None

    def _remember(self, key: CacheKey, entity_id: uuid.UUID) -> uuid.UUID:
        if self.use_cache and key not in self._cache:
            self._cache[key] = entity_id
            self._journal.append(key)
        return entity_id

    def mark(self) -> int:
        return len(self._journal)

    def rollback_to(self, mark: int) -> None:
        while len(self._journal) > mark:
            self._cache.pop(self._journal.pop(), None)

    def rollback(self) -> None:
        self.rollback_to(0)

    def commit(self) -> None:
        self._journal.clear()

    # ─── resolution ─────────────────────────────────────────

    async def resolve_company(self, name: str | None, first_seen: datetime | None = None) -> uuid.UUID:
        normalized = (name or "").strip()
        seen = first_seen or utcnow()
        if not normalized or normalized == DEFAULT_COMPANY_NAME:
            placeholder = f"{DEFAULT_COMPANY_NAME}-{uuid.uuid4().hex[:12]}"
            company = await self.companies.add(placeholder, seen)
            logger.debug("Created placeholder company %s", placeholder)
            return company.id

        key = ("company", normalized)
        cached = self._cached(key)
        if cached is not None:
            return cached
        existing = await self.companies.get_by_name(normalized)
        if existing is None:
            existing = await self.companies.add(normalized, seen)
            logger.debug("Created company %s", normalized)
        return self._remember(key, existing.id)

    async def resolve_team_member(self, name: str | None, email: str | None) -> uuid.UUID:
        display_name = (name or "").strip()
        normalized = normalize_email(email)
        if not normalized or "@" not in normalized:
            normalized = placeholder_email(display_name, self.internal_domain)

        key = ("team_member", normalized)
        cached = self._cached(key)
        if cached is not None:
            return cached
        existing = await self.team_members.get_by_email(normalized)
        if existing is None:
            existing = await self.team_members.add(display_name or "Unknown", normalized)
        return self._remember(key, existing.id)

    async def resolve_prospect(
        self,
        name: str | None,
        role: str | None,
        company_id: uuid.UUID | None,
    ) -> uuid.UUID | None:
        """Look a prospect up by name only; same-named people at different companies collide."""
        normalized = (name or "").strip()
        if not normalized:
            return None
        key = ("prospect", normalized)
        cached = self._cached(key)
        if cached is not None:
            return cached
        existing = await self.prospects.get_by_name(normalized)
        if existing is None:
            existing = await self.prospects.add(normalized, (role or "").strip() or None, company_id)
        return self._remember(key, existing.id)

    # ─── closed vocabularies ────────────────────────────────

    async def objection_id(self, type_key: str | None) -> uuid.UUID | None:
        key = ("objection", (type_key or "").strip())
        if key not in self._vocabulary_cache:
            self._vocabulary_cache[key] = (
                await self.vocabulary.get_objection_id(key[1]) if key[1] else None
            )
        return self._vocabulary_cache[key]

    async def technology_id(self, name: str | None) -> uuid.UUID | None:
        key = ("technology", (name or "").strip())
        if key not in self._vocabulary_cache:
            self._vocabulary_cache[key] = (
                await self.vocabulary.get_technology_id(key[1]) if key[1] else None
            )
        return self._vocabulary_cache[key]
