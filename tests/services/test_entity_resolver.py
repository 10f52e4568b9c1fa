"""Tests for get-or-create entity resolution."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest

from callsift.db.models import Company, TeamMember
from callsift.services.entity_resolver import EntityResolver, placeholder_email


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Jane Doe", "jane.doe@sherlock.xyz"),
        ("  Jane   Doe ", "jane.doe@sherlock.xyz"),
        ("O'Neil", "oneil@sherlock.xyz"),
        ("   ", "unknown@sherlock.xyz"),
    ],
)
def test_placeholder_email(name, expected):
    assert placeholder_email(name, "sherlock.xyz") == expected


@pytest.mark.asyncio
@pytest.mark.parametrize("use_cache", [True, False])
async def test_team_member_placeholder_is_deterministic(session, internal_domain, use_cache):
    resolver = EntityResolver(session, internal_domain, use_cache=use_cache)
    first = await resolver.resolve_team_member("Jane Doe", None)
    second = await resolver.resolve_team_member("Jane Doe", "not-an-email")
    assert first == second
    member = await session.get(TeamMember, first)
    assert member.email == "jane.doe@sherlock.xyz"
    assert member.name == "Jane Doe"


@pytest.mark.asyncio
async def test_team_member_email_is_normalized(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    first = await resolver.resolve_team_member("Alice", " Alice@Sherlock.XYZ ")
    second = await resolver.resolve_team_member("Alice Smith", "alice@sherlock.xyz")
    assert first == second


@pytest.mark.asyncio
async def test_company_get_or_create(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    first = await resolver.resolve_company("Acme Protocol")
    second = await resolver.resolve_company("  Acme Protocol ")
    assert first == second


@pytest.mark.asyncio
async def test_unknown_company_gets_fresh_placeholder(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    first = await resolver.resolve_company("Unknown")
    second = await resolver.resolve_company("")
    assert first != second
    company = await session.get(Company, first)
    assert company.name.startswith("Unknown-")


@pytest.mark.asyncio
async def test_prospect_resolution_keys_on_name_only(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    acme = await resolver.resolve_company("Acme")
    globex = await resolver.resolve_company("Globex")
    first = await resolver.resolve_prospect("John Smith", "CTO", acme)
    second = await resolver.resolve_prospect("John Smith", "CEO", globex)
    assert first == second
    assert await resolver.resolve_prospect("  ", None, acme) is None


@pytest.mark.asyncio
async def test_rolled_back_entity_is_forgotten(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    mark = resolver.mark()
    with pytest.raises(RuntimeError):
        async with session.begin_nested():
            await resolver.resolve_company("Ephemeral")
            raise RuntimeError("boom")
    resolver.rollback_to(mark)

    company_id = await resolver.resolve_company("Ephemeral")
    assert isinstance(company_id, uuid.UUID)
    assert await session.get(Company, company_id) is not None


@pytest.mark.asyncio
async def test_closed_vocabularies(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    assert await resolver.objection_id("budget_timing") is not None
    assert await resolver.objection_id("price_too_high") is None
    assert await resolver.objection_id(None) is None
    assert await resolver.technology_id("Solidity") is not None
    assert await resolver.technology_id("solidity") is None
    assert await resolver.technology_id("Cobol") is None


@pytest.mark.asyncio
async def test_company_first_seen_date(session, internal_domain):
    resolver = EntityResolver(session, internal_domain)
    dated = await resolver.resolve_company("Dated Co", datetime(2024, 5, 1, tzinfo=UTC))
    placeholder = await resolver.resolve_company("Unknown", None)
    await session.commit()
    session.expire_all()

    company = await session.get(Company, dated)
    assert company.first_seen_date.replace(tzinfo=None) == datetime(2024, 5, 1)

    before = datetime.now(UTC).replace(tzinfo=None)
    unknown = await session.get(Company, placeholder)
    assert unknown.name.startswith("Unknown-")
    assert unknown.first_seen_date is not None
    assert abs((before - unknown.first_seen_date.replace(tzinfo=None)).total_seconds()) < 60
