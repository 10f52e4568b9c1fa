from __future__ import annotations

import pytest
from sqlalchemy import select

from callsift.db.models import Objection
from callsift.db.repositories import StatsRepository
from callsift.db.seed import OBJECTION_SEEDS, TECHNOLOGY_SEEDS, seed_vocabularies


@pytest.mark.asyncio
async def test_seeding_is_idempotent(session):
    # the fixture has already seeded once
    created = await seed_vocabularies(session)
    await session.commit()

    assert created == {"objections": 0, "technologies": 0}
    counts = await StatsRepository(session).table_counts()
    assert counts["objections"] == len(OBJECTION_SEEDS) == 8
    assert counts["technologies"] == len(TECHNOLOGY_SEEDS) == 16


@pytest.mark.asyncio
async def test_reseeding_refreshes_descriptions(session):
    objection = (
        await session.execute(select(Objection).where(Objection.type_key == "budget_timing"))
    ).scalar_one()
    objection.display_name = "stale"
    await session.commit()

    await seed_vocabularies(session)
    await session.commit()
    await session.refresh(objection)
    assert objection.display_name == "Budget / Timing"
