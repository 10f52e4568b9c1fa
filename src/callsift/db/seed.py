"""Closed vocabularies for objection types and technologies."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Objection, Technology

logger = logging.getLogger(__name__)

OBJECTION_SEEDS: list[dict[str, str]] = [
    {
        "type_key": "budget_timing",
        "display_name": "Budget / Timing",
        "description": "Prospect cites budget constraints or timing issues for not moving forward",
    },
    {
        "type_key": "need_internal_buyin",
        "display_name": "Need Internal Buy-in",
        "description": "Prospect needs approval from internal stakeholders before committing",
    },
    {
        "type_key": "already_have_auditor",
        "display_name": "Already Have Auditor",
        "description": "Prospect already works with another security auditor",
    },
    {
        "type_key": "scope_concerns",
        "display_name": "Scope Concerns",
        "description": "Prospect has concerns about the scope of work, deliverables, or coverage",
    },
    {
        "type_key": "timeline_too_long",
        "display_name": "Timeline Too Long",
        "description": "Prospect feels the audit timeline is too long for their needs",
    },
    {
        "type_key": "not_ready_yet",
        "display_name": "Not Ready Yet",
        "description": "Prospect's code or project is not at a stage where an audit makes sense",
    },
    {
        "type_key": "comparing_competitors",
        "display_name": "Comparing Competitors",
        "description": "Prospect is evaluating multiple audit firms before making a decision",
    },
    {
        "type_key": "other",
        "display_name": "Other",
        "description": "Objection that does not fit into the canonical categories",
    },
]

TECHNOLOGY_SEEDS: list[dict[str, str]] = [
    {"name": "Solidity", "category": "language"},
    {"name": "Vyper", "category": "language"},
    {"name": "Rust", "category": "language"},
    {"name": "Move", "category": "language"},
    {"name": "Cairo", "category": "language"},
    {"name": "Foundry", "category": "framework"},
    {"name": "Hardhat", "category": "framework"},
    {"name": "Truffle", "category": "framework"},
    {"name": "Ethereum", "category": "chain"},
    {"name": "Arbitrum", "category": "chain"},
    {"name": "Optimism", "category": "chain"},
    {"name": "Base", "category": "chain"},
    {"name": "Polygon", "category": "chain"},
    {"name": "Avalanche", "category": "chain"},
    {"name": "Solana", "category": "chain"},
    {"name": "BSC", "category": "chain"},
]


async def seed_vocabularies(session: AsyncSession) -> dict[str, int]:
    """Insert or refresh the objection and technology vocabularies.

    Existing rows keep their identifiers; only descriptive columns are updated.
    Returns the number of rows created per table.
    """
    created = {"objections": 0, "technologies": 0}

    for seed in OBJECTION_SEEDS:
        result = await session.execute(
            select(Objection).where(Objection.type_key == seed["type_key"])
        )
        objection = result.scalar_one_or_none()
        if objection is None:
            session.add(Objection(**seed))
            created["objections"] += 1
        else:
            objection.display_name = seed["display_name"]
            objection.description = seed["description"]

    for seed in TECHNOLOGY_SEEDS:
        result = await session.execute(select(Technology).where(Technology.name == seed["name"]))
        technology = result.scalar_one_or_none()
        if technology is None:
            session.add(Technology(**seed))
            created["technologies"] += 1
        else:
            technology.category = seed["category"]

    await session.flush()
    logger.info(
        "Seeded %d objections and %d technologies (%d/%d new)",
        len(OBJECTION_SEEDS),
        len(TECHNOLOGY_SEEDS),
        created["objections"],
        created["technologies"],
    )
    return created
