"""Re-link internal participants of already extracted calls as team members."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from callsift.core.logging import truncate
from callsift.db.repositories import CallRepository
from callsift.pipelines.schemas import MeetingPayload
from callsift.services.entity_resolver import EntityResolver

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    linked: int = 0
    skipped: int = 0
    failed: int = 0


def internal_participants(raw: dict[str, Any], internal_domain: str) -> list[tuple[str, str]]:
    """(name, email) pairs for internal attendees, participants and host, deduplicated by email."""
    payload = MeetingPayload.model_validate(raw)
    suffix = f"@{internal_domain.lower()}"
    found: dict[str, tuple[str, str]] = {}

    def add(name: str | None, email: str) -> None:
        key = email.strip().lower()
        if key.endswith(suffix) and key not in found:
            found[key] = (name or email.split("@")[0], email)

    for attendee in payload.meeting_attendees:
        if attendee.email:
            add(attendee.display_name or attendee.name, attendee.email)
    for participant in payload.participants:
        if "@" in participant:
            add(None, participant)
    if payload.host_email:
        add(None, payload.host_email)
    return list(found.values())


async def relink_team_members(session: AsyncSession, internal_domain: str) -> RepairReport:
    """Create missing ``call_team_members`` links from each call's raw meeting."""
    calls = CallRepository(session)
    resolver = EntityResolver(session, internal_domain)
    report = RepairReport()

    pairs = await calls.list_with_raw_meeting()
    logger.info("Found %d calls to process", len(pairs))
    for call, meeting in pairs:
        try:
            members = internal_participants(meeting.raw_json or {}, internal_domain)
        except Exception as e:
            report.failed += 1
            logger.warning("Unreadable raw meeting %s: %s", meeting.external_id, truncate(e, 60))
            continue
        for name, email in members:
            mark = resolver.mark()
            try:
                async with session.begin_nested():
                    member_id = await resolver.resolve_team_member(name, email)
                    if await calls.has_team_member_link(call.id, member_id):
                        report.skipped += 1
                        continue
                    await calls.add_team_member(call.id, member_id)
            except Exception as e:
                resolver.rollback_to(mark)
                report.failed += 1
                logger.warning("%s (%s): %s", name, email, truncate(e, 60))
                continue
            report.linked += 1

    await session.commit()
    resolver.commit()
    logger.info("Linked %d, already existed %d", report.linked, report.skipped)
    return report
