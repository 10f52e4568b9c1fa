"""Materialize one extraction result as a Call row and its dependent rows."""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from callsift.core.logging import truncate
from callsift.db.models import RawMeeting
from callsift.db.repositories import CallRepository
from callsift.pipelines.schemas import (
    CounterResponseRef,
    ExtractionResult,
    FollowUpRef,
    KeyQuoteRef,
    MeetingPayload,
    ObjectionRef,
    ProspectRef,
    TeamMemberRef,
)
from callsift.services.entity_resolver import EntityResolver

logger = logging.getLogger(__name__)


@dataclass
class WriteReport:
    call_id: uuid.UUID
    created: Counter[str] = field(default_factory=Counter)
    dropped: Counter[str] = field(default_factory=Counter)
    failed: Counter[str] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": str(self.call_id),
            "created": dict(self.created),
            "dropped": dict(self.dropped),
            "failed": dict(self.failed),
        }


class CallStoreWriter:
    """Writes a Call first, then each child row inside its own SAVEPOINT.

    A failing child row is logged and skipped; the Call and the remaining
    children are kept. References to objection types or technologies that are
    not in the seeded vocabularies are dropped without error.
    """

    def __init__(self, session: AsyncSession, resolver: EntityResolver) -> None:
        self.session = session
        self.resolver = resolver
        self.calls = CallRepository(session)

    async def _guarded(
        self,
        report: WriteReport,
        kind: str,
        label: str,
        action: Callable[[], Awaitable[bool]],
    ) -> None:
        mark = self.resolver.mark()
        try:
            async with self.session.begin_nested():
                created = await action()
        except Exception as e:
            self.resolver.rollback_to(mark)
            report.failed[kind] += 1
            logger.warning("Failed to link %s %s: %s", kind, label, truncate(e, 80))
            return
        if created:
            report.created[kind] += 1
        else:
            report.dropped[kind] += 1

    # ─── child rows ─────────────────────────────────────────

    async def _link_team_member(self, call_id: uuid.UUID, tm: TeamMemberRef) -> bool:
        member_id = await self.resolver.resolve_team_member(tm.name, tm.email)
        await self.calls.add_team_member(call_id, member_id)
        return True

    async def _link_prospect(
        self, call_id: uuid.UUID, company_id: uuid.UUID, pc: ProspectRef
    ) -> bool:
        contact_id = await self.resolver.resolve_prospect(pc.name, pc.role, company_id)
        if contact_id is None:
            return False
        await self.calls.add_prospect_contact(call_id, contact_id)
        return True

    async def _link_technology(self, call_id: uuid.UUID, name: str) -> bool:
        technology_id = await self.resolver.technology_id(name)
        if technology_id is None:
            return False
        await self.calls.add_technology(call_id, technology_id)
        return True

    async def _link_objection(self, call_id: uuid.UUID, obj: ObjectionRef) -> bool:
        objection_id = await self.resolver.objection_id(obj.type_key)
        if objection_id is None:
            return False
        await self.calls.add_objection(call_id, objection_id, obj.quote or None, obj.context or None)
        return True

    async def _add_follow_up(self, call_id: uuid.UUID, fu: FollowUpRef) -> bool:
        if not fu.action_text:
            return False
        await self.calls.add_follow_up(call_id, fu.action_text, fu.assigned_to or None)
        return True

    async def _add_question(self, call_id: uuid.UUID, question: str) -> bool:
        await self.calls.add_question(call_id, question)
        return True

    async def _add_key_quote(self, call_id: uuid.UUID, kq: KeyQuoteRef) -> bool:
        if not kq.quote_text:
            return False
        await self.calls.add_key_quote(call_id, kq.speaker or None, kq.quote_text, kq.context or None)
        return True

    async def _add_counter_response(self, call_id: uuid.UUID, cr: CounterResponseRef) -> bool:
        objection_id = await self.resolver.objection_id(cr.objection_type_key)
        if objection_id is None or not cr.response_text:
            return False
        outcome = cr.outcome.value if cr.outcome is not None else None
        await self.calls.add_counter_response(call_id, objection_id, cr.response_text, outcome)
        return True

    # ─── entry point ────────────────────────────────────────

    async def write(
        self,
        meeting: RawMeeting,
        payload: MeetingPayload,
        extraction: ExtractionResult,
    ) -> WriteReport:
        meeting_date: datetime | None = meeting.date
        duration = round(meeting.duration) if meeting.duration is not None else None

        # The Call row must exist before any child row references it
        company_id = await self.resolver.resolve_company(extraction.company_name, meeting_date)
        call = await self.calls.add_call(
            raw_meeting_id=meeting.id,
            call_type=extraction.call_type.value,
            offering_pitched=extraction.offering_pitched.value,
            company_id=company_id,
            call_outcome=extraction.call_outcome.value,
            deal_size=extraction.deal_size,
            call_quality_score=extraction.call_quality_score,
            quality_rationale=extraction.quality_rationale,
            transcript_text=payload.transcript_text or None,
            summary_text=payload.summary_text(),
            transcript_url=payload.transcript_url or None,
            date=meeting_date,
            duration=duration,
        )
        call_id = call.id
        report = WriteReport(call_id=call_id)

        for tm in extraction.team_members:
            await self._guarded(
                report, "team_member", tm.name, partial(self._link_team_member, call_id, tm)
            )
        for pc in extraction.prospect_names:
            await self._guarded(
                report, "prospect", pc.name, partial(self._link_prospect, call_id, company_id, pc)
            )
        for tech in extraction.tech_stack:
            await self._guarded(
                report, "technology", tech, partial(self._link_technology, call_id, tech)
            )
        for obj in extraction.objections:
            await self._guarded(
                report, "objection", obj.type_key, partial(self._link_objection, call_id, obj)
            )
        for fu in extraction.follow_up_actions:
            await self._guarded(
                report, "follow_up", fu.action_text[:40], partial(self._add_follow_up, call_id, fu)
            )
        for question in extraction.prospect_questions:
            await self._guarded(
                report, "question", question[:40], partial(self._add_question, call_id, question)
            )
        for kq in extraction.key_quotes:
            await self._guarded(
                report, "key_quote", kq.speaker, partial(self._add_key_quote, call_id, kq)
            )
        for cr in extraction.counter_responses:
            await self._guarded(
                report,
                "counter_response",
                cr.objection_type_key,
                partial(self._add_counter_response, call_id, cr),
            )

        logger.debug("Stored call %s: %s", call_id, report.to_dict())
        return report
