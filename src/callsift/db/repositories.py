"""Repository implementations using SQLAlchemy async sessions."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Call,
    CallEmbedding,
    CallFollowUp,
    CallObjection,
    CallProspectContact,
    CallTeamMember,
    CallTechnology,
    Company,
    CounterResponse,
    KeyQuote,
    Objection,
    ProspectContact,
    ProspectQuestion,
    RawMeeting,
    TeamMember,
    Technology,
    utcnow,
)


class RawMeetingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, meeting_id: uuid.UUID) -> RawMeeting | None:
        result = await self.session.execute(select(RawMeeting).where(RawMeeting.id == meeting_id))
        return result.scalar_one_or_none()

    async def get_by_external_id(self, external_id: str) -> RawMeeting | None:
        result = await self.session.execute(
            select(RawMeeting).where(RawMeeting.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        external_id: str,
        title: str | None,
        date: datetime | None,
        duration: float | None,
        raw_json: dict[str, Any] | None,
    ) -> tuple[RawMeeting, bool]:
        """Insert a meeting or refresh its ingested fields. Returns (meeting, created)."""
        meeting = await self.get_by_external_id(external_id)
        if meeting is None:
            meeting = RawMeeting(
                external_id=external_id,
                title=title,
                date=date,
                duration=duration,
                raw_json=raw_json,
            )
            self.session.add(meeting)
            await self.session.flush()
            return meeting, True
        meeting.title = title
        meeting.date = date
        meeting.duration = duration
        meeting.raw_json = raw_json
        await self.session.flush()
        return meeting, False

    async def list_unprocessed(self, limit: int | None = None) -> Sequence[RawMeeting]:
        stmt = (
            select(RawMeeting)
            .where(RawMeeting.processed_at.is_(None))
            .order_by(RawMeeting.date.asc(), RawMeeting.external_id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def set_classification(self, meeting_id: uuid.UUID, classification: str) -> None:
        await self.session.execute(
            update(RawMeeting)
            .where(RawMeeting.id == meeting_id)
            .values(classification=classification)
        )

    async def mark_processed(self, meeting_id: uuid.UUID, when: datetime | None = None) -> None:
        await self.session.execute(
            update(RawMeeting)
            .where(RawMeeting.id == meeting_id)
            .values(processed_at=when or utcnow())
        )


class CompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, name: str) -> Company | None:
        result = await self.session.execute(select(Company).where(Company.name == name).limit(1))
        return result.scalar_one_or_none()

    async def add(self, name: str, first_seen_date: datetime | None) -> Company:
        company = Company(name=name, first_seen_date=first_seen_date)
        self.session.add(company)
        await self.session.flush()
        return company


class TeamMemberRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> TeamMember | None:
        result = await self.session.execute(
            select(TeamMember).where(TeamMember.email == email).limit(1)
        )
        return result.scalar_one_or_none()

    async def add(self, name: str, email: str) -> TeamMember:
        member = TeamMember(name=name, email=email)
        self.session.add(member)
        await self.session.flush()
        return member


class ProspectContactRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, name: str) -> ProspectContact | None:
        result = await self.session.execute(
            select(ProspectContact).where(ProspectContact.name == name).limit(1)
        )
        return result.scalar_one_or_none()

    async def add(self, name: str, role: str | None, company_id: uuid.UUID | None) -> ProspectContact:
        contact = ProspectContact(name=name, role=role, company_id=company_id)
        self.session.add(contact)
        await self.session.flush()
        return contact


class VocabularyRepository:
    """Read-only access to the seeded objection and technology vocabularies."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_objection_id(self, type_key: str) -> uuid.UUID | None:
        result = await self.session.execute(
            select(Objection.id).where(Objection.type_key == type_key).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_technology_id(self, name: str) -> uuid.UUID | None:
        result = await self.session.execute(
            select(Technology.id).where(Technology.name == name).limit(1)
        )
        return result.scalar_one_or_none()


class CallRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_raw_meeting(self, raw_meeting_id: uuid.UUID) -> Call | None:
        result = await self.session.execute(
            select(Call).where(Call.raw_meeting_id == raw_meeting_id)
        )
        return result.scalar_one_or_none()

    async def add_call(self, **values: Any) -> Call:
        call = Call(**values)
        self.session.add(call)
        await self.session.flush()  # assign id
        return call

    async def add_team_member(self, call_id: uuid.UUID, team_member_id: uuid.UUID) -> None:
        self.session.add(CallTeamMember(call_id=call_id, team_member_id=team_member_id))
        await self.session.flush()

    async def add_prospect_contact(self, call_id: uuid.UUID, prospect_contact_id: uuid.UUID) -> None:
        self.session.add(CallProspectContact(call_id=call_id, prospect_contact_id=prospect_contact_id))
        await self.session.flush()

    async def add_technology(self, call_id: uuid.UUID, technology_id: uuid.UUID) -> None:
        self.session.add(CallTechnology(call_id=call_id, technology_id=technology_id))
        await self.session.flush()

    async def add_objection(
        self,
        call_id: uuid.UUID,
        objection_id: uuid.UUID,
        quote: str | None,
        context: str | None,
    ) -> None:
        self.session.add(
            CallObjection(call_id=call_id, objection_id=objection_id, quote=quote, context=context)
        )
        await self.session.flush()

    async def add_follow_up(self, call_id: uuid.UUID, action_text: str, assigned_to: str | None) -> None:
        self.session.add(CallFollowUp(call_id=call_id, action_text=action_text, assigned_to=assigned_to))
        await self.session.flush()

    async def add_question(self, call_id: uuid.UUID, question_text: str) -> None:
        self.session.add(ProspectQuestion(call_id=call_id, question_text=question_text))
        await self.session.flush()

    async def add_key_quote(
        self,
        call_id: uuid.UUID,
        speaker: str | None,
        quote_text: str,
        context: str | None,
    ) -> None:
        self.session.add(
            KeyQuote(call_id=call_id, speaker=speaker, quote_text=quote_text, context=context)
        )
        await self.session.flush()

    async def add_counter_response(
        self,
        call_id: uuid.UUID,
        objection_id: uuid.UUID,
        response_text: str,
        outcome: str | None,
    ) -> None:
        self.session.add(
            CounterResponse(
                call_id=call_id,
                objection_id=objection_id,
                response_text=response_text,
                outcome=outcome,
            )
        )
        await self.session.flush()

    async def has_team_member_link(self, call_id: uuid.UUID, team_member_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(CallTeamMember.id)
            .where(CallTeamMember.call_id == call_id)
            .where(CallTeamMember.team_member_id == team_member_id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_with_raw_meeting(self) -> Sequence[tuple[Call, RawMeeting]]:
        result = await self.session.execute(
            select(Call, RawMeeting).join(RawMeeting, Call.raw_meeting_id == RawMeeting.id)
        )
        return [(call, meeting) for call, meeting in result.all()]


class StatsRepository:
    """Row counts used by the inspection commands."""

    TABLES = (
        RawMeeting,
        Call,
        Company,
        TeamMember,
        ProspectContact,
        Objection,
        Technology,
        CallObjection,
        CallTechnology,
        CallTeamMember,
        CallProspectContact,
        CallFollowUp,
        ProspectQuestion,
        KeyQuote,
        CounterResponse,
        CallEmbedding,
    )

    def __init__(self, session: AsyncSession):
        self.session = session

    async def table_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for model in self.TABLES:
            result = await self.session.execute(select(func.count()).select_from(model))
            counts[model.__tablename__] = int(result.scalar_one())
        return counts

    async def classification_counts(self) -> dict[str, int]:
        result = await self.session.execute(
            select(RawMeeting.classification, func.count())
            .group_by(RawMeeting.classification)
        )
        return {(label or "unclassified"): int(count) for label, count in result.all()}

    async def unprocessed_count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(RawMeeting).where(RawMeeting.processed_at.is_(None))
        )
        return int(result.scalar_one())

    async def team_member_call_counts(self) -> list[tuple[str, str, int]]:
        result = await self.session.execute(
            select(TeamMember.name, TeamMember.email, func.count(CallTeamMember.id))
            .outerjoin(CallTeamMember, CallTeamMember.team_member_id == TeamMember.id)
            .group_by(TeamMember.id, TeamMember.name, TeamMember.email)
            .order_by(func.count(CallTeamMember.id).desc(), TeamMember.email.asc())
        )
        return [(name, email, int(count)) for name, email, count in result.all()]
