"""Read-only inspection commands."""
from __future__ import annotations

import asyncio

import typer

from callsift.cli.base import app, console, create_table, print_error
from callsift.core.settings import get_settings


@app.command("health")  # type: ignore[misc]
def health() -> None:
    """Show basic health / config info."""
    settings = get_settings()
    table = create_table("callsift Health", ["Key", "Value"])
    table.add_row("environment", settings.environment)
    table.add_row("database", settings.database_url.split("@")[-1])
    table.add_row("model", settings.llm_model)
    table.add_row("internal domain", settings.internal_email_domain)
    table.add_row("extraction delay", f"{settings.api_delay_seconds}s")
    console.print(table)


@app.command("verify")  # type: ignore[misc]
def verify() -> None:  # pragma: no cover - IO heavy
    """Print table row counts and the classification breakdown."""
    from callsift.db.base import get_session_factory, init_models, reset_engine
    from callsift.db.repositories import StatsRepository

    async def _run() -> tuple[dict[str, int], dict[str, int], int]:
        await init_models(drop=False)
        async with get_session_factory()() as session:
            stats = StatsRepository(session)
            result = (
                await stats.table_counts(),
                await stats.classification_counts(),
                await stats.unprocessed_count(),
            )
        await reset_engine()
        return result

    counts, classifications, unprocessed = asyncio.run(_run())

    table = create_table("Table Row Counts", ["Table", "Rows"])
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)

    breakdown = create_table("Classification Breakdown", ["Classification", "Meetings"])
    for label, count in sorted(classifications.items()):
        breakdown.add_row(label, str(count))
    console.print(breakdown)
    console.print(f"Unprocessed meetings: {unprocessed}")


@app.command("show-meeting")  # type: ignore[misc]
def show_meeting(external_id: str) -> None:  # pragma: no cover - IO heavy
    """Show a raw meeting's state and its extracted call, if any."""
    from callsift.db.base import get_session_factory, init_models, reset_engine
    from callsift.db.models import Call, RawMeeting
    from callsift.db.repositories import CallRepository, RawMeetingRepository

    async def _run() -> tuple[RawMeeting | None, Call | None]:
        await init_models(drop=False)
        async with get_session_factory()() as session:
            meeting = await RawMeetingRepository(session).get_by_external_id(external_id)
            call = await CallRepository(session).get_by_raw_meeting(meeting.id) if meeting else None
        await reset_engine()
        return meeting, call

    meeting, call = asyncio.run(_run())
    if meeting is None:
        print_error(f"Meeting {external_id} not found")
        raise typer.Exit(code=1)

    table = create_table(f"Meeting {external_id}", ["Field", "Value"])
    table.add_row("title", meeting.title or "")
    table.add_row("date", str(meeting.date or ""))
    table.add_row("classification", meeting.classification or "unclassified")
    table.add_row("processed_at", str(meeting.processed_at or "pending"))
    console.print(table)

    if call is None:
        console.print("[dim]No extracted call[/dim]")
        return
    detail = create_table("Call", ["Field", "Value"])
    detail.add_row("call_type", call.call_type or "")
    detail.add_row("offering_pitched", call.offering_pitched or "")
    detail.add_row("call_outcome", call.call_outcome or "")
    detail.add_row("deal_size", call.deal_size or "")
    detail.add_row("quality", f"{call.call_quality_score} ({call.quality_rationale or ''})")
    console.print(detail)
