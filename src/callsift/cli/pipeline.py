"""Database setup, ingestion and backlog processing commands."""
from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from callsift.cli.base import app, console, create_table, print_error, print_info, print_success
from callsift.core.errors import CallsiftError, ModelConfigurationError
from callsift.core.logging import setup_logging
from callsift.core.settings import get_settings
from callsift.pipelines.call_processing import RunStats
from callsift.pipelines.schemas import Category


@app.command("init-db")  # type: ignore[misc]
def init_db(
    drop: bool = typer.Option(False, "--drop", help="Drop all tables before creating them"),
) -> None:  # pragma: no cover - IO heavy
    """Create the database tables."""
    from callsift.db.base import init_models, reset_engine

    async def _run() -> None:
        await init_models(drop=drop)
        await reset_engine()

    asyncio.run(_run())
    print_success("Database tables created")


@app.command("seed")  # type: ignore[misc]
def seed() -> None:  # pragma: no cover - IO heavy
    """Seed the objection and technology vocabularies."""
    from callsift.db.base import get_session_factory, init_models, reset_engine
    from callsift.db.seed import seed_vocabularies

    setup_logging(get_settings().log_level)

    async def _run() -> dict[str, int]:
        await init_models(drop=False)
        async with get_session_factory()() as session:
            created = await seed_vocabularies(session)
            await session.commit()
        await reset_engine()
        return created

    created = asyncio.run(_run())
    print_success(
        f"Seeded vocabularies ({created['objections']} new objections, "
        f"{created['technologies']} new technologies)"
    )


@app.command("ingest")  # type: ignore[misc]
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON export of transcripts"),
) -> None:  # pragma: no cover - IO heavy
    """Load exported transcripts into raw_meetings."""
    from callsift.db.base import get_session_factory, init_models, reset_engine
    from callsift.services.ingest import IngestReport, ingest_transcripts, load_transcripts

    setup_logging(get_settings().log_level)
    try:
        transcripts = load_transcripts(file)
    except CallsiftError as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e

    async def _run() -> IngestReport:
        await init_models(drop=False)
        async with get_session_factory()() as session:
            report = await ingest_transcripts(session, transcripts)
        await reset_engine()
        return report

    report = asyncio.run(_run())
    print_success(f"Stored {report.stored} meetings ({report.inserted} new, {report.updated} updated)")
    if report.errors:
        print_error(f"{report.errors} transcripts could not be stored")


def render_run_stats(stats: RunStats) -> None:
    table = create_table("Processing Complete", ["Metric", "Count"])
    table.add_row("Total processed", str(stats.total))
    for category in Category:
        table.add_row(category.value, str(stats.count(category)))
    table.add_row("Extracted", str(stats.extracted))
    table.add_row("Extraction errors", str(stats.extraction_errors))
    table.add_row("Classification errors", str(stats.classification_errors))
    table.add_row("LLM classification calls", str(stats.classification_llm_calls))
    table.add_row("Skipped (short transcript)", str(stats.skipped_short))
    console.print(table)

    if stats.errors:
        errors = create_table("Record Errors", ["Meeting", "Code", "Message"])
        for error in stats.errors:
            errors.add_row(error.external_id, error.code.value, error.message[:80])
        console.print(errors)


@app.command("process")  # type: ignore[misc]
def process(
    limit: int | None = typer.Option(None, "--limit", min=1, help="Process at most N meetings"),
    delay: float | None = typer.Option(
        None, "--delay", min=0, help="Seconds to wait before each extraction call"
    ),
) -> None:  # pragma: no cover - IO heavy
    """Classify the unprocessed backlog and extract sales calls."""
    from callsift.db.base import get_session_factory, init_models, reset_engine
    from callsift.pipelines.call_processing import CallProcessingPipeline
    from callsift.pipelines.classifier import ClassifierConfig, MeetingClassifier
    from callsift.pipelines.extractor import ExtractorConfig, SalesCallExtractor
    from callsift.services.llm import build_language_model
    from callsift.services.rate_limiter import FixedDelayRateLimiter

    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        llm = build_language_model(settings)
    except ModelConfigurationError as e:
        console.print(f"[red]{e.display()}[/red]")
        raise typer.Exit(code=1) from e

    print_info(f"Model: {settings.llm_model}")

    async def _run() -> RunStats:
        await init_models(drop=False)
        async with get_session_factory()() as session:
            pipeline = CallProcessingPipeline(
                session,
                MeetingClassifier(ClassifierConfig.from_settings(settings), llm),
                SalesCallExtractor(ExtractorConfig.from_settings(settings), llm),
                FixedDelayRateLimiter(settings.api_delay_seconds if delay is None else delay),
                settings.internal_email_domain,
            )
            stats = await pipeline.run(limit=limit)
        await reset_engine()
        return stats

    render_run_stats(asyncio.run(_run()))


@app.command("repair-team-members")  # type: ignore[misc]
def repair_team_members() -> None:  # pragma: no cover - IO heavy
    """Link internal participants of every extracted call as team members."""
    from callsift.db.base import get_session_factory, init_models, reset_engine
    from callsift.db.repositories import StatsRepository
    from callsift.services.repair import RepairReport, relink_team_members

    settings = get_settings()
    setup_logging(settings.log_level)

    async def _run() -> tuple[RepairReport, list[tuple[str, str, int]]]:
        await init_models(drop=False)
        async with get_session_factory()() as session:
            report = await relink_team_members(session, settings.internal_email_domain)
            members = await StatsRepository(session).team_member_call_counts()
        await reset_engine()
        return report, members

    report, members = asyncio.run(_run())
    print_success(f"Linked: {report.linked}, already existed: {report.skipped}")
    if report.failed:
        print_error(f"{report.failed} links failed")

    table = create_table("Team Members After Repair", ["Name", "Email", "Calls"])
    for name, email, count in members:
        table.add_row(name, email, str(count))
    console.print(table)
