"""Backlog driver: classify every unprocessed meeting and extract sales calls.

Each raw meeting moves from unprocessed to processed exactly once. The
classification is committed as soon as it is known; extraction and store
failures are rolled back, recorded and counted, and the record is marked
processed regardless. Only an error outside the per-record guards (for example
a lost database connection) aborts the run, leaving the current record
unprocessed for the next run.
"""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from callsift.core.errors import RecordError
from callsift.db.repositories import RawMeetingRepository
from callsift.pipelines.classifier import MeetingClassifier
from callsift.pipelines.extractor import SalesCallExtractor
from callsift.pipelines.interfaces import RateLimiter
from callsift.pipelines.schemas import Category, MeetingPayload
from callsift.services.entity_resolver import EntityResolver
from callsift.services.store_writer import CallStoreWriter

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    total: int = 0
    categories: Counter[str] = field(default_factory=Counter)
    extracted: int = 0
    extraction_errors: int = 0
    classification_errors: int = 0
    classification_llm_calls: int = 0
    skipped_short: int = 0
    errors: list[RecordError] = field(default_factory=list)

    def count(self, category: Category) -> int:
        return self.categories[category.value]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"total": self.total}
        for category in Category:
            data[category.value] = self.count(category)
        data.update(
            extracted=self.extracted,
            extraction_errors=self.extraction_errors,
            classification_errors=self.classification_errors,
            classification_llm_calls=self.classification_llm_calls,
            skipped_short=self.skipped_short,
            errors=[e.to_dict() for e in self.errors],
        )
        return data


class CallProcessingPipeline:
    def __init__(
        self,
        session: AsyncSession,
        classifier: MeetingClassifier,
        extractor: SalesCallExtractor,
        rate_limiter: RateLimiter,
        internal_domain: str,
    ) -> None:
        self.session = session
        self.classifier = classifier
        self.extractor = extractor
        self.rate_limiter = rate_limiter
        self.meetings = RawMeetingRepository(session)
        self.resolver = EntityResolver(session, internal_domain)
        self.writer = CallStoreWriter(session, self.resolver)

    async def run(self, limit: int | None = None) -> RunStats:
        """Process the unprocessed backlog in date order."""
        pending = await self.meetings.list_unprocessed(limit)
        # Instances expire on rollback, so keep only identifiers across records
        meeting_ids = [m.id for m in pending]
        stats = RunStats(total=len(meeting_ids))
        llm_calls_before = self.classifier.llm_calls
        logger.info("Found %d unprocessed meetings", stats.total)

        for index, meeting_id in enumerate(meeting_ids, start=1):
            await self.process_one(meeting_id, index, stats)

        stats.classification_llm_calls = self.classifier.llm_calls - llm_calls_before
        self._log_report(stats)
        return stats

    async def process_one(self, meeting_id: uuid.UUID, index: int, stats: RunStats) -> None:
        meeting = await self.meetings.get(meeting_id)
        if meeting is None:
            logger.warning("Meeting %s disappeared before processing", meeting_id)
            return
        external_id = meeting.external_id
        raw = meeting.raw_json or {}
        raw_title = raw.get("title")
        title = meeting.title or (raw_title if isinstance(raw_title, str) else "") or "Untitled"
        logger.info('[%d/%d] "%s"', index, stats.total, title)

        payload: MeetingPayload | None = None
        try:
            payload = MeetingPayload.model_validate(raw)
            category = await self.classifier.classify(payload)
        except Exception as e:
            category = Category.OTHER
            stats.classification_errors += 1
            self._record(stats, RecordError.from_exception(e, external_id, stage="classification"))

        stats.categories[category.value] += 1
        logger.info("  classified as %s", category.value)
        await self.meetings.set_classification(meeting_id, category.value)
        await self.session.commit()

        if category is Category.SALES and payload is not None:
            await self._extract_and_store(meeting_id, external_id, title, payload, stats)

        await self.meetings.mark_processed(meeting_id)
        await self.session.commit()

    async def _extract_and_store(
        self,
        meeting_id: uuid.UUID,
        external_id: str,
        title: str,
        payload: MeetingPayload,
        stats: RunStats,
    ) -> None:
        transcript = payload.transcript_text or ""
        if not self.extractor.is_extractable(transcript):
            stats.skipped_short += 1
            logger.info("  transcript too short, skipping extraction")
            return

        stage = "extraction"
        try:
            await self.rate_limiter.wait()
            result = await self.extractor.extract(transcript, title, payload.summary.overview)
            stage = "store"
            meeting = await self.meetings.get(meeting_id)
            if meeting is None:
                raise LookupError(f"raw meeting {meeting_id} not found")
            report = await self.writer.write(meeting, payload, result)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            self.resolver.rollback()
            stats.extraction_errors += 1
            self._record(stats, RecordError.from_exception(e, external_id, stage=stage))
            return

        self.resolver.commit()
        stats.extracted += 1
        logger.info(
            "  extracted: %s, %d objections, %d follow-ups",
            result.company_name,
            len(result.objections),
            len(result.follow_up_actions),
        )
        if report.failed:
            logger.warning("  %d child rows failed to link", sum(report.failed.values()))

    def _record(self, stats: RunStats, error: RecordError) -> None:
        stats.errors.append(error)
        error.log_error(logger)

    def _log_report(self, stats: RunStats) -> None:
        logger.info("Processing complete")
        logger.info("  total: %d", stats.total)
        for category in Category:
            logger.info("  %s: %d", category.value, stats.count(category))
        logger.info("  extracted: %d", stats.extracted)
        logger.info("  extraction errors: %d", stats.extraction_errors)
        logger.info("  classification errors: %d", stats.classification_errors)
        logger.info("  LLM classification calls: %d", stats.classification_llm_calls)
        if stats.skipped_short:
            logger.info("  skipped (short transcript): %d", stats.skipped_short)
