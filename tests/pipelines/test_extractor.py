"""Unit tests for the sales-call extractor."""
from __future__ import annotations

import json

import pytest

from callsift.core.errors import ExtractionError, ExtractionParseError
from callsift.pipelines.extractor import (
    ExtractorConfig,
    SalesCallExtractor,
    parse_extraction_response,
    strip_code_fences,
)
from callsift.pipelines.prompts import TRUNCATION_MARKER
from callsift.pipelines.schemas import CallType, Offering


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_rejects_prose():
    with pytest.raises(ExtractionParseError) as exc:
        parse_extraction_response("Sure! Here is a summary of the call.")
    assert exc.value.raw_response.startswith("Sure!")


def test_parse_rejects_non_object_json():
    with pytest.raises(ExtractionParseError):
        parse_extraction_response("[1, 2, 3]")


def test_is_extractable_threshold(make_llm):
    extractor = SalesCallExtractor(ExtractorConfig(), make_llm())
    assert not extractor.is_extractable(None)
    assert not extractor.is_extractable("x" * 49)
    assert extractor.is_extractable("x" * 50)


def test_build_request_truncates_long_transcripts(make_llm):
    extractor = SalesCallExtractor(ExtractorConfig(max_chars=100), make_llm())
    request = extractor.build_request("y" * 500, "Acme sync")
    assert request.startswith(extractor.instructions)
    assert request.endswith(TRUNCATION_MARKER)
    body = request[len(extractor.instructions) + 2 :]
    assert len(body) == 100 + len(TRUNCATION_MARKER)
    assert body.startswith('Meeting title: "Acme sync"')


def test_instructions_name_internal_domain(make_llm):
    extractor = SalesCallExtractor(ExtractorConfig(internal_domain="example.com"), make_llm())
    assert "@example.com email" in extractor.instructions


@pytest.mark.asyncio
async def test_extract_fenced_response(make_llm):
    payload = {
        "call_type": "pitch",
        "offering_pitched": "retainer",
        "company_name": "Acme Protocol",
        "call_quality_score": 14,
    }
    llm = make_llm(f"```json\n{json.dumps(payload)}\n```")
    extractor = SalesCallExtractor(ExtractorConfig(), llm)

    result = await extractor.extract("z" * 80, "Acme pitch", "They want a retainer")

    assert result.call_type is CallType.PITCH
    assert result.offering_pitched is Offering.RETAINER
    assert result.company_name == "Acme Protocol"
    assert result.call_quality_score == 10
    assert llm.max_tokens == [4096]
    assert 'Meeting summary: "They want a retainer"' in llm.prompts[0]


@pytest.mark.asyncio
async def test_model_failure_is_extraction_error(make_llm):
    extractor = SalesCallExtractor(ExtractorConfig(), make_llm(ConnectionError("down")))
    with pytest.raises(ExtractionError) as exc:
        await extractor.extract("z" * 80, "Acme")
    assert not isinstance(exc.value, ExtractionParseError)
