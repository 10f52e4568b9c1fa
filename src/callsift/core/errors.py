"""Error handling utilities and custom exceptions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CallsiftError(Exception):
    """Base application error."""

    def __init__(self, message: str, *, code: str = "callsift_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class ClassificationError(CallsiftError):
    """The language-model classification tier failed."""

    def __init__(self, message: str, *, original_error: Exception | None = None) -> None:
        super().__init__(message, code="classification_error")
        self.original_error = original_error


class ExtractionError(CallsiftError):
    """The extraction model call failed."""

    def __init__(self, message: str, *, code: str = "extraction_error") -> None:
        super().__init__(message, code=code)


class ExtractionParseError(ExtractionError):
    """The extraction model did not return a JSON object."""

    def __init__(self, message: str, raw_response: str = "") -> None:
        super().__init__(message, code="extraction_parse_error")
        self.raw_response = raw_response[:500]


class ModelConfigurationError(CallsiftError):
    """Error when the language model client cannot be configured."""

    def __init__(self, model: str, original_error: Exception | None = None) -> None:
        super().__init__(f"Failed to configure language model: {model}", code="model_configuration")
        self.model = model
        self.original_error = original_error
        self.suggestions = [
            "Check if the model name is correct",
            "Verify API keys are set for cloud models (Anthropic, OpenAI, etc.)",
            "Ensure Ollama is running for local models",
        ]

    def display(self) -> str:
        lines = [f"Model configuration error: {self.message}"]
        if self.original_error is not None:
            lines.append(f"   cause: {self.original_error}")
        lines.extend(f"   - {s}" for s in self.suggestions)
        return "\n".join(lines)


class PipelineErrorCode(Enum):
    """Standardized error codes for per-record pipeline failures."""

    CLASSIFICATION_RULE_ERROR = "CLASSIFICATION_RULE_ERROR"
    CLASSIFICATION_LLM_ERROR = "CLASSIFICATION_LLM_ERROR"
    EXTRACTION_PARSE_ERROR = "EXTRACTION_PARSE_ERROR"
    EXTRACTION_MODEL_ERROR = "EXTRACTION_MODEL_ERROR"
    STORE_WRITE_ERROR = "STORE_WRITE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class RecordError:
    """Structured error information for one raw meeting."""

    code: PipelineErrorCode
    external_id: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(
        cls,
        error: Exception,
        external_id: str,
        *,
        stage: str,
    ) -> RecordError:
        """Create a RecordError from an exception raised during ``stage``."""
        if isinstance(error, ClassificationError):
            code = PipelineErrorCode.CLASSIFICATION_LLM_ERROR
        elif stage == "classification":
            code = PipelineErrorCode.CLASSIFICATION_RULE_ERROR
        elif isinstance(error, ExtractionParseError):
            code = PipelineErrorCode.EXTRACTION_PARSE_ERROR
        elif isinstance(error, ExtractionError):
            code = PipelineErrorCode.EXTRACTION_MODEL_ERROR
        elif stage == "store":
            code = PipelineErrorCode.STORE_WRITE_ERROR
        else:
            code = PipelineErrorCode.UNKNOWN_ERROR
        return cls(
            code=code,
            external_id=external_id,
            message=str(error),
            details={"error_type": type(error).__name__, "stage": stage},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "external_id": self.external_id,
            "message": self.message,
            "details": self.details,
        }

    def log_error(self, logger_instance: logging.Logger | None = None) -> None:
        log = logger_instance or logger
        log.error(
            "%s for meeting %s: %s",
            self.code.value,
            self.external_id,
            self.message[:150],
        )


class IngestError(CallsiftError):
    """A transcript export could not be read."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="ingest_error")
