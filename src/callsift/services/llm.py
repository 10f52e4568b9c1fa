"""Language model adapter backed by a DSPy ``LM`` client."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import dspy

from callsift.core.errors import ModelConfigurationError
from callsift.core.settings import Settings

logger = logging.getLogger(__name__)


class DSPyLanguageModel:
    """Plain-text completion over ``dspy.LM``.

    The pipeline needs raw model text (it parses and repairs it itself), so
    this calls the LM directly instead of going through a Signature.
    """

    def __init__(self, lm: Any) -> None:
        self.lm = lm

    async def complete(self, prompt: str, max_tokens: int) -> str:
        outputs = await asyncio.to_thread(self.lm, prompt=prompt, max_tokens=max_tokens)
        if not outputs:
            return ""
        first = outputs[0]
        if isinstance(first, dict):
            return str(first.get("text") or "")
        return str(first)


def _ollama_api_base() -> str:
    # Use host.docker.internal for Docker container or localhost for local
    if Path("/.dockerenv").exists():
        return "http://host.docker.internal:11434"
    return "http://localhost:11434"


def build_language_model(settings: Settings) -> DSPyLanguageModel:
    """Construct the model client described by ``settings``."""
    chosen = settings.llm_model
    kwargs: dict[str, Any] = {}
    if settings.llm_api_key:
        kwargs["api_key"] = settings.llm_api_key
    if settings.llm_api_base:
        kwargs["api_base"] = settings.llm_api_base
    elif chosen.startswith("ollama/"):
        kwargs["api_base"] = _ollama_api_base()

    try:
        lm = dspy.LM(model=chosen, cache=False, **kwargs)
    except Exception as e:
        raise ModelConfigurationError(chosen, e) from e
    logger.info("Configured language model: %s", chosen)
    return DSPyLanguageModel(lm)
