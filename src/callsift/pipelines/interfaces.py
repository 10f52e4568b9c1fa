"""Interfaces (Protocols) for the collaborators the pipeline depends on."""
from __future__ import annotations

from typing import Protocol


class LanguageModel(Protocol):
    async def complete(self, prompt: str, max_tokens: int) -> str: ...  # noqa: D401,E701


class RateLimiter(Protocol):
    async def wait(self) -> None: ...
