from __future__ import annotations

import pytest

from callsift.core.errors import ModelConfigurationError
from callsift.core.settings import Settings
from callsift.services import llm as llm_module
from callsift.services.llm import DSPyLanguageModel, build_language_model


class _FakeLM:
    def __init__(self, outputs):
        self.outputs = outputs
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        return self.outputs


@pytest.mark.asyncio
async def test_complete_returns_first_output():
    lm = _FakeLM(["sales_call", "ignored"])
    assert await DSPyLanguageModel(lm).complete("prompt", max_tokens=50) == "sales_call"
    assert lm.calls == [{"prompt": "prompt", "max_tokens": 50}]


@pytest.mark.asyncio
async def test_complete_handles_dict_and_empty_outputs():
    assert await DSPyLanguageModel(_FakeLM([{"text": "{}"}])).complete("p", 10) == "{}"
    assert await DSPyLanguageModel(_FakeLM([])).complete("p", 10) == ""


def test_build_failure_raises_model_configuration_error(monkeypatch):
    def _broken(**kwargs):
        raise ValueError("unknown provider")

    monkeypatch.setattr(llm_module.dspy, "LM", _broken)
    with pytest.raises(ModelConfigurationError) as exc:
        build_language_model(Settings(llm_model="nope/model"))
    assert exc.value.model == "nope/model"
    assert "unknown provider" in exc.value.display()


def test_ollama_models_get_local_api_base(monkeypatch):
    captured = {}

    def _lm(**kwargs):
        captured.update(kwargs)
        return _FakeLM([])

    monkeypatch.setattr(llm_module.dspy, "LM", _lm)
    build_language_model(Settings(llm_model="ollama/llama3"))
    assert captured["model"] == "ollama/llama3"
    assert captured["api_base"].endswith(":11434")
    assert captured["cache"] is False
