from __future__ import annotations

from callsift.core.settings import Settings


def test_defaults(monkeypatch):
    for var in ("CALLSIFT_API_DELAY_SECONDS", "CALLSIFT_INTERNAL_EMAIL_DOMAIN"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None)
    assert settings.api_delay_seconds == 1.5
    assert settings.min_transcript_chars == 50
    assert settings.max_extraction_chars == 100_000
    assert settings.internal_email_domain == "sherlock.xyz"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CALLSIFT_API_DELAY_SECONDS", "0")
    monkeypatch.setenv("CALLSIFT_INTERNAL_EMAIL_DOMAIN", "example.com")
    settings = Settings(_env_file=None)
    assert settings.api_delay_seconds == 0
    assert settings.internal_email_domain == "example.com"
