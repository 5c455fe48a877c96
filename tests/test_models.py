"""Tests for constants and models."""

import pytest

from anchorsync import constants
from anchorsync.models import (
    Chunk,
    Credential,
    CredentialStatus,
    Persona,
    Settings,
    SubtitleCue,
    WaitDuration,
    BreathIntensity,
)


def test_persona_fields():
    """Each persona carries voice, name, style and base rate."""
    assert Persona.ANCHOR_ALPHA.voice_id == "Kore"
    assert Persona.REPORTER_BETA.voice_id == "Zephyr"
    assert Persona.HOST_DELTA.display_name == "Host Delta"
    assert all(0.5 < p.base_rate < 1.5 for p in Persona)


def test_personas_are_distinct_members():
    """Shared voice ids do not collapse personas into aliases."""
    assert len(list(Persona)) == 4


def test_credential_secret_hidden_from_repr():
    cred = Credential(id="key-abc", secret="super-secret")
    assert "super-secret" not in repr(cred)
    assert cred.status == CredentialStatus.UNKNOWN
    assert cred.cooling_until is None


def test_settings_defaults():
    settings = Settings()
    assert settings.stutter_rate == 35
    assert settings.wait_duration == WaitDuration.RANDOM
    assert settings.breath_intensity == BreathIntensity.LOUD


def test_chunk_and_cue_are_frozen():
    with pytest.raises(Exception):
        Chunk(index=0, text="x").text = "y"
    with pytest.raises(Exception):
        SubtitleCue(0, 1, "x").text = "y"


def test_pcm_rate_constants():
    """24 kHz, 16-bit, mono → 48000 bytes per second."""
    assert constants.BYTES_PER_SECOND == 48000
