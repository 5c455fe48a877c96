"""Shared fixtures for anchorsync tests."""

import random

import pytest

from anchorsync.credentials import CredentialPool
from anchorsync.errors import SynthesisError
from anchorsync.models import Credential, Settings, WaitDuration
from anchorsync.providers import SpeechProvider


class FakeProvider(SpeechProvider):
    """Provider returning scripted outcomes per chunk index.

    outcomes maps chunk index → list of items consumed per attempt; an
    Exception item is raised, bytes are returned. Chunks without a script
    get `default` bytes.
    """

    name = "fake"

    def __init__(self, outcomes=None, default=b"\x00\x01" * 2400):
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.default = default
        self.calls = []

    async def synthesize(self, request, credential, settings):
        self.calls.append((request.chunk.index, credential.id, request.persona))
        script = self.outcomes.get(request.chunk.index)
        if script:
            item = script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        return self.default


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def calm_settings():
    """Settings with every random disfluency turned off."""
    return Settings(
        stutter_rate=0,
        filler_rate=0,
        volume_variation=0,
        speed_variation=0,
        asymmetry=False,
        ambient_sounds=False,
        wait_duration=WaitDuration.NATURAL,
    )


@pytest.fixture
def make_pool():
    def factory(n=3, clock=None, **kwargs):
        creds = [Credential(id=f"key-{i}", secret=f"secret-{i}") for i in range(n)]
        if clock is not None:
            kwargs["clock"] = clock
        return CredentialPool(creds, rng=random.Random(7), **kwargs)
    return factory


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


def rate_limited(message="429 RESOURCE_EXHAUSTED: quota exceeded"):
    return SynthesisError(message, kind="rate_limit")
