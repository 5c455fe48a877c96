"""Tests for the credential pool and its persisted state."""

import json

import pytest

from anchorsync.credentials import (
    CredentialPool,
    CredentialStateStore,
    fingerprint,
    load_credentials,
    parse_api_keys,
)
from anchorsync.models import Credential, CredentialStatus


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_no_consecutive_repeats(make_pool):
    """With all credentials healthy, consecutive picks always differ."""
    pool = make_pool(n=3)
    picks = [pool.select().id for _ in range(200)]
    assert all(a != b for a, b in zip(picks, picks[1:]))


def test_all_credentials_used(make_pool):
    pool = make_pool(n=4)
    picks = {pool.select().id for _ in range(200)}
    assert picks == {"key-0", "key-1", "key-2", "key-3"}


def test_single_credential_repeats(make_pool):
    pool = make_pool(n=1)
    assert [pool.select().id for _ in range(3)] == ["key-0"] * 3


def test_select_records_last_used(make_pool):
    pool = make_pool()
    chosen = pool.select()
    assert pool.last_used == chosen.id


def test_rate_limit_puts_credential_in_cooldown(make_pool):
    clock = FakeClock()
    pool = make_pool(n=3, clock=clock, recovery_seconds=60)
    pool.mark_failed("key-1", "rate_limit")
    cred = pool.credentials["key-1"]
    assert cred.status == CredentialStatus.COOLING
    assert cred.cooling_until == 1060.0
    picks = {pool.select().id for _ in range(50)}
    assert "key-1" not in picks


def test_transient_failure_keeps_health(make_pool):
    pool = make_pool()
    pool.mark_failed("key-0", "timeout")
    assert pool.credentials["key-0"].status != CredentialStatus.COOLING


def test_cooling_credential_recovers(make_pool):
    """Becomes selectable again after the recovery window, no manual reset."""
    clock = FakeClock()
    pool = make_pool(n=2, clock=clock, recovery_seconds=60)
    pool.mark_failed("key-0", "auth")
    assert {pool.select().id for _ in range(10)} == {"key-1"}

    clock.now += 61
    picks = [pool.select().id for _ in range(10)]
    assert "key-0" in picks
    assert pool.credentials["key-0"].status == CredentialStatus.HEALTHY


def test_all_cooling_resets_pool(make_pool):
    clock = FakeClock()
    pool = make_pool(n=2, clock=clock)
    pool.mark_failed("key-0", "rate_limit")
    pool.mark_failed("key-1", "rate_limit")
    chosen = pool.select()
    assert chosen.id in ("key-0", "key-1")
    assert all(c.status != CredentialStatus.COOLING for c in pool.credentials.values())


def test_last_used_allowed_when_only_option(make_pool):
    pool = make_pool(n=2)
    first = pool.select()
    other = "key-1" if first.id == "key-0" else "key-0"
    pool.mark_failed(other, "rate_limit")
    assert pool.select().id == first.id


def test_success_clears_cooldown(make_pool):
    pool = make_pool()
    pool.mark_failed("key-2", "rate_limit")
    pool.mark_succeeded("key-2")
    cred = pool.credentials["key-2"]
    assert cred.status == CredentialStatus.HEALTHY
    assert cred.cooling_until is None


def test_empty_pool_rejected():
    with pytest.raises(ValueError):
        CredentialPool([])


def test_state_persisted_and_restored(tmp_path):
    path = str(tmp_path / "state" / "credentials.json")
    clock = FakeClock()
    creds = [Credential(id="a", secret="1"), Credential(id="b", secret="2")]
    pool = CredentialPool(creds, state_store=CredentialStateStore(path), clock=clock)
    chosen = pool.select()
    pool.mark_failed("b", "rate_limit")

    with open(path) as f:
        data = json.load(f)
    assert data["last_used"] == chosen.id
    assert data["cooling"] == {"b": clock.now + pool.recovery_seconds}

    fresh = [Credential(id="a", secret="1"), Credential(id="b", secret="2")]
    restored = CredentialPool(fresh, state_store=CredentialStateStore(path), clock=clock)
    assert restored.last_used == chosen.id
    assert restored.credentials["b"].status == CredentialStatus.COOLING


def test_restored_last_used_is_avoided(tmp_path):
    path = str(tmp_path / "credentials.json")
    CredentialStateStore(path).save("a", {})
    creds = [Credential(id="a", secret="1"), Credential(id="b", secret="2")]
    pool = CredentialPool(creds, state_store=CredentialStateStore(path))
    assert pool.select().id == "b"


def test_corrupt_state_file_starts_fresh(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{not json")
    state = CredentialStateStore(str(path)).load()
    assert state == {"last_used": None, "cooling": {}}


@pytest.mark.parametrize("payload", [
    [],
    "key-a",
    {"cooling": [["key-a", 5]]},
    {"cooling": {"key-a": "soon"}},
    {"cooling": {"key-a": None}},
    {"last_used": 7, "cooling": {}},
])
def test_wrongly_shaped_state_file_starts_fresh(tmp_path, payload):
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps(payload))
    store = CredentialStateStore(str(path))
    assert store.load() == {"last_used": None, "cooling": {}}

    pool = CredentialPool([Credential("a", "sa"), Credential("b", "sb")], state_store=store)
    assert pool.last_used is None
    assert all(status != CredentialStatus.COOLING for _, status, _ in pool.snapshot())


def test_reset_clears_state(make_pool):
    pool = make_pool()
    pool.select()
    pool.mark_failed("key-0", "rate_limit")
    pool.reset()
    assert pool.last_used is None
    assert all(c.cooling_until is None for c in pool.credentials.values())


def test_fingerprint_hides_secret():
    fp = fingerprint("AIza-secret-value")
    assert fp.startswith("key-")
    assert "secret" not in fp
    assert fp == fingerprint("AIza-secret-value")


def test_parse_api_keys():
    raw = "k1, k2\n# comment\nk3  # trailing\n\n"
    assert parse_api_keys(raw) == ["k1", "k2", "k3"]


def test_load_credentials_from_env_and_file(tmp_path):
    keys_file = tmp_path / "keys.txt"
    keys_file.write_text("k3\nk1\n")
    env = {"GEMINI_API_KEYS": "k1,k2", "GEMINI_API_KEY": "k2"}
    creds = load_credentials(env=env, keys_file=str(keys_file))
    assert [c.secret for c in creds] == ["k1", "k2", "k3"]
    assert creds[0].id == fingerprint("k1")


def test_load_credentials_empty_env():
    assert load_credentials(env={}) == []
