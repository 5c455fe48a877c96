"""API credential pool with health tracking and persisted rotation state."""

import hashlib
import json
import logging
import os
import random
import re
import threading
import time

from anchorsync.constants import API_KEY_ENV_VARS, CREDENTIAL_RECOVERY_SECONDS, STATE_FILE
from anchorsync.errors import COOLDOWN_ERROR_KINDS
from anchorsync.models import Credential, CredentialStatus

logger = logging.getLogger(__name__)


def fingerprint(secret: str) -> str:
    """Short non-reversible id for a key, safe to log and persist."""
    return "key-" + hashlib.sha256(secret.encode()).hexdigest()[:10]


def parse_api_keys(raw: str) -> list[str]:
    """Split a comma/whitespace separated key list, dropping # comments."""
    keys = []
    for line in raw.splitlines():
        line = line.split("#", 1)[0]
        keys.extend(token for token in re.split(r"[,\s]+", line) if token)
    return keys


def load_credentials(env: dict | None = None, keys_file: str | None = None) -> list[Credential]:
    """Collect API keys from the environment and an optional keys file.

    Duplicates are dropped; first-seen order is kept.
    """
    if env is None:
        env = os.environ

    secrets = []
    for var in API_KEY_ENV_VARS:
        secrets.extend(parse_api_keys(env.get(var, "")))
    if keys_file:
        with open(keys_file) as f:
            secrets.extend(parse_api_keys(f.read()))

    credentials = []
    seen = set()
    for secret in secrets:
        if secret in seen:
            continue
        seen.add(secret)
        credentials.append(Credential(id=fingerprint(secret), secret=secret))
    return credentials


class CredentialStateStore:
    """JSON file holding the last-used credential and cooling deadlines."""

    def __init__(self, path: str = STATE_FILE):
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {"last_used": None, "cooling": {}}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            logger.warning("Unreadable credential state: %s, starting fresh", self.path)
            return {"last_used": None, "cooling": {}}

        try:
            last_used = data.get("last_used")
            if last_used is not None and not isinstance(last_used, str):
                raise TypeError(f"last_used must be a string, got {last_used!r}")
            cooling = {str(k): float(v) for k, v in (data.get("cooling") or {}).items()}
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Malformed credential state: %s (%s), starting fresh", self.path, e)
            return {"last_used": None, "cooling": {}}
        return {"last_used": last_used, "cooling": cooling}

    def save(self, last_used: str | None, cooling: dict[str, float]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({"last_used": last_used, "cooling": cooling}, f, indent=2)


class CredentialPool:
    """Spreads requests across credentials, resting the ones that hit quota.

    No credential is ever excluded for good: a cooling credential comes back
    after the recovery window, and when every credential is cooling the whole
    pool is treated as available again.
    """

    def __init__(
        self,
        credentials: list[Credential],
        state_store: CredentialStateStore | None = None,
        rng: random.Random | None = None,
        clock=time.time,
        recovery_seconds: float = CREDENTIAL_RECOVERY_SECONDS,
    ):
        if not credentials:
            raise ValueError("CredentialPool needs at least one credential")
        self.credentials = {c.id: c for c in credentials}
        self.state_store = state_store
        self.rng = rng or random.Random()
        self.clock = clock
        self.recovery_seconds = recovery_seconds
        self.last_used: str | None = None
        self._lock = threading.Lock()

        if state_store is not None:
            self._restore(state_store.load())

    def _restore(self, state: dict) -> None:
        last_used = state.get("last_used")
        if last_used in self.credentials:
            self.last_used = last_used
        for cred_id, until in state.get("cooling", {}).items():
            cred = self.credentials.get(cred_id)
            if cred is not None:
                cred.status = CredentialStatus.COOLING
                cred.cooling_until = until

    def _persist(self) -> None:
        if self.state_store is None:
            return
        cooling = {
            c.id: c.cooling_until
            for c in self.credentials.values()
            if c.status == CredentialStatus.COOLING and c.cooling_until is not None
        }
        self.state_store.save(self.last_used, cooling)

    def _refresh(self, now: float) -> None:
        for cred in self.credentials.values():
            if cred.status == CredentialStatus.COOLING and (cred.cooling_until or 0) <= now:
                logger.info("Credential %s recovered", cred.id)
                cred.status = CredentialStatus.HEALTHY
                cred.cooling_until = None

    def select(self) -> Credential:
        """Pick a credential that is not cooling and not the one used last."""
        with self._lock:
            self._refresh(self.clock())

            available = [c for c in self.credentials.values() if c.status != CredentialStatus.COOLING]
            if not available:
                logger.warning("All %d credentials cooling, resetting pool", len(self.credentials))
                for cred in self.credentials.values():
                    cred.status = CredentialStatus.UNKNOWN
                    cred.cooling_until = None
                available = list(self.credentials.values())

            candidates = [c for c in available if c.id != self.last_used] or available
            chosen = self.rng.choice(candidates)
            self.last_used = chosen.id
            self._persist()
            return chosen

    def mark_failed(self, cred_id: str, kind: str) -> None:
        """Rest the credential when the failure was quota or auth related."""
        if kind not in COOLDOWN_ERROR_KINDS:
            return
        with self._lock:
            cred = self.credentials.get(cred_id)
            if cred is None:
                return
            cred.status = CredentialStatus.COOLING
            cred.cooling_until = self.clock() + self.recovery_seconds
            logger.warning("Credential %s cooling for %.0fs (%s)", cred.id, self.recovery_seconds, kind)
            self._persist()

    def mark_succeeded(self, cred_id: str) -> None:
        with self._lock:
            cred = self.credentials.get(cred_id)
            if cred is None:
                return
            changed = cred.status == CredentialStatus.COOLING
            cred.status = CredentialStatus.HEALTHY
            cred.cooling_until = None
            if changed:
                self._persist()

    def reset(self) -> None:
        """Forget cooling marks and the last-used credential."""
        with self._lock:
            for cred in self.credentials.values():
                cred.status = CredentialStatus.UNKNOWN
                cred.cooling_until = None
            self.last_used = None
            self._persist()

    def snapshot(self) -> list[tuple[str, CredentialStatus, float | None]]:
        with self._lock:
            self._refresh(self.clock())
            return [(c.id, c.status, c.cooling_until) for c in self.credentials.values()]


def keyless_pool() -> CredentialPool:
    """Single placeholder credential for providers that need no key."""
    return CredentialPool([Credential(id="keyless", secret="")])
