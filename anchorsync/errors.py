"""Error taxonomy and provider failure classification."""

import re

from google.genai import errors as genai_errors

ERROR_KIND_RATE_LIMIT = "rate_limit"
ERROR_KIND_AUTH = "auth"
ERROR_KIND_TIMEOUT = "timeout"
ERROR_KIND_NETWORK = "network"
ERROR_KIND_MALFORMED = "malformed_response"
ERROR_KIND_UNKNOWN = "unknown"

# Kinds that put the credential used for the attempt into cooldown
COOLDOWN_ERROR_KINDS = {
    ERROR_KIND_RATE_LIMIT,
    ERROR_KIND_AUTH,
}


class SynthesisError(RuntimeError):
    """A single provider attempt failed."""

    def __init__(self, message: str, *, kind: str = ERROR_KIND_UNKNOWN) -> None:
        super().__init__(message)
        self.kind = str(kind or ERROR_KIND_UNKNOWN).strip().lower()


class ChunkSynthesisError(RuntimeError):
    """Every attempt for one chunk failed; the run cannot produce output."""

    def __init__(self, index: int, attempts: int, cause: BaseException | None, kind: str = ERROR_KIND_UNKNOWN) -> None:
        self.index = index
        self.attempts = attempts
        self.kind = kind
        detail = str(cause) if cause is not None else "no response"
        super().__init__(
            f"Chunk {index + 1} failed after {attempts} attempt(s) [{kind}]: {detail}"
        )


class InputError(ValueError):
    """Rejected input (empty script, invalid settings)."""


def _iter_exception_chain(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        yield current
        seen.add(id(current))
        current = current.__cause__ or current.__context__


def _kind_from_status(code: int) -> str | None:
    if code == 429:
        return ERROR_KIND_RATE_LIMIT
    if code in {401, 403}:
        return ERROR_KIND_AUTH
    if code in {408, 504}:
        return ERROR_KIND_TIMEOUT
    if code >= 500:
        return ERROR_KIND_NETWORK
    return None


def classify_exception(exc: BaseException) -> str:
    """Map a provider failure to one of the ERROR_KIND_* values."""
    messages: list[str] = []
    for item in _iter_exception_chain(exc):
        if isinstance(item, SynthesisError):
            return item.kind
        if isinstance(item, genai_errors.APIError):
            kind = _kind_from_status(int(getattr(item, "code", 0) or 0))
            if kind:
                return kind
        if isinstance(item, TimeoutError):
            return ERROR_KIND_TIMEOUT
        if isinstance(item, ConnectionError):
            return ERROR_KIND_NETWORK
        messages.append(str(item or ""))

    message = " ".join(messages).lower()
    if re.search(r"\b429\b", message) or "quota" in message or "resource_exhausted" in message:
        return ERROR_KIND_RATE_LIMIT
    if "rate limit" in message or "too many requests" in message:
        return ERROR_KIND_RATE_LIMIT
    if "api key" in message or "api_key_invalid" in message or "permission_denied" in message:
        return ERROR_KIND_AUTH
    if "timeout" in message or "timed out" in message:
        return ERROR_KIND_TIMEOUT
    if "connection" in message or "network" in message:
        return ERROR_KIND_NETWORK
    if "no audio" in message or "empty response" in message:
        return ERROR_KIND_MALFORMED
    return ERROR_KIND_UNKNOWN
