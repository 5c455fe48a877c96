"""Chunk-by-chunk synthesis with credential rotation, retries, and ordered assembly."""

import asyncio
import logging
import random

from anchorsync.constants import BYTES_PER_SECOND, INTER_CHUNK_DELAY_SECONDS, MAX_CHUNK_CHARS
from anchorsync.credentials import CredentialPool
from anchorsync.errors import ERROR_KIND_MALFORMED, ChunkSynthesisError, InputError, SynthesisError
from anchorsync.humanizer import humanize
from anchorsync.models import (
    Chunk,
    ChunkMetadata,
    Persona,
    Settings,
    SpeechResult,
    SynthesisRequest,
    SynthesisResult,
)
from anchorsync.providers import SpeechProvider
from anchorsync.retry import BackoffPolicy, RetryExhausted, retry_with_backoff
from anchorsync.segmenter import segment
from anchorsync.voices import PersonaRotation

logger = logging.getLogger(__name__)


def pcm_duration_ms(audio: bytes) -> float:
    """Playback length of 24 kHz / 16-bit / mono PCM."""
    return len(audio) / BYTES_PER_SECOND * 1000


class SpeechOrchestrator:
    """Runs every chunk through humanize → select credential → synthesize.

    Chunks are processed one at a time so no two requests of a run are in
    flight together. A chunk that exhausts its attempts fails the whole run.
    """

    def __init__(
        self,
        provider: SpeechProvider,
        pool: CredentialPool,
        personas: list[Persona] | None = None,
        rng: random.Random | None = None,
        policy: BackoffPolicy | None = None,
        sleep=asyncio.sleep,
        inter_chunk_delay: float = INTER_CHUNK_DELAY_SECONDS,
    ):
        self.provider = provider
        self.pool = pool
        self.rng = rng or random.Random()
        self.rotation = PersonaRotation(personas, rng=self.rng)
        self.policy = policy or BackoffPolicy()
        self.sleep = sleep
        self.inter_chunk_delay = inter_chunk_delay

    async def synthesize_chunk(self, chunk: Chunk, persona: Persona, settings: Settings) -> SynthesisResult:
        """Synthesize one chunk, retrying failed attempts with backoff.

        Raises ChunkSynthesisError when every attempt fails.
        """
        humanized = humanize(chunk.text, settings, persona.base_rate, rng=self.rng)
        request = SynthesisRequest(
            chunk=chunk,
            persona=persona,
            annotated_text=humanized.annotated,
            plain_text=humanized.plain,
        )
        used = {}

        async def attempt(n: int) -> SynthesisResult:
            credential = self.pool.select()
            used[n] = credential.id
            logger.debug("Chunk %d attempt %d via %s as %s", chunk.index, n + 1, credential.id, persona.display_name)
            audio = await self.provider.synthesize(request, credential, settings)
            if not audio:
                raise SynthesisError("Provider returned empty audio", kind=ERROR_KIND_MALFORMED)
            self.pool.mark_succeeded(credential.id)
            return SynthesisResult(
                index=chunk.index,
                audio=audio,
                plain_text=humanized.plain,
                duration_ms=pcm_duration_ms(audio),
            )

        def on_failure(exc: BaseException, kind: str, n: int) -> None:
            self.pool.mark_failed(used[n], kind)

        try:
            return await retry_with_backoff(
                attempt, self.policy, on_failure=on_failure, sleep=self.sleep,
            )
        except RetryExhausted as e:
            raise ChunkSynthesisError(chunk.index, e.attempts, e.last_error, e.last_kind) from e.last_error

    async def run(self, chunks: list[Chunk], settings: Settings, on_progress=None) -> list[SynthesisResult]:
        """Synthesize all chunks in order and return results sorted by index."""
        total = len(chunks)
        results = []

        for i, chunk in enumerate(chunks):
            persona = self.rotation.for_chunk(i)
            logger.info("Synthesizing chunk %d/%d (%d chars) as %s", i + 1, total, len(chunk.text), persona.display_name)
            try:
                results.append(await self.synthesize_chunk(chunk, persona, settings))
            finally:
                if on_progress is not None:
                    on_progress(round(100 * (i + 1) / total))

            if i < total - 1:
                await self.sleep(self.inter_chunk_delay)

        # Sequential today; sorting keeps order correct under parallel dispatch
        results.sort(key=lambda r: r.index)
        return results


def assemble(results: list[SynthesisResult]) -> SpeechResult:
    """Concatenate chunk audio in index order."""
    ordered = sorted(results, key=lambda r: r.index)
    return SpeechResult(
        audio=b"".join(r.audio for r in ordered),
        metadata=[ChunkMetadata(text=r.plain_text, duration_ms=r.duration_ms) for r in ordered],
    )


async def generate_speech(
    text: str,
    settings: Settings,
    orchestrator: SpeechOrchestrator,
    on_progress=None,
    max_chars: int = MAX_CHUNK_CHARS,
) -> SpeechResult:
    """Turn a script into one PCM buffer plus per-chunk text and duration.

    Raises InputError for empty text before any request is made, and
    ChunkSynthesisError when a chunk cannot be synthesized.
    """
    if not text or not text.strip():
        raise InputError("Script is empty")

    chunks = segment(text, max_chars)
    logger.info("Split script into %d chunk(s)", len(chunks))
    results = await orchestrator.run(chunks, settings, on_progress=on_progress)
    return assemble(results)
