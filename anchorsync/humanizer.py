"""Turn a chunk into annotated synthesis markup with human-like disfluencies.

Every sentence gets its own pacing and loudness, an occasional stutter or
filler word, and a pause before it (except the first). The plain text that
comes back alongside the markup is the chunk's own words, untouched, which is
what subtitles are built from.
"""

import random
from dataclasses import dataclass
from xml.sax.saxutils import escape

from anchorsync.constants import (
    STUTTER_DIVISOR,
    FILLER_DIVISOR,
    STUTTER_BREAK_MS,
    FILLER_BREAK_MS,
    FILLER_WORDS,
    PAUSE_NATURAL_MS,
    PAUSE_LONG_MS,
    PAUSE_RANDOM_MIN_MS,
    PAUSE_RANDOM_MAX_MS,
    SPEED_JITTER_SCALE,
    VOLUME_JITTER_DB,
    MIN_SPEAKING_RATE,
    MAX_SPEAKING_RATE,
)
from anchorsync.models import Settings, WaitDuration
from anchorsync.segmenter import split_sentences


@dataclass(frozen=True)
class HumanizedText:
    annotated: str
    plain: str


def _break(ms: int) -> str:
    return f'<break time="{ms}ms"/>'


def _pause_ms(settings: Settings, rng: random.Random) -> int:
    """Inter-sentence pause for the configured wait mode."""
    if settings.wait_duration == WaitDuration.LONG:
        return PAUSE_LONG_MS
    if settings.wait_duration == WaitDuration.RANDOM:
        return rng.randint(PAUSE_RANDOM_MIN_MS, PAUSE_RANDOM_MAX_MS)
    return PAUSE_NATURAL_MS


def _speaking_rate(persona_rate: float, jitter: float) -> str:
    rate = min(max(persona_rate + jitter, MIN_SPEAKING_RATE), MAX_SPEAKING_RATE)
    return f"{rate:.2f}"


def _rate_jitter(settings: Settings, rng: random.Random) -> float:
    spread = settings.speed_variation / 100 * SPEED_JITTER_SCALE
    return rng.uniform(-spread, spread)


def _volume(settings: Settings, rng: random.Random) -> str:
    spread = settings.volume_variation / 100 * VOLUME_JITTER_DB
    return f"{rng.uniform(-spread, spread):+.1f}dB"


def _with_stutter(words: list[str], settings: Settings, rng: random.Random) -> list[str]:
    """Repeat one of the first three words after a short break."""
    if len(words) <= 2 or rng.random() >= settings.stutter_rate / STUTTER_DIVISOR:
        return words
    idx = rng.randrange(min(len(words), 3))
    stuttered = list(words)
    stuttered[idx] = f"{words[idx]}{_break(STUTTER_BREAK_MS)} {words[idx]}"
    return stuttered


def _filler(words: list[str], settings: Settings, rng: random.Random) -> str:
    if len(words) <= 3 or rng.random() >= settings.filler_rate / FILLER_DIVISOR:
        return ""
    return f"{rng.choice(FILLER_WORDS)},{_break(FILLER_BREAK_MS)} "


def humanize(
    chunk_text: str,
    settings: Settings,
    persona_rate: float,
    rng: random.Random | None = None,
) -> HumanizedText:
    """Build provider markup and the plain-text form of one chunk."""
    rng = rng or random.Random()
    sentences = [s.strip() for s in split_sentences(chunk_text)]
    sentences = [s for s in sentences if s]

    # Without asymmetry the whole chunk shares one pace
    shared_jitter = _rate_jitter(settings, rng)

    parts = ["<speak>"]
    for index, sentence in enumerate(sentences):
        if index > 0:
            parts.append(_break(_pause_ms(settings, rng)))

        words = [escape(w) for w in sentence.split()]
        filler = _filler(words, settings, rng)
        words = _with_stutter(words, settings, rng)

        jitter = _rate_jitter(settings, rng) if settings.asymmetry else shared_jitter
        parts.append(
            f'<prosody rate="{_speaking_rate(persona_rate, jitter)}" '
            f'volume="{_volume(settings, rng)}">{filler}{" ".join(words)}</prosody>'
        )
    parts.append("</speak>")

    return HumanizedText(annotated="".join(parts), plain=" ".join(sentences))
