"""Syllable-weighted subtitle timing from text and clip duration.

There are no phoneme timestamps to work with. Each chunk's duration is split
between pauses (weighted by the punctuation that ends each word) and speech
(spread evenly over an estimated syllable count), and words are grouped
into cues no longer than the readability ceiling.
"""

import re
from dataclasses import dataclass

from anchorsync.constants import (
    SUBTITLE_LEAD_IN_MS,
    SUBTITLE_LEAD_OUT_MS,
    PAUSE_WEIGHT_SENTENCE_END_MS,
    PAUSE_WEIGHT_COMMA_MS,
    PAUSE_WEIGHT_STUTTER_MS,
    PAUSE_WEIGHT_FILLER_MS,
    MIN_VOCAL_MS,
    SUBTITLE_MAX_CHARS,
    FILLER_WORDS,
)
from anchorsync.models import ChunkMetadata, SubtitleCue

_SUFFIX_RE = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]{1,2}")


def count_syllables(word: str) -> int:
    """Estimate syllables by counting vowel groups after stripping silent suffixes."""
    word = re.sub(r"[^a-z]", "", word.lower())
    if len(word) <= 3:
        return 1
    word = _SUFFIX_RE.sub("", word)
    word = re.sub(r"^y", "", word)
    return len(_VOWEL_GROUP_RE.findall(word)) or 1


def pause_weight(word: str) -> float:
    """Pause (ms) expected after a word, from its punctuation."""
    pause = 0
    if re.search(r"[.!?]$", word):
        pause = PAUSE_WEIGHT_SENTENCE_END_MS
    elif re.search(r"[,;:]$", word):
        pause = PAUSE_WEIGHT_COMMA_MS
    elif "..." in word:
        pause = PAUSE_WEIGHT_STUTTER_MS

    if re.sub(r"[.,!?;:]", "", word.lower()) in FILLER_WORDS:
        pause += PAUSE_WEIGHT_FILLER_MS
    return pause


@dataclass
class _Word:
    text: str
    syllables: int
    pause: float


def _chunk_cues(text: str, duration_ms: float, chunk_start_ms: float) -> list[SubtitleCue]:
    words = [
        _Word(text=w, syllables=count_syllables(w), pause=pause_weight(w))
        for w in text.split()
    ]
    if not words:
        return []

    total_pause = sum(w.pause for w in words)
    available = duration_ms - SUBTITLE_LEAD_IN_MS - SUBTITLE_LEAD_OUT_MS

    # Pauses alone would overrun the clip: shrink them so speech keeps its floor
    pause_scale = 1.0
    if total_pause > 0 and total_pause > available - MIN_VOCAL_MS:
        pause_scale = max(available - MIN_VOCAL_MS, 0) / total_pause
        total_pause *= pause_scale

    vocal_ms = max(available - total_pause, MIN_VOCAL_MS)
    ms_per_syllable = vocal_ms / sum(w.syllables for w in words)
    end_limit = chunk_start_ms + duration_ms - SUBTITLE_LEAD_OUT_MS

    cues = []
    offset = SUBTITLE_LEAD_IN_MS
    cluster_text = ""
    cluster_syllables = 0
    cluster_pause = 0.0

    def flush():
        nonlocal offset
        duration = cluster_syllables * ms_per_syllable + cluster_pause
        start = chunk_start_ms + offset
        end = start + duration
        if end > end_limit > start:
            end = end_limit
        cues.append(SubtitleCue(start_ms=start, end_ms=end, text=cluster_text))
        offset += duration

    for i, word in enumerate(words):
        candidate = f"{cluster_text} {word.text}" if cluster_text else word.text
        is_last = i == len(words) - 1

        if is_last:
            # The final word always joins the last cue, even past the ceiling
            cluster_text = candidate
            cluster_syllables += word.syllables
            cluster_pause += word.pause * pause_scale
            flush()
        elif len(candidate) > SUBTITLE_MAX_CHARS and cluster_text:
            flush()
            cluster_text = word.text
            cluster_syllables = word.syllables
            cluster_pause = word.pause * pause_scale
        else:
            cluster_text = candidate
            cluster_syllables += word.syllables
            cluster_pause += word.pause * pause_scale

    return cues


def build_cues(metadata: list[ChunkMetadata]) -> list[SubtitleCue]:
    """Cues for all chunks on one timeline.

    The cursor advances by each chunk's real duration, not by the sum of its
    cue durations, so cues stay anchored to the audio of their chunk.
    """
    cues = []
    cursor_ms = 0.0
    for chunk in metadata:
        cues.extend(_chunk_cues(chunk.text, chunk.duration_ms, cursor_ms))
        cursor_ms += chunk.duration_ms
    return cues


def format_srt_time(ms: float) -> str:
    """Format milliseconds as HH:MM:SS,mmm."""
    if ms < 0:
        ms = 0
    total_ms = int(ms)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def render_srt(cues: list[SubtitleCue]) -> str:
    blocks = []
    for counter, cue in enumerate(cues, start=1):
        blocks.append(
            f"{counter}\n{format_srt_time(cue.start_ms)} --> {format_srt_time(cue.end_ms)}\n{cue.text}\n"
        )
    return "\n".join(blocks) + ("\n" if blocks else "")
