"""Studio ambience and loudness for the exported audio."""

import numpy as np
import pedalboard
from pydub import AudioSegment

from anchorsync.constants import (
    AMBIENCE_BED_DB,
    CHANNELS,
    SAMPLE_RATE,
    SAMPLE_WIDTH,
    TARGET_DBFS,
)

ROOM_TONE_HUM_HZ = 60.0
ROOM_TONE_HIGHPASS_HZ = 80.0
ROOM_TONE_LOWPASS_HZ = 2500.0
ROOM_TONE_ROOM_SIZE = 0.4
ROOM_TONE_WET_LEVEL = 0.2


def pcm_to_segment(pcm: bytes) -> AudioSegment:
    """Wrap raw provider PCM in an AudioSegment."""
    return AudioSegment(
        data=pcm,
        sample_width=SAMPLE_WIDTH,
        frame_rate=SAMPLE_RATE,
        channels=CHANNELS,
    )


def generate_room_tone(duration_ms: int, seed: int | None = None) -> AudioSegment:
    """Generate broadcast-booth room tone: soft noise plus a faint mains hum.

    The noise is band-limited and given a little room through a pedalboard
    chain, then normalized to 0.8 of full scale; callers set the bed level.
    """
    rng = np.random.default_rng(seed)
    n_samples = int(SAMPLE_RATE * duration_ms / 1000)
    if n_samples == 0:
        return AudioSegment.silent(duration=0, frame_rate=SAMPLE_RATE)

    t = np.arange(n_samples) / SAMPLE_RATE
    noise = rng.normal(0.0, 0.3, n_samples)
    hum = 0.05 * np.sin(2 * np.pi * ROOM_TONE_HUM_HZ * t)
    signal = (noise + hum).astype(np.float32).reshape((1, -1))

    board = pedalboard.Pedalboard([
        pedalboard.HighpassFilter(cutoff_frequency_hz=ROOM_TONE_HIGHPASS_HZ),
        pedalboard.LowpassFilter(cutoff_frequency_hz=ROOM_TONE_LOWPASS_HZ),
        pedalboard.Reverb(room_size=ROOM_TONE_ROOM_SIZE, wet_level=ROOM_TONE_WET_LEVEL),
    ])
    shaped = board(signal, SAMPLE_RATE).flatten()

    peak = np.max(np.abs(shaped))
    if peak > 0:
        shaped = shaped / peak * 0.8
    samples = (shaped * 32767).astype(np.int16)

    return AudioSegment(
        data=samples.tobytes(),
        sample_width=SAMPLE_WIDTH,
        frame_rate=SAMPLE_RATE,
        channels=CHANNELS,
    )


def apply_ambience(audio: AudioSegment, level_db: float = AMBIENCE_BED_DB, seed: int | None = None) -> AudioSegment:
    """Lay room tone under the voice at level_db relative to full scale."""
    if len(audio) == 0:
        return audio
    bed = generate_room_tone(len(audio), seed=seed)
    bed = bed + (level_db - bed.dBFS) if bed.dBFS != float("-inf") else bed
    return audio.overlay(bed)


def normalize_level(audio: AudioSegment, target_dbfs: float = TARGET_DBFS) -> AudioSegment:
    """Shift the whole clip to target_dbfs. Silent audio is left unchanged."""
    if audio.dBFS == float("-inf"):
        return audio
    return audio + (target_dbfs - audio.dBFS)
