"""Data models for the speech pipeline."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Chunk:
    index: int      # position in the original script
    text: str


class Persona(Enum):
    """Anchor voices that rotate across chunks.

    Each member is (voice_id, display_name, style_hint, base_rate).
    """

    ANCHOR_ALPHA = ("Kore", "Anchor Alpha", "Mature, authoritative female anchor.", 1.05)
    REPORTER_BETA = ("Zephyr", "Reporter Beta", "Youthful, energetic reporter.", 1.08)
    NARRATOR_GAMMA = ("Kore", "Narrator Gamma", "Soft, calm narrator.", 0.98)
    HOST_DELTA = ("Zephyr", "Host Delta", "Warm morning show host.", 1.02)

    def __init__(self, voice_id: str, display_name: str, style_hint: str, base_rate: float):
        self.voice_id = voice_id
        self.display_name = display_name
        self.style_hint = style_hint
        self.base_rate = base_rate


class CredentialStatus(Enum):
    HEALTHY = "healthy"
    COOLING = "cooling"
    UNKNOWN = "unknown"


@dataclass
class Credential:
    id: str                                    # fingerprint, safe to log
    secret: str = field(repr=False)
    status: CredentialStatus = CredentialStatus.UNKNOWN
    cooling_until: float | None = None         # epoch seconds


class WaitDuration(Enum):
    NATURAL = "natural"
    LONG = "long"          # news standard
    RANDOM = "random"


class BreathIntensity(Enum):
    SOFT = "soft"
    LOUD = "loud"
    NONE = "none"


@dataclass(frozen=True)
class Settings:
    stutter_rate: float = 35           # 0–100
    filler_rate: float = 35            # 0–100
    volume_variation: float = 60       # 0–100
    speed_variation: float = 50        # 0–100
    asymmetry: bool = True             # independent pacing per sentence
    ambient_sounds: bool = True        # room tone under the exported audio
    wait_duration: WaitDuration = WaitDuration.RANDOM
    breath_intensity: BreathIntensity = BreathIntensity.LOUD


@dataclass(frozen=True)
class SynthesisRequest:
    chunk: Chunk
    persona: Persona
    annotated_text: str     # markup sent to the provider
    plain_text: str         # original words, used for subtitles


@dataclass
class SynthesisResult:
    index: int
    audio: bytes
    plain_text: str
    duration_ms: float


@dataclass(frozen=True)
class ChunkMetadata:
    text: str
    duration_ms: float


@dataclass
class SpeechResult:
    audio: bytes
    metadata: list[ChunkMetadata]


@dataclass(frozen=True)
class SubtitleCue:
    start_ms: float
    end_ms: float
    text: str
