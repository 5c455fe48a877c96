"""All magic numbers and configuration constants."""

import os

# Segmentation
MAX_CHUNK_CHARS = 300                # chars per request, sized for free-tier quota

# Humanizer
STUTTER_DIVISOR = 100                # stutter_rate / divisor = per-sentence probability
FILLER_DIVISOR = 200                 # filler_rate / divisor = per-sentence probability
STUTTER_BREAK_MS = 150               # break between a word and its repeat
FILLER_BREAK_MS = 200                # break after an inserted filler word
FILLER_WORDS = ("uhm", "err")
PAUSE_NATURAL_MS = 400               # inter-sentence pause, "natural"
PAUSE_LONG_MS = 1000                 # inter-sentence pause, "news standard"
PAUSE_RANDOM_MIN_MS = 200
PAUSE_RANDOM_MAX_MS = 1000
SPEED_JITTER_SCALE = 0.2             # max rate jitter at speed_variation=100
VOLUME_JITTER_DB = 4.0               # max loudness jitter at volume_variation=100
MIN_SPEAKING_RATE = 0.5
MAX_SPEAKING_RATE = 2.0

# PCM stream delivered by the provider
SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2                     # bytes (16-bit)
CHANNELS = 1
BYTES_PER_SECOND = SAMPLE_RATE * SAMPLE_WIDTH * CHANNELS

# Retry / rotation
TTS_MAX_ATTEMPTS = 5                 # attempts per chunk before the run fails
TTS_RETRY_BASE_DELAY = 1.0           # seconds, transient failures, times attempt number
TTS_RATE_LIMIT_DELAY = 3.0           # seconds, quota/auth failures, times attempt number
INTER_CHUNK_DELAY_SECONDS = 1.2      # pause between chunks to stay under provider limits
CREDENTIAL_RECOVERY_SECONDS = 60.0   # cooling credentials become eligible after this

# Subtitle timing
SUBTITLE_LEAD_IN_MS = 150            # synthesis buffering before the first word
SUBTITLE_LEAD_OUT_MS = 100           # trailing silence after the last word
PAUSE_WEIGHT_SENTENCE_END_MS = 600
PAUSE_WEIGHT_COMMA_MS = 250
PAUSE_WEIGHT_STUTTER_MS = 400
PAUSE_WEIGHT_FILLER_MS = 350
MIN_VOCAL_MS = 100                   # floor for the time left for speech in a chunk
SUBTITLE_MAX_CHARS = 80              # readability ceiling per cue

# Export
OUTPUT_BITRATE = "128k"
AMBIENCE_BED_DB = -38                # room tone level under the voice
TARGET_DBFS = -16.0                  # broadcast-style loudness target
OUTPUT_DIR = "output"
BASENAME_PREFIX = "US_ANCHOR"

# Providers
GEMINI_TTS_MODEL = "gemini-2.5-flash-preview-tts"
API_KEY_ENV_VARS = ("ANCHORSYNC_API_KEYS", "GEMINI_API_KEYS", "GEMINI_API_KEY")

# Persisted rotation state
STATE_FILE = os.path.join(os.path.expanduser("~"), ".anchorsync", "credentials.json")

VERSION = "0.1.0"
