"""Speech providers: each turns a synthesis request into raw PCM bytes."""

import base64
import io
import logging

import edge_tts
from google import genai
from google.genai import types
from pydub import AudioSegment

from anchorsync.constants import GEMINI_TTS_MODEL, SAMPLE_RATE, SAMPLE_WIDTH, CHANNELS
from anchorsync.errors import ERROR_KIND_MALFORMED, SynthesisError
from anchorsync.models import Credential, Settings, SynthesisRequest
from anchorsync.voices import EDGE_VOICE_MAP

logger = logging.getLogger(__name__)


class SpeechProvider:
    """Interface for a synthesis backend.

    synthesize() returns 24 kHz / 16-bit / mono PCM and raises on failure;
    classification of the failure is left to the caller.
    """

    name = "base"

    async def synthesize(self, request: SynthesisRequest, credential: Credential, settings: Settings) -> bytes:
        raise NotImplementedError


def build_prompt(request: SynthesisRequest, settings: Settings) -> str:
    persona = request.persona
    return (
        f"PERFORM AS: {persona.display_name}. "
        f"STYLE: {persona.style_hint} "
        f"BREATHING: {settings.breath_intensity.value}. "
        f"TEXT: {request.annotated_text}"
    )


def extract_pcm(response) -> bytes:
    """Return the first inline audio payload of a generate_content response."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data is not None else None
            if isinstance(data, bytes) and data:
                return data
            if isinstance(data, str) and data:
                return base64.b64decode(data)
    raise SynthesisError("Provider returned no audio data", kind=ERROR_KIND_MALFORMED)


class GeminiProvider(SpeechProvider):
    """Gemini TTS through the google-genai async client, one client per key."""

    name = "gemini"

    def __init__(self, model: str = GEMINI_TTS_MODEL, client_factory=None):
        self.model = model
        self.client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self._clients = {}

    def _client(self, credential: Credential):
        if credential.id not in self._clients:
            self._clients[credential.id] = self.client_factory(credential.secret)
        return self._clients[credential.id]

    async def synthesize(self, request: SynthesisRequest, credential: Credential, settings: Settings) -> bytes:
        client = self._client(credential)
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=build_prompt(request, settings),
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(
                            voice_name=request.persona.voice_id,
                        )
                    )
                ),
            ),
        )
        return extract_pcm(response)


def edge_rate(base_rate: float) -> str:
    """Relative rate string for edge-tts, e.g. 1.05 -> "+5%"."""
    percent = int(round((base_rate - 1.0) * 100))
    return f"+{percent}%" if percent >= 0 else f"{percent}%"


def mp3_to_pcm(mp3_bytes: bytes) -> bytes:
    """Decode MP3 into the pipeline's PCM format."""
    audio = AudioSegment.from_file(io.BytesIO(mp3_bytes), format="mp3")
    audio = audio.set_frame_rate(SAMPLE_RATE).set_channels(CHANNELS).set_sample_width(SAMPLE_WIDTH)
    return audio.raw_data


class EdgeProvider(SpeechProvider):
    """Keyless Microsoft Edge voices.

    Edge does not take markup, so the plain text is spoken at the persona's
    base rate and the credential is ignored.
    """

    name = "edge"

    async def synthesize(self, request: SynthesisRequest, credential: Credential, settings: Settings) -> bytes:
        communicate = edge_tts.Communicate(
            request.plain_text,
            EDGE_VOICE_MAP[request.persona],
            rate=edge_rate(request.persona.base_rate),
        )
        buffer = io.BytesIO()
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                buffer.write(chunk["data"])

        if buffer.tell() == 0:
            raise SynthesisError("Edge TTS returned no audio data", kind=ERROR_KIND_MALFORMED)
        return mp3_to_pcm(buffer.getvalue())


PROVIDERS = {
    GeminiProvider.name: GeminiProvider,
    EdgeProvider.name: EdgeProvider,
}


def create_provider(name: str) -> SpeechProvider:
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"Unknown provider: {name} (choose from {', '.join(sorted(PROVIDERS))})")
