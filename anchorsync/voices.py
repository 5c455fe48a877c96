"""Persona catalog and per-chunk voice rotation."""

import logging
import random
import re

from anchorsync.models import Persona

logger = logging.getLogger(__name__)

PERSONA_CATALOG = list(Persona)

# Keyless provider voices, one per persona
EDGE_VOICE_MAP = {
    Persona.ANCHOR_ALPHA: "en-US-AriaNeural",
    Persona.REPORTER_BETA: "en-US-JennyNeural",
    Persona.NARRATOR_GAMMA: "en-US-MichelleNeural",
    Persona.HOST_DELTA: "en-US-SaraNeural",
}


def find_persona(name: str) -> Persona:
    """Resolve a persona by enum name, display name, or voice id.

    Raises KeyError when nothing matches. Voice ids are shared between
    personas, so they resolve to the first persona using them.
    """
    wanted = re.sub(r"[\s-]+", "_", name.strip().lower())
    for persona in PERSONA_CATALOG:
        if wanted in (persona.name.lower(), persona.display_name.lower().replace(" ", "_")):
            return persona
    for persona in PERSONA_CATALOG:
        if wanted == persona.voice_id.lower():
            return persona
    raise KeyError(f"Unknown persona: {name}")


class PersonaRotation:
    """Round robin over a shuffled persona list.

    Adjacent chunks get different personas whenever more than one is
    available.
    """

    def __init__(self, personas: list[Persona] | None = None, rng: random.Random | None = None):
        personas = list(personas) if personas else list(PERSONA_CATALOG)
        (rng or random.Random()).shuffle(personas)
        self.order = personas
        logger.debug("Persona order: %s", [p.display_name for p in personas])

    def for_chunk(self, index: int) -> Persona:
        return self.order[index % len(self.order)]
