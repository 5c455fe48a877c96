"""Split a script into sentence-bounded chunks under a character budget."""

import re

from anchorsync.constants import MAX_CHUNK_CHARS
from anchorsync.models import Chunk

# Terminal punctuation followed by whitespace or the end of the text, or a newline
_BOUNDARY_RE = re.compile(r"[.!?]+(?=\s|$)\s*|\n\s*")

# Initialisms (U.S., U.K.) and honorifics whose period does not end a sentence
_ABBREVIATION_RE = re.compile(
    r"(?:[A-Za-z]\.){2,}|(?:Mr|Mrs|Ms|Dr|St|Jr|Sr|Gov|Sen|Rep|Gen|Lt|Col|Prof|vs)\."
)


def _ends_with_abbreviation(span: str) -> bool:
    words = span.split()
    return bool(words) and _ABBREVIATION_RE.fullmatch(words[-1]) is not None


def split_sentences(text: str) -> list[str]:
    """Split text into sentence spans that concatenate back to text.

    A sentence ends at a newline, or at . ! ? when whitespace or the end of
    the text follows, so "3.5" and "$1.2" stay whole. A period closing an
    initialism or honorific ("U.S.", "Dr.") does not end a sentence unless
    it is the last thing in the text. Each span keeps its trailing
    whitespace.
    """
    spans = []
    start = 0
    for match in _BOUNDARY_RE.finditer(text):
        end = match.end()
        if (
            end < len(text)
            and match.group(0).startswith(".")
            and _ends_with_abbreviation(text[start:match.end()])
        ):
            continue
        spans.append(text[start:end])
        start = end
    if start < len(text):
        spans.append(text[start:])
    return spans


def segment(text: str, max_chars: int = MAX_CHUNK_CHARS) -> list[Chunk]:
    """Greedily pack sentences into chunks of at most max_chars.

    Sentences keep their own text; only the whitespace between two sentences
    becomes a single space. A sentence is never split; one that alone
    exceeds max_chars becomes its own oversized chunk.
    """
    chunks = []
    current = ""

    for span in split_sentences(text):
        sentence = span.strip()
        if not sentence:
            continue

        if current and len(current) + 1 + len(sentence) > max_chars:
            chunks.append(current)
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence

    if current:
        chunks.append(current)

    return [Chunk(index=i, text=chunk) for i, chunk in enumerate(chunks)]
