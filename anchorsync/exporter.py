"""Write the audio + subtitle package and its manifest."""

import json
import os
import re
import zipfile
from datetime import datetime, timezone

from anchorsync.constants import BASENAME_PREFIX, OUTPUT_BITRATE, VERSION
from anchorsync.effects import apply_ambience, normalize_level, pcm_to_segment
from anchorsync.models import Settings, SpeechResult, SubtitleCue
from anchorsync.settings import settings_to_dict
from anchorsync.subtitles import render_srt

AUDIO_FORMATS = ("mp3", "wav")


def slug_from_path(script_path: str) -> str:
    """Convert a script filename to an output directory slug.

    "Evening Bulletin.txt" → "evening_bulletin"
    """
    basename = os.path.splitext(os.path.basename(script_path))[0]
    return re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()


def timestamp_basename(now: datetime | None = None) -> str:
    """Package name like US_ANCHOR_193005 for a run at 19:30:05."""
    now = now or datetime.now()
    return f"{BASENAME_PREFIX}_{now:%H%M%S}"


def write_srt(cues: list[SubtitleCue], path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_srt(cues))
    return path


def export_package(
    result: SpeechResult,
    cues: list[SubtitleCue],
    output_dir: str,
    basename: str,
    settings: Settings,
    audio_format: str = "mp3",
    bundle: bool = True,
) -> dict[str, str]:
    """Export audio, subtitles, manifest and (optionally) a zip of both.

    Creates under output_dir:
      - <basename>.mp3 or .wav
      - <basename>.srt
      - <basename>.json (provenance manifest)
      - <basename>.zip (audio + srt), when bundle is set

    Returns a dict of the written paths keyed by "audio", "srt", "manifest"
    and "bundle".
    """
    if audio_format not in AUDIO_FORMATS:
        raise ValueError(f"Unsupported audio format: {audio_format}")

    os.makedirs(output_dir, exist_ok=True)
    safe_name = basename.replace(":", ".")

    audio = pcm_to_segment(result.audio)
    if settings.ambient_sounds:
        audio = apply_ambience(audio)
    audio = normalize_level(audio)

    audio_path = os.path.join(output_dir, f"{safe_name}.{audio_format}")
    if audio_format == "mp3":
        audio.export(audio_path, format="mp3", bitrate=OUTPUT_BITRATE)
    else:
        audio.export(audio_path, format="wav")

    srt_path = write_srt(cues, os.path.join(output_dir, f"{safe_name}.srt"))

    manifest = {
        "package": safe_name,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "anchorsync_version": VERSION,
        "settings": settings_to_dict(settings),
        "stats": {
            "chunks": len(result.metadata),
            "cues": len(cues),
            "duration_seconds": round(len(audio) / 1000, 2),
            "pcm_bytes": len(result.audio),
        },
        "chunks": [
            {"text": m.text, "duration_ms": round(m.duration_ms, 1)}
            for m in result.metadata
        ],
    }
    manifest_path = os.path.join(output_dir, f"{safe_name}.json")
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    paths = {"audio": audio_path, "srt": srt_path, "manifest": manifest_path}

    if bundle:
        zip_path = os.path.join(output_dir, f"{safe_name}.zip")
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.write(audio_path, arcname=os.path.basename(audio_path))
            zf.write(srt_path, arcname=os.path.basename(srt_path))
        paths["bundle"] = zip_path

    return paths
