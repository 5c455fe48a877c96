"""CLI interface: generate a news package, list voices, inspect credentials."""

import argparse
import asyncio
import logging
import os
import random
import shutil
import sys
from datetime import datetime

from dotenv import load_dotenv

from anchorsync.constants import MAX_CHUNK_CHARS, OUTPUT_DIR, STATE_FILE, VERSION
from anchorsync.credentials import CredentialPool, CredentialStateStore, keyless_pool, load_credentials
from anchorsync.errors import ChunkSynthesisError, InputError
from anchorsync.exporter import AUDIO_FORMATS, export_package, slug_from_path, timestamp_basename
from anchorsync.providers import PROVIDERS, create_provider
from anchorsync.settings import load_settings
from anchorsync.subtitles import build_cues
from anchorsync.tts import SpeechOrchestrator, generate_speech
from anchorsync.voices import EDGE_VOICE_MAP, PERSONA_CATALOG, find_persona


def _check_ffmpeg():
    """Verify ffmpeg is installed."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _read_script(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    if not os.path.exists(path):
        print(f"Error: File not found: {path}", file=sys.stderr)
        raise SystemExit(1)
    with open(path, encoding="utf-8") as f:
        return f.read()


def _build_pool(args, rng: random.Random) -> CredentialPool:
    if args.provider == "edge":
        return keyless_pool()
    credentials = load_credentials(keys_file=args.keys_file)
    if not credentials:
        print("Error: No API keys configured.", file=sys.stderr)
        print("Set GEMINI_API_KEYS (comma separated) in the environment or .env, or pass --keys-file.", file=sys.stderr)
        raise SystemExit(1)
    return CredentialPool(credentials, state_store=CredentialStateStore(args.state_file), rng=rng)


def _print_progress(percent: int) -> None:
    print(f"  Progress: {percent}%")


def cmd_generate(args):
    """Synthesize a script into audio + subtitles."""
    _check_ffmpeg()

    text = _read_script(args.file)
    try:
        settings = load_settings(args.settings)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    personas = None
    if args.persona:
        try:
            personas = [find_persona(name) for name in args.persona]
        except KeyError as e:
            print(f"Error: {e.args[0]}", file=sys.stderr)
            raise SystemExit(1)

    rng = random.Random(args.seed)
    pool = _build_pool(args, rng)
    orchestrator = SpeechOrchestrator(create_provider(args.provider), pool, personas=personas, rng=rng)

    print(f"Generating speech ({args.provider}, {len(text)} characters)...")
    try:
        result = asyncio.run(generate_speech(
            text, settings, orchestrator,
            on_progress=_print_progress,
            max_chars=args.max_chars,
        ))
    except (InputError, ChunkSynthesisError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    cues = build_cues(result.metadata)

    basename = timestamp_basename(datetime.now())
    package_dir = args.output_dir
    if args.file != "-":
        package_dir = os.path.join(args.output_dir, slug_from_path(args.file))

    paths = export_package(
        result, cues, package_dir, basename, settings,
        audio_format=args.format,
        bundle=not args.no_zip,
    )

    print(f"Chunks: {len(result.metadata)}  Cues: {len(cues)}")
    for kind, path in paths.items():
        print(f"  {kind:<9}{path}")
    print(f"Done: {paths.get('bundle', paths['audio'])}")


def cmd_voices(args):
    """List personas and the voices they map to."""
    print("Personas:")
    for persona in PERSONA_CATALOG:
        print(
            f"  {persona.name:<15} {persona.display_name:<15} "
            f"gemini={persona.voice_id:<7} edge={EDGE_VOICE_MAP[persona]:<22} rate={persona.base_rate:.2f}"
        )
        print(f"  {'':<15} {persona.style_hint}")


def cmd_credentials(args):
    """Show credential health, or reset the persisted rotation state."""
    credentials = load_credentials(keys_file=args.keys_file)
    store = CredentialStateStore(args.state_file)

    if args.reset:
        if credentials:
            CredentialPool(credentials, state_store=store).reset()
        else:
            store.save(None, {})
        print("Credential state reset.")
        return

    if not credentials:
        print("No API keys configured.")
        return

    pool = CredentialPool(credentials, state_store=store)
    print("Credentials:")
    for cred_id, status, until in pool.snapshot():
        marker = "*" if cred_id == pool.last_used else " "
        detail = ""
        if until is not None:
            detail = f" until {datetime.fromtimestamp(until):%H:%M:%S}"
        print(f" {marker} {cred_id:<16} {status.value}{detail}")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="anchorsync",
        description="AnchorSync: news scripts to anchor audio with synced subtitles",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--state-file", default=STATE_FILE, help="Credential rotation state file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate
    gen_parser = subparsers.add_parser("generate", help="Generate audio + SRT from a script")
    gen_parser.add_argument("file", help="Path to the script text file, or - for stdin")
    gen_parser.add_argument("-o", "--output-dir", default=OUTPUT_DIR, help="Output directory")
    gen_parser.add_argument("--settings", help="JSON file with humanization settings")
    gen_parser.add_argument("--provider", choices=sorted(PROVIDERS), default="gemini", help="Speech provider")
    gen_parser.add_argument("--max-chars", type=int, default=MAX_CHUNK_CHARS, help="Character budget per request")
    gen_parser.add_argument("--format", choices=AUDIO_FORMATS, default="mp3", help="Audio container")
    gen_parser.add_argument("--no-zip", action="store_true", help="Skip the zip bundle")
    gen_parser.add_argument("--keys-file", help="File with one API key per line")
    gen_parser.add_argument("--persona", action="append", help="Restrict rotation to this persona (repeatable)")
    gen_parser.add_argument("--seed", type=int, help="Seed for humanization and rotation")
    gen_parser.add_argument("-v", "--verbose", action="store_true", help="Log retries and rotation")
    gen_parser.set_defaults(func=cmd_generate)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List anchor personas")
    voices_parser.set_defaults(func=cmd_voices)

    # credentials
    cred_parser = subparsers.add_parser("credentials", help="Show or reset credential health")
    cred_parser.add_argument("--keys-file", help="File with one API key per line")
    cred_parser.add_argument("--reset", action="store_true", help="Clear cooling marks and last-used key")
    cred_parser.set_defaults(func=cmd_credentials)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.INFO if getattr(args, "verbose", False) else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    args.func(args)
