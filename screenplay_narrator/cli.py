"""CLI interface with subcommand routing for generation and narration."""

import argparse
import asyncio
import json
import logging
import os
import shutil
import signal
import sys

from screenplay_narrator.artifacts import (
    add_to_history,
    clear_history,
    find_in_history,
    load_history,
    remove_from_history,
)
from screenplay_narrator.config import load_config
from screenplay_narrator.constants import (
    DEFAULT_DIALOG_LANGUAGES,
    DEFAULT_MIN_LINES,
    DEFAULT_SCREENPLAY_LANGUAGE,
    DEFAULT_STORY_PITCH,
    OUTPUT_DIR,
    SPEED_RANGE,
    TRANSLATION_AFTER,
    VERSION,
)
from screenplay_narrator.errors import GenerationError, ScreenplayFormatError
from screenplay_narrator.generator import GenerationRequest, OpenRouterClient
from screenplay_narrator.models import TRANSLATION_TIMINGS, PlaybackOptions
from screenplay_narrator.orchestrator import GenerationOrchestrator
from screenplay_narrator.parser import load_screenplay, parse_screenplay
from screenplay_narrator.playback import NarrationPlayer
from screenplay_narrator.tts import EdgeSpeechEngine
from screenplay_narrator.voices import LANGUAGES, VOICE_POOL, language_to_locale


def _fail(message: str, hint: str | None = None):
    print(f"Error: {message}", file=sys.stderr)
    if hint:
        print(hint, file=sys.stderr)
    raise SystemExit(1)


def _check_ffmpeg():
    """Verify ffmpeg is installed (pydub needs it to decode speech)."""
    if not shutil.which("ffmpeg"):
        _fail("ffmpeg is required but not found.", "Install with: brew install ffmpeg")


def _install_interrupt(callback) -> bool:
    """Route Ctrl-C to ``callback`` on the running loop. False if unsupported."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, callback)
    except (NotImplementedError, RuntimeError):
        return False
    return True


def _remove_interrupt():
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError):
        pass


def _parse_speeds(values: list[str] | None) -> dict[str, float]:
    """["Hebrew=0.8", "Arabic=1.2"] → {"Hebrew": 0.8, "Arabic": 1.2}"""
    speeds = {}
    low, high = SPEED_RANGE
    for item in values or []:
        lang, sep, raw = item.partition("=")
        if not sep:
            _fail(f"Invalid speed '{item}'", "Use LANGUAGE=SPEED, e.g. Hebrew=0.8")
        lang = lang.strip().title()
        if lang not in LANGUAGES:
            _fail(f"Unknown language: {lang}")
        try:
            speed = float(raw)
        except ValueError:
            _fail(f"Invalid speed value: {raw}")
        if not low <= speed <= high:
            _fail(f"Speed for {lang} must be between {low} and {high}")
        speeds[lang] = speed
    return speeds


async def _run_generation(orchestrator, request, models, on_complete):
    _install_interrupt(orchestrator.cancel_all)
    try:
        return await orchestrator.generate_for_targets(request, models, on_complete)
    finally:
        _remove_interrupt()


def cmd_generate(args):
    """Generate a screenplay from every selected model concurrently."""
    config = load_config()
    if not config["api_key"]:
        _fail("No API key configured.", "Set OPENROUTER_API_KEY or add 'apiKey' to config.json.")

    request = GenerationRequest(
        story_pitch=args.pitch,
        dialog_languages=args.languages or list(DEFAULT_DIALOG_LANGUAGES),
        default_screenplay_language=args.default_language,
        min_lines_per_dialog=args.min_lines,
    )
    try:
        request.validate()
    except ValueError as e:
        _fail(str(e))

    models = args.model or [config["default_model"]]
    client = OpenRouterClient(config["api_key"], cache_dir=OUTPUT_DIR)
    orchestrator = GenerationOrchestrator(client.generate)
    params = request.to_params()

    def on_complete(target, data):
        entry = add_to_history(data, {**params, "model": target}, base_dir=OUTPUT_DIR)
        print(f"  [done] {target} (history id {entry['id']})")

    print(f"Generating for {len(models)} model(s)... (Ctrl-C cancels)")
    results = asyncio.run(_run_generation(orchestrator, request, models, on_complete))

    for target, result in results.items():
        if result["success"]:
            continue
        marker = "[cancelled]" if result.get("cancelled") else "[failed]"
        print(f"  {marker} {target}: {result['error']}")

    summary = orchestrator.tracker.summary()
    print(
        f"Completed: {summary['completed']}  Failed: {summary['failed']}  "
        f"Cancelled: {summary['cancelled']}"
    )

    if orchestrator.primary is None:
        raise SystemExit(1)

    target, data = orchestrator.primary
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        print(f"Primary result ({target}) written to {args.output}")
    else:
        print(f"Primary result: {target}")


def _load_play_source(source: str):
    """Load a screenplay from a JSON file path or a history entry id."""
    try:
        if os.path.exists(source):
            return load_screenplay(source)
        entry = find_in_history(source, base_dir=OUTPUT_DIR)
        if entry is None:
            _fail(f"No screenplay file or history entry: {source}",
                  "Run 'screenplay history' to list saved screenplays.")
        return parse_screenplay(entry["screenplay"])
    except ScreenplayFormatError as e:
        _fail(f"Invalid screenplay: {e}")


async def _run_playback(player, screenplay, options):
    _install_interrupt(player.stop)
    try:
        return await player.play(screenplay, options)
    finally:
        _remove_interrupt()


def cmd_play(args):
    """Narrate a screenplay through the speech engine."""
    _check_ffmpeg()
    screenplay = _load_play_source(args.source)
    config = load_config()

    speeds = {**config["language_speeds"], **_parse_speeds(args.speed)}
    options = PlaybackOptions(
        language_speeds=speeds,
        default_speed=config["default_language_speed"],
        default_language=args.default_language or screenplay.default_language,
        character_mode=not args.no_character_mode,
        narrate_scenes=args.narrate_scenes,
        include_character=not args.no_names,
        include_text=not args.no_text,
        include_translation=not args.no_translation,
        include_action=not args.no_action,
        include_parenthetical=args.parenthetical,
        translation_timing=args.translation_timing,
    )

    def on_line_start(scene_idx, line_idx):
        if scene_idx < 0:
            return
        line = screenplay.scenes[scene_idx].lines[line_idx]
        print(f"  [{scene_idx + 1}.{line_idx + 1}] {line.character} ({line.language}): {line.text}")

    def on_language_change(language):
        if args.verbose:
            print(f"  ~ {language} ({language_to_locale(language)})")

    def on_word_start(word, content_type, scene_idx, line_idx):
        if args.verbose and word:
            print(f"    {content_type}: {word}")

    engine = EdgeSpeechEngine()
    player = NarrationPlayer(
        engine,
        on_line_start=on_line_start,
        on_word_start=on_word_start,
        on_language_change=on_language_change,
    )

    print(f"Playing {len(screenplay.scenes)} scene(s)... (Ctrl-C stops)")
    completed = asyncio.run(_run_playback(player, screenplay, options))
    print("Done." if completed else "Stopped.")

    if args.export:
        if not engine.recording:
            print("Nothing was spoken; no recording exported.", file=sys.stderr)
        else:
            print(f"Recording written to {engine.export_recording(args.export)}")


def cmd_models(args):
    """List free models with structured-output support."""
    config = load_config()
    client = OpenRouterClient(config["api_key"], cache_dir=OUTPUT_DIR)
    try:
        models = asyncio.run(client.list_models(refresh=args.refresh))
    except GenerationError as e:
        _fail(str(e))
    if not models:
        print("No models found.")
        return
    print("Available models:")
    for model in models:
        marker = "*" if model == config["default_model"] else " "
        print(f" {marker} {model}")


def cmd_history(args):
    """List, show, remove, or clear saved screenplays."""
    if args.action == "list":
        history = load_history(base_dir=OUTPUT_DIR)
        if not history:
            print("No saved screenplays.")
            return
        print("History:")
        for entry in history:
            params = entry.get("params", {})
            pitch = (params.get("story_pitch") or "(original)")[:50]
            print(f"  {entry['id']}  {params.get('model', '?'):<40} {pitch}")

    elif args.action == "show":
        if not args.id:
            _fail("'history show' requires an entry id")
        entry = find_in_history(args.id, base_dir=OUTPUT_DIR)
        if entry is None:
            _fail(f"History entry not found: {args.id}")
        print(json.dumps(entry, indent=2, ensure_ascii=False))

    elif args.action == "remove":
        if not args.id:
            _fail("'history remove' requires an entry id")
        if not remove_from_history(args.id, base_dir=OUTPUT_DIR):
            _fail(f"History entry not found: {args.id}")
        print(f"Removed: {args.id}")

    elif args.action == "clear":
        count = clear_history(base_dir=OUTPUT_DIR)
        print(f"Cleared {count} entr{'y' if count == 1 else 'ies'}.")


def cmd_voices(args):
    """List available voices."""
    filter_str = args.filter.lower() if args.filter else None
    voices = [v["ShortName"] for v in VOICE_POOL]
    if filter_str:
        voices = [v for v in voices if filter_str in v.lower()]
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        print(f"  {v}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="screenplay",
        description="Screenplay Narrator: generate multilingual screenplays and narrate them",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and word-level progress")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate
    gen_parser = subparsers.add_parser("generate", help="Generate a screenplay from one or more models")
    gen_parser.add_argument("-m", "--model", action="append", help="Model to query (repeatable)")
    gen_parser.add_argument("--pitch", default=DEFAULT_STORY_PITCH, help="Story pitch")
    gen_parser.add_argument("--languages", nargs="+", choices=LANGUAGES, help="Languages for character dialog")
    gen_parser.add_argument("--default-language", default=DEFAULT_SCREENPLAY_LANGUAGE, choices=LANGUAGES,
                            help="Language for everything except character dialog")
    gen_parser.add_argument("--min-lines", type=int, default=DEFAULT_MIN_LINES, help="Minimum lines per dialog")
    gen_parser.add_argument("-o", "--output", help="Write the primary screenplay to this JSON file")
    gen_parser.set_defaults(func=cmd_generate)

    # play
    play_parser = subparsers.add_parser("play", help="Narrate a screenplay")
    play_parser.add_argument("source", help="Screenplay JSON file or history entry id")
    play_parser.add_argument("--speed", action="append", metavar="LANG=X", help="Per-language speed (repeatable)")
    play_parser.add_argument("--default-language", choices=LANGUAGES, help="Override the screenplay's default language")
    play_parser.add_argument("--narrate-scenes", action="store_true", help="Speak scene descriptions")
    play_parser.add_argument("--parenthetical", action="store_true", help="Speak parentheticals")
    play_parser.add_argument("--no-names", action="store_true", help="Do not speak character names")
    play_parser.add_argument("--no-text", action="store_true", help="Do not speak line text")
    play_parser.add_argument("--no-translation", action="store_true", help="Do not speak translations")
    play_parser.add_argument("--no-action", action="store_true", help="Do not speak stage actions")
    play_parser.add_argument("--no-character-mode", action="store_true",
                             help="Speak line text in the default language instead of the line's own")
    play_parser.add_argument("--translation-timing", choices=TRANSLATION_TIMINGS, default=TRANSLATION_AFTER)
    play_parser.add_argument("--export", help="Write the spoken audio to this MP3 file")
    play_parser.set_defaults(func=cmd_play)

    # models
    models_parser = subparsers.add_parser("models", help="List available models")
    models_parser.add_argument("--refresh", action="store_true", help="Ignore the cached catalog")
    models_parser.set_defaults(func=cmd_models)

    # history
    history_parser = subparsers.add_parser("history", help="Manage saved screenplays")
    history_parser.add_argument("action", nargs="?", default="list", choices=["list", "show", "remove", "clear"])
    history_parser.add_argument("id", nargs="?", help="History entry id")
    history_parser.set_defaults(func=cmd_history)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
