"""Parse generated screenplay JSON into immutable document models."""

import json

from screenplay_narrator.constants import DEFAULT_LANGUAGE
from screenplay_narrator.errors import ScreenplayFormatError
from screenplay_narrator.models import CastMember, DialogueLine, Scene, Screenplay


def _text(value) -> str:
    """Normalize an optional text field: None → "", strip whitespace."""
    if value is None:
        return ""
    return str(value).strip()


def _parse_line(data: dict) -> DialogueLine:
    if not isinstance(data, dict):
        raise ScreenplayFormatError(f"Dialogue line must be an object, got {type(data).__name__}")
    return DialogueLine(
        character=_text(data.get("character")),
        language=_text(data.get("language")),
        text=_text(data.get("text")),
        translation=_text(data.get("translation")),
        parenthetical=_text(data.get("parenthetical")),
        action=_text(data.get("action")),
    )


def _parse_scene(data: dict) -> Scene:
    if not isinstance(data, dict):
        raise ScreenplayFormatError(f"Scene must be an object, got {type(data).__name__}")
    dialogue = data.get("dialogue") or []
    if not isinstance(dialogue, list):
        raise ScreenplayFormatError("Scene 'dialogue' must be a list")
    return Scene(
        description=_text(data.get("scene")),
        lines=tuple(_parse_line(line) for line in dialogue),
        heading=_text(data.get("scene_heading")),
        transition=_text(data.get("transition")),
    )


def parse_screenplay(data: dict) -> Screenplay:
    """Build a Screenplay from the provider's JSON shape.

    Optional fields default to empty strings. Raises ScreenplayFormatError
    when the document or its scenes are not the expected containers.
    """
    if not isinstance(data, dict):
        raise ScreenplayFormatError("Screenplay must be a JSON object")
    scenes = data.get("scenes") or []
    if not isinstance(scenes, list):
        raise ScreenplayFormatError("'scenes' must be a list")

    cast = []
    for member in data.get("cast") or []:
        if isinstance(member, dict) and member.get("name"):
            cast.append(CastMember(name=_text(member["name"]), description=_text(member.get("description"))))

    languages = data.get("languages_used") or data.get("dialog_languages") or []

    return Screenplay(
        scenes=tuple(_parse_scene(scene) for scene in scenes),
        default_language=_text(data.get("default_screenplay_language")) or DEFAULT_LANGUAGE,
        story_pitch=_text(data.get("story_pitch")),
        exposition=_text(data.get("exposition")),
        languages_used=tuple(_text(lang) for lang in languages),
        cast=tuple(cast),
    )


def load_screenplay(path: str) -> Screenplay:
    """Read a screenplay JSON file and parse it."""
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ScreenplayFormatError(f"Invalid JSON in {path}: {e}") from e
    return parse_screenplay(data)
