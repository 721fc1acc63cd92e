"""Data models for screenplay generation and narration."""

from dataclasses import dataclass, field

from screenplay_narrator.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_LANGUAGE_SPEED,
    TRANSLATION_AFTER,
    TRANSLATION_BEFORE,
    TRANSLATION_BOTH,
)

# Playback states
STOPPED = "stopped"
PLAYING = "playing"
PAUSED = "paused"

# Request lifecycle states
PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"

TRANSLATION_TIMINGS = (TRANSLATION_BEFORE, TRANSLATION_AFTER, TRANSLATION_BOTH)


@dataclass(frozen=True)
class DialogueLine:
    character: str
    language: str
    text: str
    translation: str = ""
    parenthetical: str = ""
    action: str = ""


@dataclass(frozen=True)
class Scene:
    description: str
    lines: tuple[DialogueLine, ...] = ()
    heading: str = ""
    transition: str = ""


@dataclass(frozen=True)
class CastMember:
    name: str
    description: str = ""


@dataclass(frozen=True)
class Screenplay:
    scenes: tuple[Scene, ...]
    default_language: str = DEFAULT_LANGUAGE
    story_pitch: str = ""
    exposition: str = ""
    languages_used: tuple[str, ...] = ()
    cast: tuple[CastMember, ...] = ()


@dataclass
class PlaybackOptions:
    """Narration configuration supplied at playback start.

    Only ``language_speeds`` may change while playing; the scheduler reads it
    fresh before every segment.
    """
    language_speeds: dict[str, float] = field(default_factory=dict)
    default_speed: float = DEFAULT_LANGUAGE_SPEED
    default_language: str = DEFAULT_LANGUAGE
    character_mode: bool = True
    narrate_scenes: bool = False
    include_character: bool = True
    include_text: bool = True
    include_translation: bool = True
    include_action: bool = True
    include_parenthetical: bool = False
    translation_timing: str = TRANSLATION_AFTER

    def __post_init__(self):
        if self.translation_timing not in TRANSLATION_TIMINGS:
            raise ValueError(f"Invalid translation timing: {self.translation_timing}")

    def speed_for(self, language: str) -> float:
        return self.language_speeds.get(language, self.default_speed)


@dataclass(frozen=True)
class NarrationSegment:
    """One unit of text handed to the speech engine."""
    text: str
    language: str
    content_type: str   # "scene", "character", "parenthetical", "translation", "text", "action"
    scene_index: int
    line_index: int     # -1 for scene narration


@dataclass
class RequestState:
    status: str
    start_time: float
    end_time: float | None = None
    duration: float | None = None
    error: str | None = None
    cancelled: bool = False
