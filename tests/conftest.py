"""Shared fixtures for screenplay narrator tests."""

import asyncio
import io

import pytest
from pydub import AudioSegment

from screenplay_narrator.parser import parse_screenplay
from screenplay_narrator.voices import VOICE_POOL, resolve_voice


class FakeEngine:
    """Speech engine stand-in that holds each utterance for ``duration`` seconds."""

    def __init__(self, duration: float = 0.0, tick: float = 0.005):
        self.duration = duration
        self.tick = tick
        self.calls = []
        self.voices = VOICE_POOL
        self.stop_count = 0
        self._paused = False
        self._speaking = False
        self._generation = 0

    def voice_for_locale(self, locale):
        return resolve_voice(locale, self.voices)

    def is_paused(self):
        return self._paused

    def is_speaking(self):
        return self._speaking

    def pause(self):
        if self._speaking:
            self._paused = True

    def resume(self):
        self._paused = False

    def stop(self):
        self.stop_count += 1
        self._generation += 1
        self._speaking = False
        self._paused = False

    async def speak(self, text, locale, rate=1.0, voice=None, on_start=None):
        generation = self._generation
        self.calls.append({"text": text, "locale": locale, "rate": rate, "voice": voice})
        self._speaking = True
        await asyncio.sleep(0)
        if on_start:
            on_start()
        remaining = self.duration
        while remaining > 0 and generation == self._generation:
            await asyncio.sleep(self.tick)
            if not self._paused:
                remaining -= self.tick
        if generation == self._generation:
            self._speaking = False


@pytest.fixture
def make_engine():
    """The FakeEngine class, so tests can pick a duration or subclass it."""
    return FakeEngine


@pytest.fixture
def screenplay_data():
    """Two scenes × two lines, every optional field populated."""
    return {
        "story_pitch": "A guessing game",
        "exposition": "An adult and a child pass the time.",
        "languages_used": ["Hebrew", "Arabic"],
        "default_screenplay_language": "English",
        "cast": [
            {"name": "Dana", "description": "a patient aunt"},
            {"name": "Omar", "description": "a curious child"},
        ],
        "scenes": [
            {
                "scene_heading": "INT. KITCHEN - DAY",
                "scene": "A sunny kitchen.",
                "transition": "CUT TO:",
                "dialogue": [
                    {
                        "character": "Dana",
                        "language": "Hebrew",
                        "text": "שלום עומר",
                        "translation": "Hello Omar",
                        "parenthetical": "smiling",
                        "action": "She sits down.",
                    },
                    {
                        "character": "Omar",
                        "language": "Arabic",
                        "text": "مرحبا",
                        "translation": "Hello",
                        "parenthetical": "shyly",
                        "action": "He waves.",
                    },
                ],
            },
            {
                "scene_heading": "EXT. GARDEN - DUSK",
                "scene": "The garden at dusk.",
                "dialogue": [
                    {
                        "character": "Dana",
                        "language": "Hebrew",
                        "text": "נחש מה אני רואה",
                        "translation": "Guess what I see",
                        "parenthetical": "pointing",
                        "action": "She points at the sky.",
                    },
                    {
                        "character": "Omar",
                        "language": "Arabic",
                        "text": "القمر",
                        "translation": "The moon",
                        "parenthetical": "excited",
                        "action": "He jumps.",
                    },
                ],
            },
        ],
    }


@pytest.fixture
def screenplay(screenplay_data):
    return parse_screenplay(screenplay_data)


@pytest.fixture
def tiny_mp3_bytes():
    """A 100ms silent MP3, as bytes."""
    buf = io.BytesIO()
    AudioSegment.silent(duration=100).export(buf, format="mp3")
    return buf.getvalue()
