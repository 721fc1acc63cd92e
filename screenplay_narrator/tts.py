"""Speech engine backed by edge-tts with retry logic and pause/resume."""

import asyncio
import io
import logging

import edge_tts
from pydub import AudioSegment

from screenplay_narrator.constants import (
    ENGINE_HOLD_STEP,
    FALLBACK_VOICE,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
)
from screenplay_narrator.voices import VOICE_POOL, resolve_voice

logger = logging.getLogger(__name__)


def rate_to_percent(rate: float) -> str:
    """Speed multiplier → edge-tts relative rate. 1.5 → "+50%", 0.8 → "-20%"."""
    percent = round((rate - 1.0) * 100)
    return f"{percent:+d}%"


async def synthesize(text: str, voice: str, rate: float = 1.0) -> bytes:
    """Synthesize one clip to MP3 bytes with retry logic.

    Retries on network errors, HTTP errors, or empty audio, with exponential
    backoff between attempts.
    """
    last_error = None
    for attempt in range(TTS_RETRY_COUNT):
        try:
            communicate = edge_tts.Communicate(text, voice, rate=rate_to_percent(rate))
            audio = bytearray()
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
            if audio:
                return bytes(audio)
            last_error = Exception(f"TTS produced no audio for: {text[:50]}...")
        except Exception as e:
            last_error = e

        if attempt < TTS_RETRY_COUNT - 1:
            await asyncio.sleep(TTS_RETRY_BASE_DELAY * (2 ** attempt))

    raise last_error


class EdgeSpeechEngine:
    """Speaks one utterance at a time and holds for its real duration.

    ``speak`` never raises on synthesis failure: it logs and returns, which
    the narration layer treats as an ordinary end of utterance. Every clip
    that was spoken is kept in ``recording``.
    """

    def __init__(self, voices: list[dict] | None = None, hold_step: float = ENGINE_HOLD_STEP):
        self.voices = voices if voices is not None else VOICE_POOL
        self.hold_step = hold_step
        self.recording: list[AudioSegment] = []
        self._paused = False
        self._speaking = False
        self._generation = 0
        self._resumed = asyncio.Event()
        self._resumed.set()

    def voice_for_locale(self, locale: str) -> str:
        return resolve_voice(locale, self.voices) or FALLBACK_VOICE

    def is_paused(self) -> bool:
        return self._paused

    def is_speaking(self) -> bool:
        return self._speaking

    def pause(self) -> None:
        if self._speaking and not self._paused:
            self._paused = True
            self._resumed.clear()

    def resume(self) -> None:
        if self._paused:
            self._paused = False
            self._resumed.set()

    def stop(self) -> None:
        """Hard stop: the current utterance resolves at its next check."""
        self._generation += 1
        self._speaking = False
        self._paused = False
        self._resumed.set()

    async def speak(self, text: str, locale: str, rate: float = 1.0, voice: str | None = None, on_start=None) -> None:
        generation = self._generation
        voice = voice or self.voice_for_locale(locale)
        self._speaking = True
        try:
            try:
                data = await synthesize(text, voice, rate)
                clip = AudioSegment.from_file(io.BytesIO(data), format="mp3")
            except Exception as e:
                logger.warning("Synthesis failed for %r (%s): %s", text[:50], voice, e)
                return

            if generation != self._generation:
                return

            self.recording.append(clip)
            if on_start:
                on_start()
            await self._hold(len(clip) / 1000.0, generation)
        finally:
            if generation == self._generation:
                self._speaking = False

    async def _hold(self, seconds: float, generation: int) -> None:
        remaining = seconds
        while remaining > 0:
            if generation != self._generation:
                return
            if self._paused:
                await self._resumed.wait()
                continue
            step = min(remaining, self.hold_step)
            await asyncio.sleep(step)
            remaining -= step

    def export_recording(self, path: str) -> str:
        """Write every spoken clip, in order, to one MP3 file."""
        combined = AudioSegment.silent(duration=0)
        for clip in self.recording:
            combined += clip
        combined.export(path, format="mp3")
        return path
