"""Play one text segment and emit simulated word-highlight events."""

import asyncio
import logging

from screenplay_narrator.timing import estimate
from screenplay_narrator.voices import language_to_locale

logger = logging.getLogger(__name__)


class SegmentPlayer:
    """Drives one engine utterance at a time.

    Highlight timers belong to a segment generation. Starting a new segment
    or calling ``cancel_pending`` bumps the generation and cancels every
    outstanding timer, so a superseded segment can never highlight a word
    after its successor has started.
    """

    def __init__(self, engine):
        self.engine = engine
        self.generation = 0
        self._timers: list[asyncio.TimerHandle] = []

    def cancel_pending(self) -> None:
        self.generation += 1
        for handle in self._timers:
            handle.cancel()
        self._timers = []

    async def play(self, text: str, language: str, speed: float, on_word_start=None, on_segment_start=None) -> None:
        """Speak ``text`` and resolve when the engine finishes.

        Engine errors count as completion: they are logged and the segment
        resolves normally. ``on_word_start(None)`` is always sent at the end
        to clear the active highlight.
        """
        self.cancel_pending()
        generation = self.generation
        timings = estimate(text, speed)
        locale = language_to_locale(language)
        voice = self.engine.voice_for_locale(locale)

        def started():
            if generation != self.generation:
                return
            if on_segment_start:
                on_segment_start()
            if not on_word_start:
                return
            loop = asyncio.get_running_loop()
            for word, delay_ms in timings:
                self._timers.append(
                    loop.call_later(delay_ms / 1000.0, self._fire, generation, on_word_start, word)
                )

        try:
            await self.engine.speak(text, locale, speed, voice=voice, on_start=started)
        except Exception as e:
            logger.warning("Speech failed for %r (%s): %s", text[:50], locale, e)
        finally:
            if generation == self.generation:
                self.cancel_pending()
            if on_word_start:
                on_word_start(None)

    def _fire(self, generation: int, on_word_start, word: str) -> None:
        if generation == self.generation:
            on_word_start(word)
