"""Narration scheduler: walk a screenplay and speak it segment by segment."""

import asyncio
import dataclasses
import logging
from typing import Iterator

from screenplay_narrator.cancellation import CancellationToken
from screenplay_narrator.constants import (
    SCENE_PREFIX,
    SPEED_RANGE,
    STATE_POLL_INTERVAL,
    TRANSLATION_AFTER,
    TRANSLATION_BEFORE,
    TRANSLATION_BOTH,
)
from screenplay_narrator.models import (
    PAUSED,
    PLAYING,
    STOPPED,
    NarrationSegment,
    PlaybackOptions,
    Screenplay,
)
from screenplay_narrator.segment import SegmentPlayer

logger = logging.getLogger(__name__)


def plan_segments(screenplay: Screenplay, options: PlaybackOptions) -> Iterator[NarrationSegment]:
    """Yield the segments to speak, in playback order.

    Per line: character → parenthetical → translation (before) → text →
    translation (after) → action, each gated by its own flag. Only the line
    text may use the line's language; everything else uses the default.
    """
    default = options.default_language
    timing = options.translation_timing

    for scene_idx, scene in enumerate(screenplay.scenes):
        if options.narrate_scenes and scene.description:
            yield NarrationSegment(f"{SCENE_PREFIX}{scene.description}", default, "scene", scene_idx, -1)

        for line_idx, line in enumerate(scene.lines):
            if options.include_character and line.character:
                yield NarrationSegment(line.character, default, "character", scene_idx, line_idx)

            if options.include_parenthetical and line.parenthetical:
                yield NarrationSegment(line.parenthetical, default, "parenthetical", scene_idx, line_idx)

            translate = options.include_translation and line.translation
            if translate and timing in (TRANSLATION_BEFORE, TRANSLATION_BOTH):
                yield NarrationSegment(line.translation, default, "translation", scene_idx, line_idx)

            if options.include_text and line.text:
                language = line.language if options.character_mode and line.language else default
                yield NarrationSegment(line.text, language, "text", scene_idx, line_idx)

            if translate and timing in (TRANSLATION_AFTER, TRANSLATION_BOTH):
                yield NarrationSegment(line.translation, default, "translation", scene_idx, line_idx)

            if options.include_action and line.action:
                yield NarrationSegment(line.action, default, "action", scene_idx, line_idx)


class NarrationPlayer:
    """Plays a screenplay through a speech engine.

    State moves ``stopped → playing ⇄ paused → stopped``. Pause and resume go
    straight to the engine; the observed state is reconciled by polling the
    engine's paused/speaking flags because the engine reports no pause or
    resume events.

    Callbacks:
      on_line_start(scene_idx, line_idx): line text starts; (-1, -1) at the end
      on_word_start(word, content_type, scene_idx, line_idx): simulated word
        highlight; (None, None, -1, -1) at the end
      on_language_change(language): the next segment uses a new language
    """

    def __init__(
        self,
        engine,
        on_line_start=None,
        on_word_start=None,
        on_language_change=None,
        poll_interval: float = STATE_POLL_INTERVAL,
    ):
        self.engine = engine
        self.segment_player = SegmentPlayer(engine)
        self.on_line_start = on_line_start
        self.on_word_start = on_word_start
        self.on_language_change = on_language_change
        self.poll_interval = poll_interval
        self.state = STOPPED
        self._token: CancellationToken | None = None
        self._options: PlaybackOptions | None = None
        self._language = None
        self._reset_position()

    def _reset_position(self) -> None:
        self.scene_index = -1
        self.line_index = -1
        self.current_word = None
        self.content_type = None

    async def play(self, screenplay: Screenplay, options: PlaybackOptions) -> bool:
        """Narrate the whole screenplay.

        Returns True on natural completion, False when stopped or when the
        call was rejected because playback is already running.
        """
        if self.state != STOPPED:
            logger.warning("play() ignored: narration is already %s", self.state)
            return False

        token = CancellationToken()
        self._token = token
        # Speeds are the only live-mutable option; keep a private copy of the map
        self._options = dataclasses.replace(options, language_speeds=dict(options.language_speeds))
        self._language = None
        self._reset_position()
        self.state = PLAYING
        watcher = asyncio.create_task(self._watch_engine(token))

        try:
            for segment in plan_segments(screenplay, self._options):
                if token.is_cancelled:
                    return False
                await self._speak(segment, token)

            if token.is_cancelled:
                return False
            if self.on_line_start:
                self.on_line_start(-1, -1)
            if self.on_word_start:
                self.on_word_start(None, None, -1, -1)
            return True
        finally:
            watcher.cancel()
            if self._token is token:
                self._token = None
                self.state = STOPPED
                self._reset_position()

    async def _speak(self, segment: NarrationSegment, token: CancellationToken) -> None:
        speed = self._options.speed_for(segment.language)

        if segment.language != self._language:
            self._language = segment.language
            if self.on_language_change:
                self.on_language_change(segment.language)

        def segment_started():
            if token.is_cancelled:
                return
            self.scene_index = segment.scene_index
            self.line_index = segment.line_index
            self.content_type = segment.content_type
            if segment.content_type == "text" and self.on_line_start:
                self.on_line_start(segment.scene_index, segment.line_index)

        def word_started(word):
            if token.is_cancelled:
                return
            self.current_word = word
            if self.on_word_start:
                self.on_word_start(word, segment.content_type, segment.scene_index, segment.line_index)

        logger.debug("Speaking %s %d/%d at %.1fx", segment.content_type,
                     segment.scene_index, segment.line_index, speed)
        await self.segment_player.play(segment.text, segment.language, speed, word_started, segment_started)

    async def _watch_engine(self, token: CancellationToken) -> None:
        while not token.is_cancelled:
            await asyncio.sleep(self.poll_interval)
            self.reconcile()

    def reconcile(self) -> None:
        """Align the observed state with the engine's pause/speaking flags."""
        if self.state == PLAYING and self.engine.is_paused():
            self.state = PAUSED
        elif self.state == PAUSED and not self.engine.is_paused() and self.engine.is_speaking():
            self.state = PLAYING

    def pause(self) -> None:
        if self.state == PLAYING:
            self.engine.pause()

    def resume(self) -> None:
        if self.state == PAUSED:
            self.engine.resume()

    def stop(self) -> None:
        if self.state == STOPPED:
            return
        self._token.cancel()
        self._token = None
        self.segment_player.cancel_pending()
        self.engine.stop()
        self.state = STOPPED
        self._reset_position()

    def set_language_speed(self, language: str, speed: float) -> bool:
        """Change a language's speed for the segments that start from now on.

        The segment already speaking keeps its word schedule. Returns False
        when nothing is playing.
        """
        low, high = SPEED_RANGE
        if not low <= speed <= high:
            raise ValueError(f"Speed {speed} outside {low} to {high}")
        if self.state == STOPPED or self._options is None:
            return False
        self._options.language_speeds[language] = speed
        return True
