"""Word-level highlight timing for engines without word-boundary events."""

from screenplay_narrator.constants import (
    BASE_CHAR_DURATION_MS,
    WORD_DURATION_FACTOR,
    MIN_WORD_DURATION_FACTOR,
    FIRST_WORD_OFFSET,
)


def split_words(text: str) -> list[str]:
    """Split on whitespace, discarding empty tokens."""
    return text.split()


def word_durations(words: list[str], speed: float) -> list[float]:
    """Estimated speaking duration in ms for each word.

    The per-character base shrinks as speed grows. Short words are floored so
    a highlight never lasts zero time.
    """
    if speed <= 0:
        raise ValueError(f"Speed must be positive, got {speed}")
    base = BASE_CHAR_DURATION_MS / speed
    return [
        max(len(word) * base * WORD_DURATION_FACTOR, base * MIN_WORD_DURATION_FACTOR)
        for word in words
    ]


def estimate(text: str, speed: float) -> list[tuple[str, float]]:
    """Return (word, delay_ms) pairs measured from utterance start.

    The first word lights up halfway through its own estimated duration to
    absorb engine startup latency; each later word follows the cumulative
    duration of the words before it.
    """
    words = split_words(text)
    if not words:
        return []

    durations = word_durations(words, speed)
    offset = durations[0] * FIRST_WORD_OFFSET
    timings = [(words[0], offset)]
    elapsed = 0.0
    for i in range(1, len(words)):
        elapsed += durations[i - 1]
        timings.append((words[i], offset + elapsed))
    return timings
