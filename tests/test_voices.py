"""Tests for language → locale → voice resolution."""

import pytest

from screenplay_narrator.voices import (
    LANGUAGE_CODES,
    LANGUAGES,
    VOICE_POOL,
    is_language_rtl,
    language_to_locale,
    resolve_voice,
)


@pytest.mark.parametrize("language, locale", [
    ("English", "en-US"),
    ("Hebrew", "he-IL"),
    ("Arabic", "ar-SA"),
    ("Chinese", "zh-CN"),
    ("Portuguese", "pt-PT"),
])
def test_language_to_locale(language, locale):
    assert language_to_locale(language) == locale


def test_unknown_language_falls_back_to_en_us():
    assert language_to_locale("Klingon") == "en-US"
    assert language_to_locale("") == "en-US"


def test_sixteen_supported_languages():
    assert len(LANGUAGES) == 16
    assert LANGUAGES[0] == "English"


def test_rtl_languages():
    assert is_language_rtl("Hebrew")
    assert is_language_rtl("Arabic")
    assert not is_language_rtl("English")


# --- resolve_voice ---

def test_exact_locale_wins():
    voices = [
        {"ShortName": "en-GB-RyanNeural", "Locale": "en-GB"},
        {"ShortName": "en-US-AriaNeural", "Locale": "en-US"},
    ]
    assert resolve_voice("en-US", voices) == "en-US-AriaNeural"


def test_language_prefix_match():
    """No ar-SA voice in the pool → any ar-* voice."""
    assert resolve_voice("ar-SA", VOICE_POOL) == "ar-EG-SalmaNeural"


def test_prefix_match_takes_first_in_pool_order():
    voices = [
        {"ShortName": "es-MX-DaliaNeural", "Locale": "es-MX"},
        {"ShortName": "es-AR-ElenaNeural", "Locale": "es-AR"},
    ]
    assert resolve_voice("es-ES", voices) == "es-MX-DaliaNeural"


def test_falls_back_to_first_voice():
    assert resolve_voice("xx-XX", VOICE_POOL) == VOICE_POOL[0]["ShortName"]


def test_empty_pool_returns_none():
    assert resolve_voice("en-US", []) is None


def test_every_language_has_a_voice_in_pool():
    """The built-in pool covers every supported language at least by prefix."""
    prefixes = {v["Locale"].split("-")[0] for v in VOICE_POOL}
    for locale in LANGUAGE_CODES.values():
        assert locale.split("-")[0] in prefixes
