"""Language-to-locale mapping and voice resolution."""

import logging

logger = logging.getLogger(__name__)

LANGUAGE_CODES = {
    "English": "en-US",
    "Hebrew": "he-IL",
    "Spanish": "es-ES",
    "French": "fr-FR",
    "Russian": "ru-RU",
    "Chinese": "zh-CN",
    "Japanese": "ja-JP",
    "Arabic": "ar-SA",
    "German": "de-DE",
    "Italian": "it-IT",
    "Portuguese": "pt-PT",
    "Korean": "ko-KR",
    "Dutch": "nl-NL",
    "Polish": "pl-PL",
    "Turkish": "tr-TR",
    "Hindi": "hi-IN",
}

LANGUAGES = list(LANGUAGE_CODES)

RTL_LANGUAGES = {"Arabic", "Hebrew", "Urdu", "Persian", "Farsi", "Pashto", "Kurdish"}

# Hardcoded edge-tts voice pool (avoids network call at startup).
# Same shape as edge_tts.list_voices() entries.
VOICE_POOL = [
    {"ShortName": "en-US-AriaNeural", "Locale": "en-US"},
    {"ShortName": "en-GB-RyanNeural", "Locale": "en-GB"},
    {"ShortName": "he-IL-HilaNeural", "Locale": "he-IL"},
    {"ShortName": "es-ES-ElviraNeural", "Locale": "es-ES"},
    {"ShortName": "es-MX-DaliaNeural", "Locale": "es-MX"},
    {"ShortName": "fr-FR-DeniseNeural", "Locale": "fr-FR"},
    {"ShortName": "ru-RU-SvetlanaNeural", "Locale": "ru-RU"},
    {"ShortName": "zh-CN-XiaoxiaoNeural", "Locale": "zh-CN"},
    {"ShortName": "ja-JP-NanamiNeural", "Locale": "ja-JP"},
    {"ShortName": "ar-EG-SalmaNeural", "Locale": "ar-EG"},
    {"ShortName": "de-DE-KatjaNeural", "Locale": "de-DE"},
    {"ShortName": "it-IT-ElsaNeural", "Locale": "it-IT"},
    {"ShortName": "pt-BR-FranciscaNeural", "Locale": "pt-BR"},
    {"ShortName": "ko-KR-SunHiNeural", "Locale": "ko-KR"},
    {"ShortName": "nl-NL-ColetteNeural", "Locale": "nl-NL"},
    {"ShortName": "pl-PL-ZofiaNeural", "Locale": "pl-PL"},
    {"ShortName": "tr-TR-EmelNeural", "Locale": "tr-TR"},
    {"ShortName": "hi-IN-SwaraNeural", "Locale": "hi-IN"},
]


def language_to_locale(language: str) -> str:
    """"Hebrew" → "he-IL". Unknown languages fall back to en-US."""
    return LANGUAGE_CODES.get(language, "en-US")


def is_language_rtl(language: str) -> bool:
    return language in RTL_LANGUAGES


def resolve_voice(locale: str, voices: list[dict]) -> str | None:
    """Pick a voice for a locale.

    Priority: exact locale → same language family → first voice in the pool.
    Returns None only when the pool is empty.
    """
    for voice in voices:
        if voice["Locale"] == locale:
            return voice["ShortName"]

    prefix = locale.split("-")[0]
    for voice in voices:
        if voice["Locale"].split("-")[0] == prefix:
            return voice["ShortName"]

    if voices:
        logger.debug("No voice for %s, falling back to %s", locale, voices[0]["ShortName"])
        return voices[0]["ShortName"]
    return None
