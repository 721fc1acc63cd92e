"""Load user configuration from config.json and the environment."""

import json
import logging
import os

from screenplay_narrator.constants import CONFIG_FILE, DEFAULT_LANGUAGE_SPEED, DEFAULT_MODEL

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENROUTER_API_KEY"


def load_config(path: str = CONFIG_FILE) -> dict:
    """Return the merged configuration.

    Keys: api_key, default_model, language_speeds, default_language_speed.
    A missing file yields defaults; a malformed one logs a warning and yields
    defaults. The OPENROUTER_API_KEY environment variable wins over the file.
    """
    raw = {}
    if os.path.exists(path):
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError:
            logger.warning("Malformed config file: %s, using defaults", path)
            raw = {}
        if not isinstance(raw, dict):
            logger.warning("Config file %s is not an object, using defaults", path)
            raw = {}

    api_key = os.environ.get(API_KEY_ENV) or raw.get("apiKey")

    return {
        "api_key": api_key,
        "default_model": raw.get("defaultModel") or DEFAULT_MODEL,
        "language_speeds": _language_speeds(raw.get("languageSpeeds"), path),
        "default_language_speed": _speed(raw.get("defaultLanguageSpeed", DEFAULT_LANGUAGE_SPEED), path),
    }


def _speed(value, path: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid defaultLanguageSpeed %r in %s, using %s", value, path, DEFAULT_LANGUAGE_SPEED)
        return DEFAULT_LANGUAGE_SPEED


def _language_speeds(value, path: str) -> dict[str, float]:
    """Numeric speeds only; anything else is logged and dropped."""
    if not value:
        return {}
    if not isinstance(value, dict):
        logger.warning("languageSpeeds in %s is not an object, ignoring it", path)
        return {}
    speeds = {}
    for lang, speed in value.items():
        try:
            speeds[lang] = float(speed)
        except (TypeError, ValueError):
            logger.warning("Invalid speed %r for %s in %s, ignoring it", speed, lang, path)
    return speeds
