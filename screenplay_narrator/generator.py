"""Screenplay generation over the OpenRouter chat-completions API."""

import asyncio
import json
import logging
import os
import time
from dataclasses import asdict, dataclass, field

import aiohttp

from screenplay_narrator.cancellation import CancellationToken
from screenplay_narrator.constants import (
    DEFAULT_DIALOG_LANGUAGES,
    DEFAULT_MIN_LINES,
    DEFAULT_SCREENPLAY_LANGUAGE,
    MIN_LINES_RANGE,
    MODELS_CACHE_FILE,
    MODELS_CACHE_TTL_SECONDS,
    MODELS_TIMEOUT_SECONDS,
    OPENROUTER_CHAT_URL,
    OPENROUTER_MODELS_URL,
    OUTPUT_DIR,
    PITCH_LENGTH_RANGE,
)
from screenplay_narrator.errors import GenerationCancelled, GenerationError
from screenplay_narrator.voices import LANGUAGES

logger = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    story_pitch: str = ""
    dialog_languages: list[str] = field(default_factory=lambda: list(DEFAULT_DIALOG_LANGUAGES))
    default_screenplay_language: str = DEFAULT_SCREENPLAY_LANGUAGE
    min_lines_per_dialog: int = DEFAULT_MIN_LINES

    def validate(self) -> None:
        """Raise ValueError describing the first invalid field."""
        if self.story_pitch:
            low, high = PITCH_LENGTH_RANGE
            if not low <= len(self.story_pitch) <= high:
                raise ValueError(f"Story pitch must be between {low} and {high} characters")
        if not self.dialog_languages:
            raise ValueError("At least one dialog language is required")
        for lang in [*self.dialog_languages, self.default_screenplay_language]:
            if lang not in LANGUAGES:
                raise ValueError(f"Unsupported language: {lang}")
        low, high = MIN_LINES_RANGE
        if not low <= self.min_lines_per_dialog <= high:
            raise ValueError(f"Minimum lines per dialog must be between {low} and {high}")

    def to_params(self) -> dict:
        return asdict(self)


def build_prompt(request: GenerationRequest) -> str:
    languages = ", ".join(request.dialog_languages)
    if request.story_pitch:
        opening = f"Create a screenplay based on this pitch: {request.story_pitch}"
    else:
        opening = "Create a creative original screenplay."
    return (
        f"{opening}\n"
        f"Use these languages for character dialogue: {languages}. "
        f"The default screenplay language (for all text except character dialogue) "
        f"should be: {request.default_screenplay_language}. "
        f"Each dialog should have at least {request.min_lines_per_dialog} lines, and every "
        f"line not in the default language should carry a translation into it."
    )


def response_format(request: GenerationRequest) -> dict:
    """JSON-schema structured output, seeded with the request's values."""
    line = {
        "type": "object",
        "properties": {
            "character": {"type": "string"},
            "language": {"type": "string", "enum": LANGUAGES},
            "text": {"type": "string"},
            "translation": {"type": "string"},
            "parenthetical": {"type": "string"},
            "action": {"type": "string"},
        },
        "required": ["character", "language", "text"],
    }
    scene = {
        "type": "object",
        "properties": {
            "scene_heading": {"type": "string"},
            "scene": {"type": "string"},
            "dialogue": {"type": "array", "items": line},
            "transition": {"type": "string"},
        },
        "required": ["scene", "dialogue"],
    }
    schema = {
        "type": "object",
        "properties": {
            "story_pitch": {"type": "string", "default": request.story_pitch},
            "languages_used": {
                "type": "array",
                "items": {"type": "string"},
                "default": request.dialog_languages,
            },
            "default_screenplay_language": {
                "type": "string",
                "default": request.default_screenplay_language,
            },
            "exposition": {"type": "string"},
            "cast": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"name": {"type": "string"}, "description": {"type": "string"}},
                    "required": ["name"],
                },
            },
            "scenes": {"type": "array", "items": scene},
        },
        "required": ["languages_used", "default_screenplay_language", "cast", "scenes"],
    }
    return {"type": "json_schema", "json_schema": {"name": "screenplay", "schema": schema}}


def extract_screenplay(payload: dict) -> dict:
    """Pull the structured screenplay out of a chat-completions response."""
    if payload.get("error"):
        error = payload["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise GenerationError(f"Provider error: {message}")
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationError("Provider response has no message content") from e
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise GenerationError(f"Provider returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GenerationError("Provider returned a non-object screenplay")
    return data


def _model_ids(payload) -> list[str]:
    """Model slugs from the catalog response, whatever its nesting."""
    if isinstance(payload, dict):
        payload = payload.get("data", payload)
    if isinstance(payload, dict):
        payload = payload.get("models", [])
    ids = []
    for entry in payload or []:
        if isinstance(entry, dict):
            slug = entry.get("slug") or entry.get("id")
            if slug:
                ids.append(slug)
        elif isinstance(entry, str):
            ids.append(entry)
    return ids


class OpenRouterClient:
    def __init__(
        self,
        api_key: str | None,
        chat_url: str = OPENROUTER_CHAT_URL,
        models_url: str = OPENROUTER_MODELS_URL,
        cache_dir: str = OUTPUT_DIR,
    ):
        self.api_key = api_key
        self.chat_url = chat_url
        self.models_url = models_url
        self.cache_dir = cache_dir

    async def _post_json(self, url: str, payload: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=payload, headers=headers) as resp:
                    if resp.status >= 400:
                        body = await resp.text()
                        raise GenerationError(
                            f"Provider returned HTTP {resp.status}: {body[:200]}", status=resp.status
                        )
                    return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise GenerationError(f"Network error: {e}") from e

    async def _complete(self, target: str, request: GenerationRequest) -> dict:
        payload = {
            "model": target,
            "messages": [{"role": "user", "content": build_prompt(request)}],
            "response_format": response_format(request),
            "plugins": [{"id": "response-healing"}],
            "stream": False,
        }
        logger.debug("Requesting screenplay from %s", target)
        return extract_screenplay(await self._post_json(self.chat_url, payload))

    async def generate(self, target: str, request: GenerationRequest, token: CancellationToken) -> dict:
        """Generate one screenplay, aborting as soon as ``token`` is cancelled."""
        if token.is_cancelled:
            raise GenerationCancelled(f"Generation for {target} was cancelled")

        request_task = asyncio.ensure_future(self._complete(target, request))
        cancel_task = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_task.cancel()
            if not request_task.done():
                request_task.cancel()

        if request_task not in done:
            raise GenerationCancelled(f"Generation for {target} was cancelled")
        return request_task.result()

    async def _fetch_models(self) -> list[str]:
        timeout = aiohttp.ClientTimeout(total=MODELS_TIMEOUT_SECONDS)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.models_url) as resp:
                    if resp.status >= 400:
                        raise GenerationError(f"Model catalog returned HTTP {resp.status}", status=resp.status)
                    return _model_ids(await resp.json(content_type=None))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GenerationError(f"Could not fetch model catalog: {e}") from e

    async def list_models(self, refresh: bool = False) -> list[str]:
        """Free models with structured-output support, cached on disk for an hour.

        A stale cache is served if the catalog cannot be fetched.
        """
        cache_path = os.path.join(self.cache_dir, MODELS_CACHE_FILE)
        cached = None
        if os.path.exists(cache_path):
            try:
                with open(cache_path, encoding="utf-8") as f:
                    cached = json.load(f)
            except json.JSONDecodeError:
                logger.warning("Malformed models cache: %s", cache_path)

        if cached and not refresh and time.time() - cached.get("fetched_at", 0) < MODELS_CACHE_TTL_SECONDS:
            return cached.get("models", [])

        try:
            models = await self._fetch_models()
        except GenerationError:
            if cached:
                logger.warning("Model catalog unavailable, serving cached list")
                return cached.get("models", [])
            raise

        os.makedirs(self.cache_dir, exist_ok=True)
        with open(cache_path, "w", encoding="utf-8") as f:
            json.dump({"fetched_at": time.time(), "models": models}, f, indent=2)
        return models
