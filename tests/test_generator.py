"""Tests for the OpenRouter generation client."""

import asyncio
import json
import time
from unittest.mock import patch, AsyncMock

import pytest

from screenplay_narrator.cancellation import CancellationToken
from screenplay_narrator.constants import MODELS_CACHE_FILE, MODELS_CACHE_TTL_SECONDS
from screenplay_narrator.errors import GenerationCancelled, GenerationError
from screenplay_narrator.generator import (
    GenerationRequest,
    OpenRouterClient,
    _model_ids,
    build_prompt,
    extract_screenplay,
    response_format,
)


def _chat_payload(content):
    return {"choices": [{"message": {"content": content}}]}


# --- GenerationRequest ---

def test_default_request_is_valid():
    GenerationRequest().validate()


@pytest.mark.parametrize("kwargs, message", [
    ({"story_pitch": "short"}, "Story pitch"),
    ({"story_pitch": "x" * 201}, "Story pitch"),
    ({"dialog_languages": []}, "At least one"),
    ({"dialog_languages": ["Klingon"]}, "Unsupported language"),
    ({"default_screenplay_language": "Elvish"}, "Unsupported language"),
    ({"min_lines_per_dialog": 0}, "Minimum lines"),
    ({"min_lines_per_dialog": 201}, "Minimum lines"),
])
def test_invalid_requests(kwargs, message):
    with pytest.raises(ValueError, match=message):
        GenerationRequest(**kwargs).validate()


def test_to_params():
    params = GenerationRequest(story_pitch="Two friends lost at sea").to_params()
    assert params["story_pitch"] == "Two friends lost at sea"
    assert params["dialog_languages"] == ["Arabic", "Hebrew"]
    assert params["min_lines_per_dialog"] == 50


# --- Prompt and schema ---

def test_prompt_with_pitch():
    prompt = build_prompt(GenerationRequest(story_pitch="Two friends lost at sea", min_lines_per_dialog=5))
    assert "Two friends lost at sea" in prompt
    assert "Arabic, Hebrew" in prompt
    assert "at least 5 lines" in prompt


def test_prompt_without_pitch():
    assert "creative original screenplay" in build_prompt(GenerationRequest())


def test_response_format_seeded_with_request():
    request = GenerationRequest(dialog_languages=["Spanish"], default_screenplay_language="English")
    fmt = response_format(request)
    assert fmt["type"] == "json_schema"
    props = fmt["json_schema"]["schema"]["properties"]
    assert props["languages_used"]["default"] == ["Spanish"]
    assert props["default_screenplay_language"]["default"] == "English"
    line = props["scenes"]["items"]["properties"]["dialogue"]["items"]
    assert "translation" in line["properties"]


# --- Response extraction ---

def test_extract_screenplay():
    data = extract_screenplay(_chat_payload(json.dumps({"scenes": []})))
    assert data == {"scenes": []}


@pytest.mark.parametrize("payload, message", [
    ({"error": {"message": "Rate limited"}}, "Rate limited"),
    ({"choices": []}, "no message content"),
    (_chat_payload("not json"), "invalid JSON"),
    (_chat_payload(None), "invalid JSON"),
    (_chat_payload("[1, 2]"), "non-object"),
])
def test_extract_screenplay_errors(payload, message):
    with pytest.raises(GenerationError, match=message):
        extract_screenplay(payload)


@pytest.mark.parametrize("payload, expected", [
    ({"data": {"models": [{"slug": "a/b:free"}, {"slug": "c/d:free"}]}}, ["a/b:free", "c/d:free"]),
    ({"data": [{"id": "x/y"}]}, ["x/y"]),
    ([{"slug": "s"}, "plain/id", {"name": "no slug"}], ["s", "plain/id"]),
    ({}, []),
])
def test_model_ids(payload, expected):
    assert _model_ids(payload) == expected


# --- OpenRouterClient.generate ---

def test_generate_sends_structured_request():
    client = OpenRouterClient("sk-test")
    post = AsyncMock(return_value=_chat_payload(json.dumps({"scenes": []})))
    with patch.object(client, "_post_json", post):
        data = asyncio.run(client.generate("some/model", GenerationRequest(), CancellationToken()))

    assert data == {"scenes": []}
    url, payload = post.call_args.args
    assert url == client.chat_url
    assert payload["model"] == "some/model"
    assert payload["plugins"] == [{"id": "response-healing"}]
    assert payload["stream"] is False
    assert payload["response_format"]["type"] == "json_schema"


def test_generate_propagates_provider_errors():
    client = OpenRouterClient("sk-test")
    post = AsyncMock(side_effect=GenerationError("Provider returned HTTP 401", status=401))
    with patch.object(client, "_post_json", post):
        with pytest.raises(GenerationError) as excinfo:
            asyncio.run(client.generate("m", GenerationRequest(), CancellationToken()))
    assert excinfo.value.status == 401


def test_generate_cancelled_mid_flight():
    client = OpenRouterClient("sk-test")
    aborted = []

    async def hang(target, request):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            aborted.append(target)
            raise

    async def scenario():
        token = CancellationToken()
        task = asyncio.create_task(client.generate("m", GenerationRequest(), token))
        await asyncio.sleep(0.01)
        token.cancel()
        with pytest.raises(GenerationCancelled):
            await task
        await asyncio.sleep(0)

    with patch.object(client, "_complete", hang):
        asyncio.run(scenario())
    assert aborted == ["m"]


def test_generate_with_cancelled_token_never_calls_provider():
    client = OpenRouterClient("sk-test")
    token = CancellationToken()
    token.cancel()
    post = AsyncMock()
    with patch.object(client, "_post_json", post):
        with pytest.raises(GenerationCancelled):
            asyncio.run(client.generate("m", GenerationRequest(), token))
    post.assert_not_called()


# --- Model catalog ---

def test_list_models_fetches_and_caches(tmp_path):
    client = OpenRouterClient(None, cache_dir=str(tmp_path))
    fetch = AsyncMock(return_value=["a/b:free"])
    with patch.object(client, "_fetch_models", fetch):
        assert asyncio.run(client.list_models()) == ["a/b:free"]
        assert asyncio.run(client.list_models()) == ["a/b:free"]
    assert fetch.await_count == 1
    cached = json.loads((tmp_path / MODELS_CACHE_FILE).read_text())
    assert cached["models"] == ["a/b:free"]


def test_list_models_refresh_bypasses_cache(tmp_path):
    (tmp_path / MODELS_CACHE_FILE).write_text(json.dumps({"fetched_at": time.time(), "models": ["old"]}))
    client = OpenRouterClient(None, cache_dir=str(tmp_path))
    with patch.object(client, "_fetch_models", AsyncMock(return_value=["new"])):
        assert asyncio.run(client.list_models(refresh=True)) == ["new"]


def test_list_models_serves_stale_cache_on_error(tmp_path):
    stale = time.time() - MODELS_CACHE_TTL_SECONDS - 10
    (tmp_path / MODELS_CACHE_FILE).write_text(json.dumps({"fetched_at": stale, "models": ["old"]}))
    client = OpenRouterClient(None, cache_dir=str(tmp_path))
    fetch = AsyncMock(side_effect=GenerationError("Could not fetch model catalog"))
    with patch.object(client, "_fetch_models", fetch):
        assert asyncio.run(client.list_models()) == ["old"]
    fetch.assert_awaited_once()


def test_list_models_error_without_cache(tmp_path):
    client = OpenRouterClient(None, cache_dir=str(tmp_path))
    fetch = AsyncMock(side_effect=GenerationError("Could not fetch model catalog"))
    with patch.object(client, "_fetch_models", fetch):
        with pytest.raises(GenerationError):
            asyncio.run(client.list_models())
