"""Tests for screenplay JSON parsing."""

import json
from unittest.mock import patch

import pytest

from screenplay_narrator.errors import ScreenplayFormatError
from screenplay_narrator.parser import load_screenplay, parse_screenplay


def test_parse_full_document(screenplay):
    assert len(screenplay.scenes) == 2
    assert screenplay.default_language == "English"
    assert screenplay.languages_used == ("Hebrew", "Arabic")
    assert [c.name for c in screenplay.cast] == ["Dana", "Omar"]
    assert screenplay.story_pitch == "A guessing game"


def test_scene_fields(screenplay):
    scene = screenplay.scenes[0]
    assert scene.description == "A sunny kitchen."
    assert scene.heading == "INT. KITCHEN - DAY"
    assert scene.transition == "CUT TO:"
    assert screenplay.scenes[1].transition == ""


def test_line_fields(screenplay):
    line = screenplay.scenes[0].lines[1]
    assert line.character == "Omar"
    assert line.language == "Arabic"
    assert line.text == "مرحبا"
    assert line.translation == "Hello"
    assert line.parenthetical == "shyly"
    assert line.action == "He waves."


def test_optional_fields_default_empty():
    doc = parse_screenplay({"scenes": [{"dialogue": [{"character": "A", "text": "hi"}]}]})
    line = doc.scenes[0].lines[0]
    assert line.language == ""
    assert line.translation == ""
    assert line.action == ""
    assert doc.scenes[0].description == ""


def test_null_fields_normalized():
    doc = parse_screenplay({"scenes": [{"scene": None, "dialogue": [
        {"character": "A", "text": "  hi  ", "translation": None, "action": None},
    ]}]})
    line = doc.scenes[0].lines[0]
    assert line.text == "hi"
    assert line.translation == ""


def test_default_language_falls_back_to_english():
    assert parse_screenplay({"scenes": []}).default_language == "English"


def test_empty_document_has_no_scenes():
    assert parse_screenplay({}).scenes == ()


def test_scene_without_dialogue():
    doc = parse_screenplay({"scenes": [{"scene": "Silence."}]})
    assert doc.scenes[0].lines == ()


def test_cast_entries_without_name_skipped():
    doc = parse_screenplay({"scenes": [], "cast": [{"name": "A"}, {"description": "nameless"}, "junk"]})
    assert [c.name for c in doc.cast] == ["A"]


@pytest.mark.parametrize("data", [
    [],
    "screenplay",
    {"scenes": "not a list"},
    {"scenes": ["not an object"]},
    {"scenes": [{"dialogue": "not a list"}]},
    {"scenes": [{"dialogue": [42]}]},
])
def test_malformed_documents_rejected(data):
    with pytest.raises(ScreenplayFormatError):
        parse_screenplay(data)


def test_load_screenplay(tmp_path, screenplay_data):
    path = tmp_path / "screenplay.json"
    path.write_text(json.dumps(screenplay_data, ensure_ascii=False), encoding="utf-8")
    doc = load_screenplay(str(path))
    assert doc.scenes[1].lines[0].text == "נחש מה אני רואה"


def test_load_screenplay_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ScreenplayFormatError, match="Invalid JSON"):
        load_screenplay(str(path))


def test_load_screenplay_reads_utf8(tmp_path, screenplay_data):
    path = tmp_path / "screenplay.json"
    path.write_bytes(json.dumps(screenplay_data, ensure_ascii=False).encode("utf-8"))
    with patch("screenplay_narrator.parser.open", create=True, wraps=open) as mock_open:
        doc = load_screenplay(str(path))
    assert mock_open.call_args.kwargs["encoding"] == "utf-8"
    assert doc.scenes[0].lines[1].text == "مرحبا"
