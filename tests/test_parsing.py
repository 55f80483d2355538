"""Tests for model output decoding."""

import pytest
from pydantic import BaseModel

from recollect.core.parsing import ResponseParseError, decode_as, decode_model, extract_json


class Verdict(BaseModel):
    ok: bool
    items: list[str] = []


def test_extract_json_fenced():
    text = 'Sure!\n```json\n{"ok": true}\n```\nHope that helps.'
    assert extract_json(text) == {"ok": True}


def test_extract_json_bare_fence():
    text = '```\n[1, 2, 3]\n```'
    assert extract_json(text) == [1, 2, 3]


def test_extract_json_raw():
    assert extract_json('  {"ok": false}  ') == {"ok": False}


def test_extract_json_embedded_in_prose():
    text = 'Here is the result: {"ok": true, "items": ["a"]} as requested.'
    assert extract_json(text) == {"ok": True, "items": ["a"]}


def test_extract_json_prefers_json_fence():
    text = '```python\nprint("hi")\n```\n```json\n{"ok": true}\n```'
    assert extract_json(text) == {"ok": True}


@pytest.mark.parametrize("text", ["", "   ", "no json here", "```json\n{broken\n```"])
def test_extract_json_failures(text):
    with pytest.raises(ResponseParseError):
        extract_json(text)


def test_parse_error_keeps_raw_text():
    with pytest.raises(ResponseParseError) as exc_info:
        extract_json("nothing useful")
    assert exc_info.value.raw == "nothing useful"


def test_decode_model():
    verdict = decode_model('```json\n{"ok": true, "items": ["x"]}\n```', Verdict)
    assert verdict.ok is True
    assert verdict.items == ["x"]


def test_decode_model_schema_mismatch():
    """Valid JSON of the wrong shape is a parse error, not a ValidationError."""
    with pytest.raises(ResponseParseError):
        decode_model('{"items": "not a list"}', Verdict)


def test_decode_as_list():
    result = decode_as('[{"ok": true}, {"ok": false}]', list[Verdict])
    assert [v.ok for v in result] == [True, False]


def test_decode_as_wrong_container():
    with pytest.raises(ResponseParseError):
        decode_as('{"ok": true}', list[Verdict])
