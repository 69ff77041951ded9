"""Tests for JSON payload extraction and decoding."""

import pytest

from anki_lang.models import EnglishClozePayload, HindiCardPayload
from anki_lang.payload import PayloadFormatError, extract_json, parse_payload

PAYLOAD = '{"word": "candor", "cloze_sentence": "She spoke with candor.", "translation": "honesty"}'


def test_unfenced_text_is_returned_trimmed():
    assert extract_json(f"  \n{PAYLOAD}\n ") == PAYLOAD


def test_fenced_block_with_language_tag():
    raw = f"```json\n{PAYLOAD}\n```"
    assert extract_json(raw) == PAYLOAD


def test_fenced_block_without_language_tag_and_indented_close():
    raw = f"```\n{{\n  \"a\": 1\n}}\n   ```"
    assert extract_json(raw) == '{\n  "a": 1\n}'


def test_unclosed_fence_keeps_everything_after_opening_line():
    raw = f"```json\n{PAYLOAD}"
    assert extract_json(raw) == PAYLOAD


def test_empty_fenced_block_yields_nothing():
    assert extract_json("```json\n```") == ""
    assert extract_json("```") == ""


def test_parse_payload_decodes_fenced_response():
    """Test a fenced response decodes into the payload model."""
    parsed = parse_payload(f"```json\n{PAYLOAD}\n```", EnglishClozePayload)

    assert parsed.word == "candor"
    assert parsed.cloze_sentence == "She spoke with candor."
    assert parsed.hint is None


def test_fenced_block_keeps_unicode_line_separators():
    """Test separators that are legal inside JSON strings survive fence stripping."""
    sentence = "He said\u2028hello to the candor.\u2029"
    body = '{"word": "candor", "cloze_sentence": "%s", "translation": "t"}' % sentence

    assert extract_json(f"```json\n{body}\n```") == body
    assert parse_payload(f"```json\n{body}\n```", EnglishClozePayload).cloze_sentence == sentence


def test_fenced_block_with_crlf_line_endings():
    raw = f"```json\r\n{PAYLOAD}\r\n```\r\n"
    assert extract_json(raw) == PAYLOAD


def test_parse_payload_accepts_null_hint():
    raw = '{"word": "w", "cloze_sentence": "s w", "translation": "t", "hint": null}'
    assert parse_payload(raw, EnglishClozePayload).hint is None


def test_empty_fenced_block_is_missing_payload():
    """Test an empty fenced block fails with a missing-payload error."""
    with pytest.raises(PayloadFormatError, match="missing payload"):
        parse_payload("```json\n\n```", EnglishClozePayload)


def test_invalid_json_reports_failing_substring():
    """Test the error carries the exact substring that failed to decode."""
    raw = "```json\n{\"word\": \"candor\",\n```"

    with pytest.raises(PayloadFormatError) as excinfo:
        parse_payload(raw, EnglishClozePayload)

    assert excinfo.value.payload == '{"word": "candor",'
    assert '{"word": "candor",' in str(excinfo.value)


def test_wrong_shape_is_a_payload_error():
    """Test valid JSON with missing fields is rejected."""
    with pytest.raises(PayloadFormatError) as excinfo:
        parse_payload('{"word": "घर"}', HindiCardPayload)

    assert excinfo.value.payload == '{"word": "घर"}'


def test_payload_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_payload("not json at all", HindiCardPayload)
