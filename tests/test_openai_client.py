"""Tests for the OpenAI client and card generation."""

import asyncio
import json
from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from anki_lang.openai_client import LLMClient
from anki_lang.payload import PayloadFormatError


def make_client(responses, calls=None):
    """LLMClient whose SDK call returns ``responses`` in order."""
    client = LLMClient("sk-test", "gpt-test", "https://example.invalid/v1")
    replies = iter(responses)

    def create(**kwargs):
        if calls is not None:
            calls.append(kwargs)
        content = next(replies)
        choices = [] if content is None else [SimpleNamespace(message=SimpleNamespace(content=content))]
        return SimpleNamespace(choices=choices)

    client.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client


def test_empty_api_key_rejected():
    with pytest.raises(ValueError):
        LLMClient("  ", "gpt-test", "https://example.invalid/v1")


def test_call_chat_uses_json_mode_and_clamps_temperature():
    """Test the request shape sent to the chat completions endpoint."""
    calls = []
    client = make_client(['{"ok": true}', '{"ok": true}'], calls)

    assert asyncio.run(client.call_chat("system text", "user text", 3.5)) == '{"ok": true}'
    asyncio.run(client.call_chat("system text", "user text", -1))

    first, second = calls
    assert first["model"] == "gpt-test"
    assert first["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]
    assert first["response_format"] == {"type": "json_object"}
    assert first["temperature"] == 2.0
    assert second["temperature"] == 0.0


def test_call_chat_without_choices():
    client = make_client([None])

    with pytest.raises(RuntimeError, match="no choices"):
        asyncio.run(client.call_chat("s", "u", 0.7))


def test_generate_english_cloze_normalizes_markup():
    """Test a fenced response with a wrong cloze index becomes a clean card."""
    payload = {
        "word": " candor ",
        "cloze_sentence": "She spoke with {{c2::candor}} about her mistakes.",
        "translation": " She was honest about her mistakes. ",
        "hint": " honesty ",
    }
    client = make_client([f"```json\n{json.dumps(payload)}\n```"])

    card = asyncio.run(client.generate_english_cloze("candor", 0.7))

    assert card.word == "candor"
    assert card.cloze_sentence == "She spoke with {{c1::candor::honesty}} about her mistakes."
    assert card.translation == "She was honest about her mistakes."
    assert card.hint == "honesty"


def test_generate_english_cloze_blank_hint_becomes_none():
    payload = {
        "word": "candor",
        "cloze_sentence": "Her Candor surprised everyone.",
        "translation": "Her honesty surprised everyone.",
        "hint": "   ",
    }
    client = make_client([json.dumps(payload)])

    card = asyncio.run(client.generate_english_cloze("candor", 0.7))

    assert card.hint is None
    assert card.cloze_sentence == "Her {{c1::Candor}} surprised everyone."


def test_generate_english_cloze_bad_payload():
    """Test malformed model output surfaces as a PayloadFormatError."""
    client = make_client(['{"word": "candor"'])

    with pytest.raises(PayloadFormatError) as excinfo:
        asyncio.run(client.generate_english_cloze("candor", 0.7))

    assert excinfo.value.payload == '{"word": "candor"'


def test_generate_hindi_card():
    payload = {
        "word": "घर",
        "hindi_sentence": " यह मेरा घर है। ",
        "english_sentence": " This is my house. ",
    }
    client = make_client([json.dumps(payload, ensure_ascii=False)])

    with capture_logs() as logs:
        card = asyncio.run(client.generate_hindi_card("घर", 0.7))

    assert card.hindi_sentence == "यह मेरा घर है।"
    assert card.english_sentence == "This is my house."
    assert not [entry for entry in logs if entry["log_level"] == "warning"]


def test_generate_hindi_card_warns_when_word_missing():
    """Test a sentence without the target word is flagged but still returned."""
    payload = {
        "word": "घर",
        "hindi_sentence": "यह मेरा मकान है।",
        "english_sentence": "This is my house.",
    }
    client = make_client([json.dumps(payload, ensure_ascii=False)])

    with capture_logs() as logs:
        card = asyncio.run(client.generate_hindi_card("घर", 0.7))

    assert card.word == "घर"
    assert any(entry["log_level"] == "warning" for entry in logs)
