"""Pytest configuration and fixtures."""

import hashlib
import itertools
import pathlib

import pytest
import vcr

from anki_lang.config import LIVE_TESTING, Settings
from anki_lang.models import EnglishClozeCard, HindiCard
from anki_lang.pipeline import RunContext

ROOT = pathlib.Path(__file__).resolve().parent.parent

# Calculate hash of prompts.py for cassette invalidation
PROMPTS_HASH = hashlib.sha256(
    (ROOT / "anki_lang" / "prompts.py").read_bytes()
).hexdigest()[:8]


def cassette(name: str) -> str:
    """Generate cassette filename with prompt hash."""
    return f"{name}_{PROMPTS_HASH}.yaml"


@pytest.fixture
def my_vcr():
    """VCR fixture for recording/replaying HTTP interactions."""
    return vcr.VCR(
        cassette_library_dir=str(ROOT / "tests" / "fixtures"),
        filter_headers=[("authorization", "DUMMY")],
        record_mode="once",
    )


@pytest.fixture
def live_guard():
    """Skip unless live testing is enabled."""
    if not LIVE_TESTING:
        pytest.skip("Live LLM disabled (set ANKI_LANG_LIVE=1)")


class FakeLLM:
    """Stands in for LLMClient; failures maps a word to the exception it raises."""

    def __init__(self, failures=None, hints=None):
        self.failures = failures or {}
        self.hints = hints or {}
        self.calls = []

    def _check(self, word):
        self.calls.append(word)
        if word in self.failures:
            raise self.failures[word]

    async def generate_english_cloze(self, word, temperature):
        self._check(word)
        return EnglishClozeCard(
            word=word,
            cloze_sentence=f"We talked about {{{{c1::{word}}}}} all evening.",
            translation=f"A sentence using {word}.",
            hint=self.hints.get(word),
        )

    async def generate_hindi_card(self, word, temperature):
        self._check(word)
        return HindiCard(
            word=word,
            hindi_sentence=f"मुझे {word} पसंद है।",
            english_sentence=f"I like {word}.",
        )


class FakeAnki:
    """Records AnkiConnect calls instead of sending them."""

    def __init__(self, duplicates=(), add_error=None, deck_error=None):
        self.duplicates = set(duplicates)
        self.add_error = add_error
        self.deck_error = deck_error
        self.decks = []
        self.added = []
        self._ids = itertools.count(1000)

    async def ensure_deck_exists(self, deck_name):
        if self.deck_error:
            raise self.deck_error
        self.decks.append(deck_name)

    async def add_notes(self, notes):
        if self.add_error:
            raise self.add_error
        self.added.extend(notes)
        return [
            None if note.note_fields.get("Front") in self.duplicates else next(self._ids)
            for note in notes
        ]


@pytest.fixture
def settings(tmp_path):
    """Settings whose config file lives in a temporary directory."""
    return Settings(
        openai_api_key="sk-test",
        tags=["generated"],
        config_path=tmp_path / "config" / "config.yaml",
    )


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_anki():
    return FakeAnki()


@pytest.fixture
def make_ctx(settings, fake_llm, fake_anki):
    """Build a RunContext around the fakes; keyword arguments override defaults."""
    def _make(**kwargs):
        options = {
            "anki": fake_anki,
            "llm": fake_llm,
            "settings": settings,
            "auto_approve": True,
        }
        options.update(kwargs)
        return RunContext(**options)
    return _make
