"""Workflows that turn word lists into Anki notes."""

import asyncio
import functools
from typing import Callable, List, Optional, Union

import click
import structlog

from .anki_client import AnkiConnectClient, AnkiConnectError
from .config import MAX_PARALLEL_REQUESTS, ConfigError, Settings, save_deck
from .models import EnglishClozeCard, HindiCard, Note, ProcessingResult
from .notes import build_english_note, build_hindi_notes
from .openai_client import LLMClient
from .utils import normalize_words, split_input

log = structlog.get_logger()

Card = Union[EnglishClozeCard, HindiCard]


def _default_confirm(prompt: str) -> bool:
    return click.confirm(prompt, default=True)


async def run_blocking(func: Callable, *args, **kwargs):
    """Run a blocking call such as a terminal prompt in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


class RunContext:
    """Everything a workflow needs for one run."""

    def __init__(self, anki: AnkiConnectClient, llm: LLMClient, settings: Settings,
                 dry_run: bool = False, auto_approve: bool = False,
                 max_parallel: int = MAX_PARALLEL_REQUESTS,
                 confirm: Optional[Callable[[str], bool]] = None):
        self.anki = anki
        self.llm = llm
        self.settings = settings
        self.dry_run = dry_run
        self.auto_approve = auto_approve
        self.max_parallel = max(1, max_parallel)
        self.confirm = confirm or _default_confirm


class LanguageFlow:
    """Generate, review and send cards for one language.

    Cards are generated concurrently (bounded by ``max_parallel``), then
    reviewed and sent to Anki one word at a time in input order. A word that
    fails is recorded on its ``ProcessingResult`` and the batch continues.
    """

    language = ""
    deck_field = ""
    review_prompt = ""

    def __init__(self, ctx: RunContext):
        self.ctx = ctx
        self.semaphore = asyncio.Semaphore(ctx.max_parallel)

    async def generate(self, word: str) -> Card:
        raise NotImplementedError

    def build_notes(self, card: Card, deck: str) -> List[Note]:
        raise NotImplementedError

    def print_card(self, card: Card, deck: str, label: str):
        raise NotImplementedError

    async def run(self, words: List[str], deck_override: Optional[str] = None) -> List[ProcessingResult]:
        deck = deck_override or getattr(self.ctx.settings, self.deck_field)
        try:
            await self.ctx.anki.ensure_deck_exists(deck)
        except AnkiConnectError as e:
            log.error("Failed to ensure deck exists", deck=deck, error=str(e))
            raise

        unique_words = self._dedupe(words)
        log.info("Starting batch processing", language=self.language, deck=deck,
                 word_count=len(unique_words))

        results = await asyncio.gather(*(self._generate_one(word) for word in unique_words))

        for result in results:
            if result.card is not None:
                await self._deliver(result, deck)

        if not self.ctx.dry_run:
            self._remember_deck(deck)

        log.info("Batch processing completed",
                 language=self.language,
                 total_words=len(results),
                 failed=sum(1 for r in results if r.error))
        return results

    def _dedupe(self, words: List[str]) -> List[str]:
        seen = set()
        unique = []
        for word in normalize_words(words):
            key = word.lower()
            if key in seen:
                log.debug("Skipping duplicate word", word=word)
                continue
            seen.add(key)
            unique.append(word)
        return unique

    async def _generate_one(self, word: str) -> ProcessingResult:
        async with self.semaphore:
            log.info("Generating card", language=self.language, word=word)
            try:
                card = await self.generate(word)
            except Exception as e:
                log.error("Card generation failed", language=self.language, word=word, error=str(e))
                return ProcessingResult(word=word, error=str(e))
        return ProcessingResult(word=word, card=card)

    async def _deliver(self, result: ProcessingResult, deck: str):
        card = result.card

        if self.ctx.dry_run:
            self.print_card(card, deck, "DRY RUN")
            return

        if not self.ctx.auto_approve:
            self.print_card(card, deck, "REVIEW")
            if not await run_blocking(self.ctx.confirm, self.review_prompt):
                log.info("Skipping notes", language=self.language, word=card.word)
                result.skipped = True
                return

        notes = self.build_notes(card, deck)
        try:
            result.note_ids = await self.ctx.anki.add_notes(notes)
        except AnkiConnectError as e:
            log.error("Failed to add notes", word=card.word, deck=deck, error=str(e))
            result.error = str(e)
            return

        report_add_note_results(card.word, deck, result.note_ids)

    def _remember_deck(self, deck: str):
        try:
            save_deck(self.ctx.settings, self.deck_field, deck)
        except (ConfigError, OSError) as e:
            log.warning("Failed to save deck to config", deck=deck, error=str(e))


class HindiFlow(LanguageFlow):
    language = "hindi"
    deck_field = "hindi_deck"
    review_prompt = "Send these Hindi notes to Anki?"

    async def generate(self, word: str) -> HindiCard:
        return await self.ctx.llm.generate_hindi_card(word, self.ctx.settings.temperature)

    def build_notes(self, card: HindiCard, deck: str) -> List[Note]:
        return build_hindi_notes(card, deck, self.ctx.settings.tags)

    def print_card(self, card: HindiCard, deck: str, label: str):
        click.echo(f"[{label}][{deck}] {card.word}")
        click.echo(f"  Hindi  : {card.hindi_sentence}")
        click.echo(f"  English: {card.english_sentence}")


class EnglishFlow(LanguageFlow):
    language = "english"
    deck_field = "english_deck"
    review_prompt = "Send this English cloze to Anki?"

    async def generate(self, word: str) -> EnglishClozeCard:
        return await self.ctx.llm.generate_english_cloze(word, self.ctx.settings.temperature)

    def build_notes(self, card: EnglishClozeCard, deck: str) -> List[Note]:
        return [build_english_note(card, deck, self.ctx.settings.tags)]

    def print_card(self, card: EnglishClozeCard, deck: str, label: str):
        click.echo(f"[{label}][{deck}] {card.word}")
        click.echo(f"  Cloze       : {card.cloze_sentence}")
        click.echo(f"  Explanation : {card.translation}")
        if card.hint and card.hint.strip():
            click.echo(f"  Hint        : {card.hint}")


def report_add_note_results(word: str, deck: str, note_ids: List[Optional[int]]):
    for index, note_id in enumerate(note_ids, 1):
        if note_id is None:
            log.warning("Anki reported a duplicate", word=word, deck=deck, card=index)
        else:
            log.info("Added note", note_id=note_id, word=word, deck=deck)


async def run_hindi_flow(words: List[str], deck_override: Optional[str],
                         ctx: RunContext) -> List[ProcessingResult]:
    return await HindiFlow(ctx).run(words, deck_override)


async def run_english_flow(words: List[str], deck_override: Optional[str],
                           ctx: RunContext) -> List[ProcessingResult]:
    return await EnglishFlow(ctx).run(words, deck_override)


FLOWS = {
    "hindi": run_hindi_flow,
    "english": run_english_flow,
}


async def run_interactive_session(default_language: Optional[str], ctx: RunContext,
                                  prompt: Callable = click.prompt):
    """Prompt for a language and words until the user stops."""
    preset_language = default_language

    while True:
        language = preset_language or await run_blocking(
            prompt,
            "Choose a language workflow",
            type=click.Choice(["hindi", "english", "exit"]),
            default="hindi",
        )
        preset_language = None
        if language == "exit":
            log.info("Exiting interactive session")
            break

        text = await run_blocking(
            prompt,
            "Enter words (comma or newline separated). Leave empty to exit",
            default="",
            show_default=False,
        )
        if not text.strip():
            log.info("No words provided, exiting interactive mode")
            break

        words = split_input(text)
        if words:
            await FLOWS[language](words, None, ctx)
        else:
            log.warning("No valid words parsed from input")

        if not await run_blocking(ctx.confirm, "Add more cards?"):
            break
